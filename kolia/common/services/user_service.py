from typing import Dict, List, Mapping, Optional
from sqlalchemy import func
from ..db.session import get_session
from ..errors import ForbiddenError, NotFoundError
from ..models.order import Order
from ..models.user import ROLES, User
from ..utils.dto import to_user_dto
from ..utils.validators import ensure_choice, ensure_phone, ensure_text
from .auth_service import Actor
from .logging import log_event


class UserService:
    """User administration and the admin dashboard counters."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def list_users(self, *, role: Optional[str] = None, limit: int = 50, offset: int = 0) -> List[Dict]:
        with self._session_factory() as session:
            q = session.query(User)
            if role:
                q = q.filter(User.role == ensure_choice(role, "role", ROLES))
            rows = q.order_by(User.id.asc()).offset(offset).limit(limit).all()
            return [to_user_dto(u) for u in rows]

    def get_user(self, user_id: int, actor: Actor) -> Dict:
        if not actor.is_admin and actor.id != user_id:
            raise ForbiddenError()
        with self._session_factory() as session:
            user = session.get(User, user_id)
            if user is None:
                raise NotFoundError("Utilisateur non trouvé")
            return to_user_dto(user)

    def update_user(self, user_id: int, actor: Actor, payload: Mapping) -> Dict:
        if not actor.is_admin and actor.id != user_id:
            raise ForbiddenError()
        with self._session_factory() as session:
            user = session.get(User, user_id)
            if user is None:
                raise NotFoundError("Utilisateur non trouvé")
            if "name" in payload:
                user.name = ensure_text(payload.get("name"), "name", min_len=2, max_len=100)
            if "phone" in payload:
                user.phone = ensure_phone(payload.get("phone"))
            if "address" in payload:
                user.address = ensure_text(payload.get("address"), "address", min_len=5)
            if "role" in payload and actor.is_admin:
                user.role = ensure_choice(payload.get("role"), "role", ROLES)
            session.flush()
            return to_user_dto(user)

    def delete_user(self, user_id: int, actor: Actor) -> None:
        with self._session_factory() as session:
            user = session.get(User, user_id)
            if user is None:
                raise NotFoundError("Utilisateur non trouvé")
            session.delete(user)
            log_event("info", "user.deleted", user_id=user_id, by=actor.id)
        return None

    def dashboard_stats(self) -> Dict:
        with self._session_factory() as session:
            users_by_role = dict(session.query(User.role, func.count(User.id)).group_by(User.role).all())
            orders_by_status = dict(session.query(Order.status, func.count(Order.id)).group_by(Order.status).all())
            revenue = (
                session.query(func.coalesce(func.sum(Order.total), 0))
                .filter(Order.payment_status == "paid")
                .scalar()
            )
            commission = (
                session.query(func.coalesce(func.sum(Order.commission), 0))
                .filter(Order.payment_status == "paid")
                .scalar()
            )
            return {
                "users_by_role": {r: int(users_by_role.get(r, 0)) for r in ROLES},
                "orders_by_status": orders_by_status,
                "total_orders": int(sum(orders_by_status.values())),
                "paid_revenue": float(revenue or 0),
                "paid_commission": float(commission or 0),
            }
