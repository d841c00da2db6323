from typing import Dict, Optional, Tuple
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError
from ..db.session import get_session
from ..errors import ConflictError, ForbiddenError, InvalidStatus, InvalidTransition, OrderNotFound, ValidationError
from ..models.order import ORDER_STATUSES, Order
from ..models.user import User
from ..utils.clock import utcnow
from ..utils.dto import to_order_dto
from ..utils.validators import ensure_positive_int
from .auth_service import Actor
from .logging import log_event


TERMINAL_STATUSES = {"delivered", "cancelled"}
# position in the delivery chain; cancelled sits outside it
STATUS_RANK = {s: i for i, s in enumerate(ORDER_STATUSES[:-1])}

STATUS_MESSAGES = {
    "confirmed": "Votre commande a été confirmée",
    "preparing": "Votre commande est en préparation",
    "ready_for_delivery": "Votre commande est prête pour la livraison",
    "out_for_delivery": "Votre commande est en cours de livraison",
    "delivered": "Votre commande a été livrée avec succès",
    "cancelled": "Votre commande a été annulée",
}


def status_message(status: str, order_id) -> Optional[str]:
    text = STATUS_MESSAGES.get(status)
    if text is None:
        return None
    return f"{text} - Commande #{order_id}"


def check_transition(current: str, new: str) -> None:
    """Raise InvalidTransition unless ``current -> new`` moves forward."""
    if new == current:
        return
    if current in TERMINAL_STATUSES:
        raise InvalidTransition(f"Commande déjà {current}", current_status=current, requested=new)
    if new == "cancelled":
        return
    if STATUS_RANK[new] < STATUS_RANK[current]:
        raise InvalidTransition(
            f"Transition {current} -> {new} non autorisée", current_status=current, requested=new
        )


class OrderStatusMachine:
    """Moves orders through their delivery statuses.

    Every mutation runs in one session and relies on the ``version`` column of
    ``orders``: a concurrent writer that committed first makes the flush fail
    with ``ConflictError`` instead of silently overwriting it. Buyers are
    notified only after the change is committed.
    """

    def __init__(self, session_factory=get_session, *, notifier=None):
        self._session_factory = session_factory
        self._notifier = notifier

    @staticmethod
    def _load(session, order_id: int) -> Order:
        order = (
            session.query(Order)
            .options(selectinload(Order.items), selectinload(Order.restaurant), selectinload(Order.buyer))
            .filter(Order.id == order_id)
            .first()
        )
        if order is None:
            raise OrderNotFound()
        return order

    @staticmethod
    def _authorize_update(order: Order, actor: Actor) -> None:
        if actor.is_admin:
            return
        if actor.role == "restaurant":
            if order.restaurant is None or order.restaurant.user_id != actor.id:
                raise ForbiddenError()
            return
        if actor.role == "livreur":
            # once a driver is assigned, only that driver may move the order
            if order.driver_id is not None and order.driver_id != actor.id:
                raise ForbiddenError()
            return
        raise ForbiddenError()

    @staticmethod
    def _normalize_preconditions(expected_status, expected_version) -> Tuple[Optional[str], Optional[int]]:
        # form bodies carry every value as a string; blank means "not sent"
        if expected_status in (None, ""):
            expected_status = None
        elif expected_status not in ORDER_STATUSES:
            raise InvalidStatus(expected_status)
        if expected_version in (None, ""):
            expected_version = None
        else:
            expected_version = ensure_positive_int(expected_version, "expected_version", minimum=1)
        return expected_status, expected_version

    @staticmethod
    def _check_preconditions(order: Order, expected_status: Optional[str], expected_version: Optional[int]) -> None:
        if expected_status is not None and order.status != expected_status:
            raise ConflictError(
                "La commande a été modifiée entre-temps",
                current_status=order.status,
                expected_status=expected_status,
            )
        if expected_version is not None and order.version != expected_version:
            raise ConflictError(
                "La commande a été modifiée entre-temps",
                current_version=order.version,
                expected_version=expected_version,
            )

    @staticmethod
    def _flush(session) -> None:
        try:
            session.flush()
        except StaleDataError:
            raise ConflictError("La commande a été modifiée entre-temps")

    def _notify(self, phone: Optional[str], status: str, order_id: int) -> None:
        message = status_message(status, order_id)
        if self._notifier is None or not phone or message is None:
            return
        self._notifier.send(phone, message)

    def update_status(
        self,
        order_id: int,
        actor: Actor,
        new_status: str,
        *,
        expected_status: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Dict:
        if new_status not in ORDER_STATUSES:
            raise InvalidStatus(new_status)
        expected_status, expected_version = self._normalize_preconditions(expected_status, expected_version)
        with self._session_factory() as session:
            order = self._load(session, order_id)
            self._authorize_update(order, actor)
            self._check_preconditions(order, expected_status, expected_version)
            previous = order.status
            check_transition(previous, new_status)
            if new_status == previous:
                return to_order_dto(order)

            order.status = new_status
            if new_status == "delivered":
                order.delivered_at = utcnow()
            elif new_status == "cancelled":
                order.cancelled_at = utcnow()
            self._flush(session)
            result = to_order_dto(order)
            buyer_phone = order.buyer.phone if order.buyer else order.phone
            log_event(
                "info", "order.status_changed", order_id=order_id, previous=previous, status=new_status, by=actor.id
            )

        self._notify(buyer_phone, new_status, order_id)
        return result

    def cancel_order(self, order_id: int, actor: Actor, *, expected_version: Optional[int] = None) -> Dict:
        _, expected_version = self._normalize_preconditions(None, expected_version)
        with self._session_factory() as session:
            order = self._load(session, order_id)
            if not actor.is_admin and not (actor.role == "client" and order.user_id == actor.id):
                raise ForbiddenError()
            self._check_preconditions(order, None, expected_version)
            if order.status in TERMINAL_STATUSES:
                raise InvalidTransition("Cette commande ne peut pas être annulée", current_status=order.status)
            previous = order.status
            order.status = "cancelled"
            order.cancelled_at = utcnow()
            self._flush(session)
            result = to_order_dto(order)
            buyer_phone = order.buyer.phone if order.buyer else order.phone
            log_event("info", "order.cancelled", order_id=order_id, previous=previous, by=actor.id)

        self._notify(buyer_phone, "cancelled", order_id)
        return result

    def assign_driver(self, order_id: int, actor: Actor, driver_id) -> Dict:
        driver_id = ensure_positive_int(driver_id, "driver_id", minimum=1)
        with self._session_factory() as session:
            order = self._load(session, order_id)
            if not actor.is_admin:
                if actor.role != "restaurant" or order.restaurant is None or order.restaurant.user_id != actor.id:
                    raise ForbiddenError()
            driver = session.get(User, driver_id)
            if driver is None or driver.role != "livreur":
                raise ValidationError("Livreur invalide", driver_id=driver_id)
            check_transition(order.status, "out_for_delivery")
            order.driver_id = driver_id
            order.status = "out_for_delivery"
            self._flush(session)
            result = to_order_dto(order)
            buyer_phone = order.buyer.phone if order.buyer else order.phone
            log_event("info", "order.driver_assigned", order_id=order_id, driver_id=driver_id, by=actor.id)

        self._notify(buyer_phone, "out_for_delivery", order_id)
        return result
