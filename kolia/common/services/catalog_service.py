from typing import Dict, List, Mapping, Optional
from ..db.session import get_session
from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..models.dish import Dish
from ..models.restaurant import RESTAURANT_STATUSES, Restaurant
from ..utils.dto import to_dish_dto, to_restaurant_dto
from ..utils.validators import ensure_choice, validate_dish_payload, validate_restaurant_payload
from .auth_service import Actor
from .logging import log_event


class CatalogService:
    """Restaurants and their dishes.

    Responsibilities:
    - Public listing of active restaurants and available dishes
    - Owner-scoped create/update/delete; admins may act on any restaurant
    """

    def __init__(self, session_factory=get_session, default_delivery_fee=None):
        self._session_factory = session_factory
        self._default_delivery_fee = default_delivery_fee

    @staticmethod
    def _ensure_owner(restaurant: Restaurant, actor: Actor) -> None:
        if actor.is_admin:
            return
        if actor.role != "restaurant" or restaurant.user_id != actor.id:
            raise ForbiddenError()

    @staticmethod
    def _load_restaurant(session, restaurant_id: int) -> Restaurant:
        restaurant = session.get(Restaurant, restaurant_id)
        if restaurant is None:
            raise NotFoundError("Restaurant non trouvé")
        return restaurant

    # restaurants

    def list_restaurants(
        self,
        *,
        commune: Optional[str] = None,
        category: Optional[str] = None,
        status: Optional[str] = "active",
        query: Optional[str] = None,
    ) -> List[Dict]:
        with self._session_factory() as session:
            q = session.query(Restaurant)
            if status:
                q = q.filter(Restaurant.status == status)
            if commune:
                q = q.filter(Restaurant.commune == commune)
            if category and category != "Tous":
                q = q.filter(Restaurant.category == category)
            if query:
                q = q.filter(Restaurant.name.ilike(f"%{query}%"))
            rows = q.order_by(Restaurant.rating.desc(), Restaurant.id.asc()).all()
            return [to_restaurant_dto(r) for r in rows]

    def get_restaurant(self, restaurant_id: int) -> Dict:
        with self._session_factory() as session:
            restaurant = self._load_restaurant(session, restaurant_id)
            dishes = [d for d in restaurant.dishes if d.is_available]
            return to_restaurant_dto(restaurant, dishes=dishes)

    def get_owner_restaurant(self, actor: Actor) -> Dict:
        with self._session_factory() as session:
            restaurant = session.query(Restaurant).filter(Restaurant.user_id == actor.id).first()
            if restaurant is None:
                raise NotFoundError("Aucun restaurant associé à ce compte")
            return to_restaurant_dto(restaurant, dishes=list(restaurant.dishes))

    def create_restaurant(self, actor: Actor, payload: Mapping) -> Dict:
        data = validate_restaurant_payload(payload)
        data.setdefault("delivery_fee", self._default_delivery_fee)
        with self._session_factory() as session:
            if session.query(Restaurant.id).filter(Restaurant.user_id == actor.id).first():
                raise ValidationError("Ce compte possède déjà un restaurant")
            restaurant = Restaurant(user_id=actor.id, status="active", **data)
            session.add(restaurant)
            session.flush()
            log_event("info", "restaurant.created", restaurant_id=restaurant.id, owner_id=actor.id)
            return to_restaurant_dto(restaurant)

    def update_restaurant(self, actor: Actor, restaurant_id: int, payload: Mapping) -> Dict:
        data = validate_restaurant_payload(payload, partial=True)
        with self._session_factory() as session:
            restaurant = self._load_restaurant(session, restaurant_id)
            self._ensure_owner(restaurant, actor)
            for key, value in data.items():
                setattr(restaurant, key, value)
            session.flush()
            return to_restaurant_dto(restaurant)

    def set_restaurant_status(self, restaurant_id: int, status: str) -> Dict:
        status = ensure_choice(status, "status", RESTAURANT_STATUSES)
        with self._session_factory() as session:
            restaurant = self._load_restaurant(session, restaurant_id)
            restaurant.status = status
            session.flush()
            log_event("info", "restaurant.status_changed", restaurant_id=restaurant_id, status=status)
            return to_restaurant_dto(restaurant)

    def delete_restaurant(self, actor: Actor, restaurant_id: int) -> None:
        with self._session_factory() as session:
            restaurant = self._load_restaurant(session, restaurant_id)
            self._ensure_owner(restaurant, actor)
            session.delete(restaurant)
            session.flush()
            log_event("info", "restaurant.deleted", restaurant_id=restaurant_id, by=actor.id)
        return None

    # dishes

    def list_dishes(self, restaurant_id: int, *, category: Optional[str] = None, available_only: bool = True) -> List[Dict]:
        with self._session_factory() as session:
            q = session.query(Dish).filter(Dish.restaurant_id == restaurant_id)
            if available_only:
                q = q.filter(Dish.is_available.is_(True))
            if category and category != "Tous":
                q = q.filter(Dish.category == category)
            return [to_dish_dto(d) for d in q.order_by(Dish.id.desc()).all()]

    def get_dish(self, dish_id: int) -> Dict:
        with self._session_factory() as session:
            dish = session.get(Dish, dish_id)
            if dish is None:
                raise NotFoundError("Plat non trouvé")
            return to_dish_dto(dish)

    def create_dish(self, actor: Actor, payload: Mapping) -> Dict:
        data = validate_dish_payload(payload)
        with self._session_factory() as session:
            restaurant = session.query(Restaurant).filter(Restaurant.user_id == actor.id).first()
            if restaurant is None:
                raise NotFoundError("Aucun restaurant associé à ce compte")
            dish = Dish(restaurant_id=restaurant.id, **data)
            session.add(dish)
            session.flush()
            return to_dish_dto(dish)

    def update_dish(self, actor: Actor, dish_id: int, payload: Mapping) -> Dict:
        data = validate_dish_payload(payload, partial=True)
        with self._session_factory() as session:
            dish = session.get(Dish, dish_id)
            if dish is None:
                raise NotFoundError("Plat non trouvé")
            self._ensure_owner(dish.restaurant, actor)
            for key, value in data.items():
                setattr(dish, key, value)
            session.flush()
            return to_dish_dto(dish)

    def delete_dish(self, actor: Actor, dish_id: int) -> None:
        with self._session_factory() as session:
            dish = session.get(Dish, dish_id)
            if dish is None:
                raise NotFoundError("Plat non trouvé")
            self._ensure_owner(dish.restaurant, actor)
            session.delete(dish)
        return None
