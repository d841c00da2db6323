from decimal import Decimal
from typing import Dict, List, Mapping, Optional
from sqlalchemy.orm import selectinload
from ..db.session import get_session
from ..errors import ForbiddenError, InvalidItem, OrderNotFound, RestaurantNotFound
from ..models.dish import Dish
from ..models.order import Order
from ..models.order_item import OrderItem
from ..models.restaurant import Restaurant
from ..utils.dto import to_order_dto
from ..utils.validators import validate_order_payload
from .auth_service import Actor
from .logging import log_event


CENT = Decimal("0.01")


def can_view_order(order: Order, actor: Actor) -> bool:
    if actor.is_admin:
        return True
    if actor.role == "client":
        return order.user_id == actor.id
    if actor.role == "restaurant":
        return order.restaurant is not None and order.restaurant.user_id == actor.id
    if actor.role == "livreur":
        return order.driver_id == actor.id
    return False


class OrderService:
    """Order creation from a cart payload and order queries.

    Prices always come from the dish rows; any price sent by the client is
    discarded before it reaches this service.
    """

    def __init__(
        self,
        session_factory=get_session,
        *,
        notifier=None,
        commission_rate: Decimal = Decimal("0.15"),
        default_delivery_fee: Decimal = Decimal("5000"),
        currency: str = "CDF",
    ):
        self._session_factory = session_factory
        self._notifier = notifier
        self._commission_rate = Decimal(str(commission_rate))
        self._default_delivery_fee = Decimal(str(default_delivery_fee))
        self._currency = currency

    def create_order(self, buyer: Actor, payload: Mapping) -> Dict:
        """Validate, price and persist an order with its items in one transaction."""
        data = validate_order_payload(payload)
        restaurant_id = data["restaurant_id"]

        with self._session_factory() as session:
            restaurant = session.get(Restaurant, restaurant_id)
            if restaurant is None:
                raise RestaurantNotFound(restaurant_id)

            subtotal = Decimal("0")
            lines = []
            for line in data["items"]:
                dish = (
                    session.query(Dish)
                    .filter(
                        Dish.id == line["dish_id"],
                        Dish.restaurant_id == restaurant_id,
                        Dish.is_available.is_(True),
                    )
                    .first()
                )
                if dish is None:
                    raise InvalidItem(line["dish_id"])
                price = Decimal(str(dish.price))
                item_total = price * line["quantity"]
                subtotal += item_total
                lines.append((dish.id, line["quantity"], price, item_total))

            delivery_fee = (
                Decimal(str(restaurant.delivery_fee))
                if restaurant.delivery_fee is not None
                else self._default_delivery_fee
            )
            commission = (subtotal * self._commission_rate).quantize(CENT)
            total = subtotal + delivery_fee

            order = Order(
                user_id=buyer.id,
                restaurant_id=restaurant_id,
                subtotal=subtotal,
                delivery_fee=delivery_fee,
                commission=commission,
                total=total,
                delivery_address=data["delivery_address"],
                phone=data["phone"],
                payment_method=data["payment_method"],
                payment_status="pending",
                status="pending",
                notes=data["notes"],
            )
            order.items = [
                OrderItem(dish_id=dish_id, quantity=qty, price=price, total=item_total)
                for dish_id, qty, price, item_total in lines
            ]
            session.add(order)
            session.flush()
            result = to_order_dto(order)
            log_event(
                "info",
                "order.created",
                order_id=order.id,
                restaurant_id=restaurant_id,
                items=len(lines),
                subtotal=float(subtotal),
                total=float(total),
            )

        # notify only once the order and its items are committed
        if self._notifier is not None:
            self._notifier.send(
                result["phone"],
                f"Votre commande #{result['id']} a été confirmée. Total: {total} {self._currency}",
            )
        return result

    def get_order(self, order_id: int, actor: Actor) -> Dict:
        with self._session_factory() as session:
            order = (
                session.query(Order)
                .options(selectinload(Order.items), selectinload(Order.restaurant))
                .filter(Order.id == order_id)
                .first()
            )
            if order is None:
                raise OrderNotFound()
            if not can_view_order(order, actor):
                raise ForbiddenError()
            return to_order_dto(order)

    def list_orders(
        self,
        *,
        status: Optional[str] = None,
        restaurant_id: Optional[int] = None,
        user_id: Optional[int] = None,
        driver_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Dict]:
        with self._session_factory() as session:
            q = session.query(Order).options(selectinload(Order.items))
            if status:
                q = q.filter(Order.status == status)
            if restaurant_id:
                q = q.filter(Order.restaurant_id == restaurant_id)
            if user_id:
                q = q.filter(Order.user_id == user_id)
            if driver_id:
                q = q.filter(Order.driver_id == driver_id)
            rows = q.order_by(Order.created_at.desc(), Order.id.desc()).offset(offset).limit(limit).all()
            return [to_order_dto(o) for o in rows]

    def list_user_orders(self, actor: Actor, *, status: Optional[str] = None, limit: int = 20, offset: int = 0) -> List[Dict]:
        return self.list_orders(status=status, user_id=actor.id, limit=limit, offset=offset)

    def list_driver_orders(self, actor: Actor, *, status: Optional[str] = None, limit: int = 20, offset: int = 0) -> List[Dict]:
        return self.list_orders(status=status, driver_id=actor.id, limit=limit, offset=offset)

    def list_restaurant_orders(
        self, actor: Actor, restaurant_id: int, *, status: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> List[Dict]:
        with self._session_factory() as session:
            restaurant = session.get(Restaurant, restaurant_id)
            if restaurant is None or (not actor.is_admin and restaurant.user_id != actor.id):
                raise ForbiddenError()
        return self.list_orders(status=status, restaurant_id=restaurant_id, limit=limit, offset=offset)
