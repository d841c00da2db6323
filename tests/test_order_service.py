import pytest

from kolia.common.errors import ForbiddenError, InvalidItem, OrderNotFound, RestaurantNotFound, ValidationError
from kolia.common.models import Order, OrderItem


def _count(session_factory, model):
    with session_factory() as session:
        return session.query(model).count()


def test_create_order_prices_from_dish_rows(placed_order):
    assert placed_order["subtotal"] == 77940.0
    assert placed_order["delivery_fee"] == 5000.0
    assert placed_order["total"] == 82940.0
    assert placed_order["commission"] == 11691.0
    assert placed_order["status"] == "pending"
    assert placed_order["payment_status"] == "pending"
    items = placed_order["order_items"]
    assert len(items) == 1
    assert items[0]["dish_id"] == 101
    assert items[0]["quantity"] == 2
    # the price sent by the client is ignored
    assert items[0]["price"] == 38970.0
    assert items[0]["total"] == 77940.0


def test_create_order_sums_several_lines(order_service, actors, order_payload):
    order_payload["items"] = [{"dishId": 101, "quantity": 1}, {"dish_id": 101, "quantity": 3}]
    order = order_service.create_order(actors["client"], order_payload)
    assert order["subtotal"] == 38970.0 * 4
    assert order["total"] == 38970.0 * 4 + 5000.0
    assert len(order["order_items"]) == 2


def test_create_order_notifies_buyer_after_commit(placed_order, notifier):
    assert notifier.sent == [
        ("+243970111222", f"Votre commande #{placed_order['id']} a été confirmée. Total: 82940.00 CDF")
    ]


def test_dish_from_other_restaurant_is_rejected_and_nothing_written(
    order_service, actors, order_payload, session_factory, notifier
):
    order_payload["items"] = [{"dishId": 101, "quantity": 1}, {"dishId": 201, "quantity": 1}]
    with pytest.raises(InvalidItem) as exc:
        order_service.create_order(actors["client"], order_payload)
    assert exc.value.dish_id == 201
    assert exc.value.message == "Plat non disponible: 201"
    assert _count(session_factory, Order) == 0
    assert _count(session_factory, OrderItem) == 0
    assert notifier.sent == []


def test_unavailable_dish_is_rejected(order_service, actors, order_payload):
    order_payload["items"] = [{"dishId": 102, "quantity": 1}]
    with pytest.raises(InvalidItem):
        order_service.create_order(actors["client"], order_payload)


def test_unknown_restaurant(order_service, actors, order_payload):
    order_payload["restaurantId"] = 9999
    with pytest.raises(RestaurantNotFound):
        order_service.create_order(actors["client"], order_payload)


def test_missing_delivery_fee_uses_default(order_service, actors, order_payload, world):
    order_payload["restaurantId"] = world["mama_id"]
    order_payload["items"] = [{"dishId": 201, "quantity": 3}]
    order = order_service.create_order(actors["client"], order_payload)
    assert order["delivery_fee"] == 5000.0
    assert order["total"] == 17000.0
    assert order["commission"] == 1800.0


@pytest.mark.parametrize(
    "patch",
    [
        {"items": []},
        {"items": [{"dishId": 101, "quantity": 0}]},
        {"items": [{"dishId": 101, "quantity": 1.5}]},
        {"phone": "0970111222"},
        {"paymentMethod": "bitcoin"},
        {"deliveryAddress": "Nyw"},
    ],
)
def test_invalid_payloads(order_service, actors, order_payload, patch, session_factory):
    order_payload.update(patch)
    with pytest.raises(ValidationError):
        order_service.create_order(actors["client"], order_payload)
    assert _count(session_factory, Order) == 0


def test_get_order_visibility(order_service, actors, placed_order):
    order_id = placed_order["id"]
    assert order_service.get_order(order_id, actors["client"])["id"] == order_id
    assert order_service.get_order(order_id, actors["owner"])["id"] == order_id
    assert order_service.get_order(order_id, actors["admin"])["id"] == order_id
    for key in ("other_client", "other_owner", "driver"):
        with pytest.raises(ForbiddenError):
            order_service.get_order(order_id, actors[key])
    with pytest.raises(OrderNotFound):
        order_service.get_order(order_id + 100, actors["admin"])


def test_list_orders_by_owner(order_service, actors, placed_order, world):
    mine = order_service.list_user_orders(actors["client"])
    assert [o["id"] for o in mine] == [placed_order["id"]]
    assert order_service.list_user_orders(actors["other_client"]) == []

    restaurant_orders = order_service.list_restaurant_orders(actors["owner"], world["raha_id"])
    assert [o["id"] for o in restaurant_orders] == [placed_order["id"]]
    with pytest.raises(ForbiddenError):
        order_service.list_restaurant_orders(actors["other_owner"], world["raha_id"])

    assert order_service.list_orders(status="delivered") == []
    assert len(order_service.list_orders(status="pending")) == 1
