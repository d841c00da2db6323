from dataclasses import replace
from decimal import Decimal

import pytest

from kolia.app import create_app
from kolia.common.config import AppConfig
from kolia.common.db.session import build_engine, init_db, make_session_factory
from kolia.common.errors import GatewayError
from kolia.common.models import Dish, Restaurant, User
from kolia.common.services.auth_service import Actor, AuthService
from kolia.common.services.order_service import OrderService
from kolia.common.services.order_status import OrderStatusMachine
from kolia.common.services.payment_service import PaymentService


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send(self, phone_number, message):
        self.sent.append((phone_number, message))


class FakeGateway:
    """Stands in for CinetPay; toggle ``fail_init`` / ``status_code`` per test."""

    def __init__(self):
        self.fail_init = False
        self.status_code = "00"
        self.reported_amount = "82940"
        self.reported_currency = "CDF"
        self.initialized = []
        self.checked = []

    def initialize(self, **kwargs):
        if self.fail_init:
            raise GatewayError("Configuration CinetPay manquante")
        self.initialized.append(kwargs)
        tx_id = kwargs["transaction_id"]
        return {
            "payment_url": f"https://checkout.example/pay/{tx_id}",
            "payment_token": f"tok-{tx_id}",
            "raw": {"code": "201"},
        }

    def check_status(self, transaction_id):
        self.checked.append(transaction_id)
        return {
            "success": self.status_code == "00",
            "code": self.status_code,
            "amount": self.reported_amount,
            "currency": self.reported_currency,
            "raw": {"code": self.status_code},
        }


@pytest.fixture
def config():
    return AppConfig(
        database_url="sqlite://",
        secret_key="test-secret",
        log_level="WARNING",
        environment="test",
        currency="CDF",
        commission_rate=Decimal("0.15"),
        default_delivery_fee=Decimal("5000"),
    )


@pytest.fixture
def prod_config(config):
    return replace(config, environment="production")


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def gateway():
    return FakeGateway()


def _user(session, name, email, phone, role):
    user = User(name=name, email=email, password="x", phone=phone, address="Avenue Lumumba, Bukavu", role=role)
    session.add(user)
    return user


@pytest.fixture
def world(session_factory):
    """Two restaurants with their owners, two clients, a driver and an admin.

    Dish 101 (Poulet mayo, 38970) and 102 (unavailable) belong to Kivu Raha,
    whose delivery fee is 5000; dish 201 belongs to the other restaurant.
    """
    with session_factory() as session:
        users = {
            "admin": _user(session, "Admin KOLIA", "admin@kolia.cd", "+243970000000", "admin"),
            "client": _user(session, "Jean Mukamba", "client@bukavu.com", "+243970111222", "client"),
            "other_client": _user(session, "Marie Zawadi", "marie@bukavu.com", "+243970222333", "client"),
            "owner": _user(session, "Kivu Raha", "restaurant@bukavu.com", "+243970123456", "restaurant"),
            "other_owner": _user(session, "Chez Mama", "mama@bukavu.com", "+243970654321", "restaurant"),
            "driver": _user(session, "Paul Livreur", "livreur@bukavu.com", "+243970555666", "livreur"),
            "other_driver": _user(session, "Eric Moto", "eric@bukavu.com", "+243970777888", "livreur"),
        }
        session.flush()
        raha = Restaurant(
            user_id=users["owner"].id,
            name="Kivu Raha",
            address="Avenue Patrice Lumumba, Ibanda",
            phone="+243970123456",
            commune="Ibanda",
            category="Congolaise",
            delivery_fee=Decimal("5000"),
        )
        mama = Restaurant(
            user_id=users["other_owner"].id,
            name="Chez Mama",
            address="Route d'Uvira, Kadutu",
            phone="+243970654321",
            commune="Kadutu",
            category="Congolaise",
            delivery_fee=None,
        )
        session.add_all([raha, mama])
        session.flush()
        session.add_all(
            [
                Dish(id=101, restaurant_id=raha.id, name="Poulet mayo", price=Decimal("38970"), category="Plats"),
                Dish(
                    id=102,
                    restaurant_id=raha.id,
                    name="Tilapia braisé",
                    price=Decimal("25000"),
                    category="Poissons",
                    is_available=False,
                ),
                Dish(id=201, restaurant_id=mama.id, name="Fufu", price=Decimal("4000"), category="Plats"),
            ]
        )
        actors = {key: Actor.from_user(u) for key, u in users.items()}
        return {"actors": actors, "raha_id": raha.id, "mama_id": mama.id}


@pytest.fixture
def actors(world):
    return world["actors"]


@pytest.fixture
def order_service(session_factory, notifier):
    return OrderService(
        session_factory,
        notifier=notifier,
        commission_rate=Decimal("0.15"),
        default_delivery_fee=Decimal("5000"),
        currency="CDF",
    )


@pytest.fixture
def status_machine(session_factory, notifier):
    return OrderStatusMachine(session_factory, notifier=notifier)


@pytest.fixture
def payment_service(config, gateway, session_factory):
    return PaymentService(config, gateway, session_factory=session_factory)


@pytest.fixture
def order_payload(world):
    return {
        "restaurantId": world["raha_id"],
        "items": [{"dishId": 101, "quantity": 2, "price": 1}],
        "deliveryAddress": "Quartier Nyawera, Bukavu",
        "phone": "+243970111222",
        "paymentMethod": "mobile",
    }


@pytest.fixture
def placed_order(order_service, actors, order_payload):
    return order_service.create_order(actors["client"], order_payload)


@pytest.fixture
def app(config, session_factory, gateway, notifier, world):
    return create_app(config, session_factory=session_factory, gateway=gateway, notifier=notifier)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(config, session_factory, actors):
    auth = AuthService(config.secret_key, session_factory=session_factory)

    def headers(key):
        actor = actors[key]
        return {"Authorization": f"Bearer {auth.issue_token(actor.id, actor.role)}"}

    return headers
