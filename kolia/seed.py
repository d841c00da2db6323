"""Create the schema and load the Bukavu demo accounts, restaurant and dishes."""

from __future__ import annotations

from decimal import Decimal

from werkzeug.security import generate_password_hash

from .common.config import load_env
from .common.db.session import build_engine, init_db, make_session_factory
from .common.models import Dish, Restaurant, User
from .common.services.logging import configure_logging, log_event


DEMO_PASSWORD = "password"

DEMO_USERS = [
    ("Admin KOLIA", "admin@kolia.cd", "+243970000000", "Bukavu, Sud-Kivu", "admin"),
    ("Jean Mukamba", "client@bukavu.com", "+243970111222", "Quartier Nyawera, Bukavu", "client"),
    ("Restaurant Kivu Raha", "restaurant@bukavu.com", "+243970123456", "Avenue Patrice Lumumba, Ibanda", "restaurant"),
    ("Paul Livreur", "livreur@bukavu.com", "+243970555666", "Quartier Kadutu, Bukavu", "livreur"),
]

DEMO_DISHES = [
    ("Poulet mayo", "Poulet grillé, sauce mayonnaise maison", "38970", "Plats", False, False),
    ("Sambaza frits", "Petits poissons du lac Kivu, frits", "12000", "Poissons", False, False),
    ("Lenga-lenga", "Amarante sautée aux oignons", "6000", "Accompagnements", True, True),
    ("Pili-pili maison", "Sauce piment fraîche", "1500", "Sauces", True, True),
]


def upsert_user(session, name, email, phone, address, role) -> User:
    user = session.query(User).filter(User.email == email).first()
    if user is None:
        user = User(email=email, password=generate_password_hash(DEMO_PASSWORD))
        session.add(user)
    user.name = name
    user.phone = phone
    user.address = address
    user.role = role
    return user


def seed_demo(session_factory) -> dict:
    with session_factory() as session:
        users = {
            role: upsert_user(session, name, email, phone, address, role)
            for name, email, phone, address, role in DEMO_USERS
        }
        session.flush()

        owner = users["restaurant"]
        restaurant = session.query(Restaurant).filter(Restaurant.user_id == owner.id).first()
        if restaurant is None:
            restaurant = Restaurant(
                user_id=owner.id,
                name="Kivu Raha",
                description="Cuisine congolaise au bord du lac",
                address="Avenue Patrice Lumumba, Ibanda",
                phone=owner.phone,
                commune="Ibanda",
                category="Congolaise",
                delivery_fee=Decimal("5000"),
                status="active",
            )
            session.add(restaurant)
            session.flush()

        existing = {d.name for d in restaurant.dishes}
        created = 0
        for name, desc, price, category, vegetarian, vegan in DEMO_DISHES:
            if name in existing:
                continue
            session.add(
                Dish(
                    restaurant_id=restaurant.id,
                    name=name,
                    description=desc,
                    price=Decimal(price),
                    category=category,
                    is_vegetarian=vegetarian,
                    is_vegan=vegan,
                )
            )
            created += 1
        log_event("info", "seed.done", users=len(users), restaurant_id=restaurant.id, dishes_created=created)
        return {"users": len(users), "restaurant_id": restaurant.id, "dishes_created": created}


def main() -> None:
    config = load_env()
    configure_logging(config.log_level)
    engine = build_engine(config.database_url)
    init_db(engine)
    result = seed_demo(make_session_factory(engine))
    print(f"[kolia-seed] {result}")


if __name__ == "__main__":
    main()
