from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import relationship
from .base import Base


COMMUNES = ("Kadutu", "Ibanda", "Bagira")
RESTAURANT_STATUSES = ("active", "inactive", "suspended")


class Restaurant(Base):
    __tablename__ = "restaurants"
    __table_args__ = (
        CheckConstraint("commune IN ('Kadutu', 'Ibanda', 'Bagira')", name="ck_restaurants_commune"),
        CheckConstraint("status IN ('active', 'inactive', 'suspended')", name="ck_restaurants_status"),
        CheckConstraint("delivery_fee >= 0", name="ck_restaurants_delivery_fee"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    address = Column(Text, nullable=False)
    phone = Column(String(20), nullable=False)
    commune = Column(String(50), nullable=False, index=True)
    category = Column(String(100), nullable=False, index=True)
    delivery_fee = Column(Numeric(10, 2), nullable=True, default=5000)
    delivery_time = Column(String(50), nullable=False, default="25-35 min")
    rating = Column(Numeric(3, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="restaurants")
    dishes = relationship("Dish", back_populates="restaurant", cascade="all, delete-orphan", passive_deletes=True)
    orders = relationship("Order", back_populates="restaurant", cascade="all, delete-orphan", passive_deletes=True)
