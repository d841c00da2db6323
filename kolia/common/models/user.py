from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, Text, func
from sqlalchemy.orm import relationship
from .base import Base


ROLES = ("client", "restaurant", "livreur", "admin")


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('client', 'restaurant', 'livreur', 'admin')", name="ck_users_role"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)
    address = Column(Text, nullable=False)
    role = Column(String(20), nullable=False, default="client", index=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    restaurants = relationship("Restaurant", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)
    orders = relationship(
        "Order",
        back_populates="buyer",
        foreign_keys="Order.user_id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
