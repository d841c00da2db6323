from .base import Base
from .user import User, ROLES
from .restaurant import Restaurant, COMMUNES, RESTAURANT_STATUSES
from .dish import Dish
from .order import Order, ORDER_STATUSES, PAYMENT_METHODS, PAYMENT_STATUSES
from .order_item import OrderItem
from .transaction import Transaction, TRANSACTION_STATUSES, MOCK_METHOD, GATEWAY_METHOD

__all__ = [
    "Base",
    "User",
    "Restaurant",
    "Dish",
    "Order",
    "OrderItem",
    "Transaction",
    "ROLES",
    "COMMUNES",
    "RESTAURANT_STATUSES",
    "ORDER_STATUSES",
    "PAYMENT_METHODS",
    "PAYMENT_STATUSES",
    "TRANSACTION_STATUSES",
    "MOCK_METHOD",
    "GATEWAY_METHOD",
]
