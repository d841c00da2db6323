from decimal import Decimal
from typing import Any, Dict, Optional


def _money(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def _ts(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def to_user_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "name": row.name,
        "email": row.email,
        "phone": row.phone,
        "address": row.address,
        "role": row.role,
        "created_at": _ts(row.created_at),
    }


def to_restaurant_dto(row: Any, dishes=None) -> Dict:
    data = {
        "id": row.id,
        "user_id": row.user_id,
        "name": row.name,
        "description": row.description,
        "address": row.address,
        "phone": row.phone,
        "commune": row.commune,
        "category": row.category,
        "delivery_fee": _money(row.delivery_fee),
        "delivery_time": row.delivery_time,
        "rating": _money(row.rating),
        "status": row.status,
    }
    if dishes is not None:
        data["dishes"] = [to_dish_dto(d) for d in dishes]
    return data


def to_dish_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "restaurant_id": row.restaurant_id,
        "name": row.name,
        "description": row.description,
        "price": _money(row.price),
        "category": row.category,
        "is_vegetarian": bool(row.is_vegetarian),
        "is_vegan": bool(row.is_vegan),
        "is_gluten_free": bool(row.is_gluten_free),
        "is_spicy": bool(row.is_spicy),
        "preparation_time": row.preparation_time,
        "ingredients": row.ingredients,
        "is_available": bool(row.is_available),
    }


def to_order_item_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "order_id": row.order_id,
        "dish_id": row.dish_id,
        "quantity": row.quantity,
        "price": _money(row.price),
        "total": _money(row.total),
    }


def to_order_dto(row: Any, with_items: bool = True) -> Dict:
    data = {
        "id": row.id,
        "user_id": row.user_id,
        "restaurant_id": row.restaurant_id,
        "driver_id": row.driver_id,
        "subtotal": _money(row.subtotal),
        "delivery_fee": _money(row.delivery_fee),
        "commission": _money(row.commission),
        "total": _money(row.total),
        "delivery_address": row.delivery_address,
        "phone": row.phone,
        "payment_method": row.payment_method,
        "payment_status": row.payment_status,
        "status": row.status,
        "notes": row.notes,
        "version": row.version,
        "delivered_at": _ts(row.delivered_at),
        "cancelled_at": _ts(row.cancelled_at),
        "created_at": _ts(row.created_at),
    }
    if with_items:
        data["order_items"] = [to_order_item_dto(it) for it in row.items]
    return data


def to_transaction_dto(row: Any) -> Dict:
    return {
        "transaction_id": row.id,
        "order_id": row.order_id,
        "user_id": row.user_id,
        "amount": _money(row.amount),
        "currency": row.currency,
        "status": row.status,
        "payment_method": row.payment_method,
        "refund_reason": row.refund_reason,
        "created_at": _ts(row.created_at),
        "completed_at": _ts(row.completed_at),
        "refunded_at": _ts(row.refunded_at),
    }
