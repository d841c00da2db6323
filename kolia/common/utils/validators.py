import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

from ..errors import ValidationError
from ..models import COMMUNES, PAYMENT_METHODS


PHONE_RE = re.compile(r"^\+243[0-9]{9}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
REGISTRABLE_ROLES = ("client", "restaurant", "livreur")


def field(payload: Mapping, camel: str, snake: Optional[str] = None, default: Any = None) -> Any:
    """Read a request field accepting both camelCase and snake_case keys."""
    if camel in payload:
        return payload[camel]
    if snake and snake in payload:
        return payload[snake]
    return default


def ensure_positive_int(value: Any, name: str, minimum: int = 0) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    try:
        v = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")
    if isinstance(value, float) and value != v:
        raise ValidationError(f"{name} must be an integer")
    if v < minimum:
        raise ValidationError(f"{name} must be >= {minimum}")
    return v


def ensure_amount(value: Any, name: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{name} is required")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{name} must be a number")
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"{name} must be >= 0")
    return amount


def ensure_text(value: Any, name: str, min_len: int = 1, max_len: int = 255, required: bool = True) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{name} is required")
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    v = value.strip()
    if len(v) < min_len or len(v) > max_len:
        raise ValidationError(f"{name} length must be between {min_len} and {max_len}")
    return v


def ensure_phone(value: Any, name: str = "phone") -> str:
    v = ensure_text(value, name, max_len=20)
    if not PHONE_RE.match(v):
        raise ValidationError(f"{name} must match +243XXXXXXXXX")
    return v


def ensure_email(value: Any) -> str:
    v = ensure_text(value, "email")
    if not EMAIL_RE.match(v):
        raise ValidationError("email is invalid")
    return v.lower()


def ensure_currency(value: Any, expected: str) -> str:
    """Accept only the platform currency; prices are stored in it."""
    v = ensure_text(value, "currency", min_len=3, max_len=3).upper()
    if v != expected:
        raise ValidationError(f"currency must be {expected}", currency=v)
    return v


def ensure_choice(value: Any, name: str, choices) -> str:
    if value not in choices:
        raise ValidationError(f"{name} must be one of {', '.join(choices)}")
    return value


def validate_cart_items(items: Any) -> List[Dict[str, int]]:
    """Normalize cart lines to ``[{"dish_id", "quantity"}]``; any price sent is dropped."""
    if not isinstance(items, list) or not items:
        raise ValidationError("items must contain at least one dish")
    lines = []
    for raw in items:
        if not isinstance(raw, Mapping):
            raise ValidationError("each item must be an object")
        lines.append(
            {
                "dish_id": ensure_positive_int(field(raw, "dishId", "dish_id"), "dish_id", minimum=1),
                "quantity": ensure_positive_int(raw.get("quantity"), "quantity", minimum=1),
            }
        )
    return lines


def validate_order_payload(payload: Mapping) -> Dict[str, Any]:
    return {
        "restaurant_id": ensure_positive_int(field(payload, "restaurantId", "restaurant_id"), "restaurant_id", minimum=1),
        "items": validate_cart_items(payload.get("items")),
        "delivery_address": ensure_text(
            field(payload, "deliveryAddress", "delivery_address"), "delivery_address", min_len=5
        ),
        "phone": ensure_phone(payload.get("phone")),
        "payment_method": ensure_choice(
            field(payload, "paymentMethod", "payment_method"), "payment_method", PAYMENT_METHODS
        ),
        "notes": ensure_text(payload.get("notes"), "notes", max_len=500, required=False),
    }


def validate_restaurant_payload(payload: Mapping, partial: bool = False) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    checks = {
        "name": lambda v: ensure_text(v, "name", min_len=2, max_len=100),
        "description": lambda v: ensure_text(v, "description", max_len=500, required=False),
        "address": lambda v: ensure_text(v, "address", min_len=5),
        "phone": ensure_phone,
        "commune": lambda v: ensure_choice(v, "commune", COMMUNES),
        "category": lambda v: ensure_text(v, "category", max_len=100),
        "delivery_fee": lambda v: ensure_amount(v, "delivery_fee"),
        "delivery_time": lambda v: ensure_text(v, "delivery_time", max_len=50),
    }
    required = {"name", "address", "phone", "commune", "category"}
    for key, check in checks.items():
        camel = _camel(key)
        if camel in payload or key in payload:
            data[key] = check(field(payload, camel, key))
        elif key in required and not partial:
            raise ValidationError(f"{key} is required")
    return data


def validate_dish_payload(payload: Mapping, partial: bool = False) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    checks = {
        "name": lambda v: ensure_text(v, "name", min_len=2, max_len=100),
        "description": lambda v: ensure_text(v, "description", max_len=500),
        "price": lambda v: ensure_amount(v, "price"),
        "category": lambda v: ensure_text(v, "category", max_len=100),
        "preparation_time": lambda v: ensure_positive_int(v, "preparation_time", minimum=1),
        "ingredients": lambda v: ensure_text(v, "ingredients", max_len=500, required=False),
    }
    for flag in ("is_vegetarian", "is_vegan", "is_gluten_free", "is_spicy", "is_available"):
        checks[flag] = _bool_check(flag)
    required = {"name", "description", "price", "category"}
    for key, check in checks.items():
        camel = _camel(key)
        if camel in payload or key in payload:
            data[key] = check(field(payload, camel, key))
        elif key in required and not partial:
            raise ValidationError(f"{key} is required")
    return data


def _bool_check(name: str):
    def check(value: Any) -> bool:
        if not isinstance(value, bool):
            raise ValidationError(f"{name} must be a boolean")
        return value

    return check


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(p.title() for p in rest)
