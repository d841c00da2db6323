import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
import json
from typing import Optional

from dotenv import load_dotenv


ENVIRONMENTS = {"development", "production", "test"}


@dataclass
class AppConfig:
    database_url: str
    secret_key: str
    log_level: str
    environment: str
    currency: str
    commission_rate: Decimal
    default_delivery_fee: Decimal
    jwt_expire_days: int = 7
    transaction_prefix: str = "KOLIA"
    frontend_url: str = "http://localhost:5173"
    backend_url: str = "http://localhost:5000"
    cinetpay_api_key: str = ""
    cinetpay_site_id: str = ""
    cinetpay_base_url: str = "https://api-checkout.cinetpay.com"
    gateway_timeout: float = 15.0
    whatsapp_api_url: str = ""
    whatsapp_api_token: str = ""
    customer_city: str = "Bukavu"
    customer_state: str = "Sud-Kivu"
    customer_country: str = "CD"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_return_url(self, transaction_id: str) -> str:
        base = self.frontend_url.rstrip("/")
        return f"{base}/order-success?transaction_id={transaction_id}"

    def get_mock_payment_url(self, transaction_id: str) -> str:
        base = self.frontend_url.rstrip("/")
        return f"{base}/mock-payment?transaction_id={transaction_id}"

    def get_notify_url(self) -> str:
        base = self.backend_url.rstrip("/")
        return f"{base}/api/payments/webhook"


def validate_currency(value: Optional[str]) -> str:
    v = (value or "CDF").strip().upper()
    if len(v) != 3:
        raise ValueError("Invalid currency code: expected ISO4217 length 3")
    return v


def validate_commission_rate(value) -> Decimal:
    try:
        rate = Decimal(str(value if value not in (None, "") else "0.15"))
    except InvalidOperation:
        raise ValueError(f"Invalid commission rate: {value!r}")
    if rate < 0 or rate > 1:
        raise ValueError("Commission rate must be between 0 and 1")
    return rate


def validate_amount(value, default: str = "5000") -> Decimal:
    try:
        amount = Decimal(str(value if value not in (None, "") else default))
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}")
    if amount < 0:
        raise ValueError("Amount must be >= 0")
    return amount


def validate_environment(value: Optional[str]) -> str:
    v = (value or "development").strip().lower()
    if v not in ENVIRONMENTS:
        raise ValueError(f"Invalid environment {v!r}: expected one of {sorted(ENVIRONMENTS)}")
    return v


def _load_settings_file(path: Optional[Path] = None) -> dict:
    try:
        path = path or Path.cwd() / "data" / "settings.json"
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        pass
    return {}


def load_env(settings_path: Optional[Path] = None) -> AppConfig:
    # data/settings.json wins over the environment, .env only fills gaps
    load_dotenv()
    s = _load_settings_file(settings_path)

    def pick(key: str, default: str = "") -> str:
        return str(s.get(key) or os.getenv(key) or default)

    return AppConfig(
        database_url=pick("DATABASE_URL", "sqlite:///data/kolia.db"),
        secret_key=pick("SECRET_KEY", "dev_secret"),
        log_level=pick("LOG_LEVEL", "INFO").upper(),
        environment=validate_environment(pick("KOLIA_ENV", "development")),
        currency=validate_currency(pick("CURRENCY", "CDF")),
        commission_rate=validate_commission_rate(pick("COMMISSION_RATE", "0.15")),
        default_delivery_fee=validate_amount(pick("DEFAULT_DELIVERY_FEE", "5000")),
        jwt_expire_days=int(pick("JWT_EXPIRE_DAYS", "7")),
        transaction_prefix=pick("TRANSACTION_PREFIX", "KOLIA"),
        frontend_url=pick("FRONTEND_URL", "http://localhost:5173").rstrip("/"),
        backend_url=pick("BACKEND_URL", "http://localhost:5000").rstrip("/"),
        cinetpay_api_key=pick("CINETPAY_API_KEY"),
        cinetpay_site_id=pick("CINETPAY_SITE_ID"),
        cinetpay_base_url=pick("CINETPAY_BASE_URL", "https://api-checkout.cinetpay.com").rstrip("/"),
        gateway_timeout=float(pick("GATEWAY_TIMEOUT", "15")),
        whatsapp_api_url=pick("WHATSAPP_API_URL").rstrip("/"),
        whatsapp_api_token=pick("WHATSAPP_API_TOKEN"),
    )
