import json
from decimal import Decimal

import pytest

from kolia.common.config import (
    load_env,
    validate_commission_rate,
    validate_currency,
    validate_environment,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("CURRENCY", "COMMISSION_RATE", "DEFAULT_DELIVERY_FEE", "KOLIA_ENV", "SECRET_KEY", "DATABASE_URL"):
        monkeypatch.delenv(key, raising=False)


def test_defaults(tmp_path):
    config = load_env(tmp_path / "missing.json")
    assert config.currency == "CDF"
    assert config.commission_rate == Decimal("0.15")
    assert config.default_delivery_fee == Decimal("5000")
    assert config.environment == "development"
    assert not config.is_production


def test_settings_file_wins_over_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("CURRENCY", "usd")
    monkeypatch.setenv("KOLIA_ENV", "production")
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({"CURRENCY": "cdf", "COMMISSION_RATE": "0.10"}), encoding="utf-8")
    config = load_env(settings)
    assert config.currency == "CDF"
    assert config.commission_rate == Decimal("0.10")
    assert config.is_production
    assert config.get_notify_url() == "http://localhost:5000/api/payments/webhook"


@pytest.mark.parametrize("value", ["1.5", "-0.1", "abc"])
def test_bad_commission_rate(value):
    with pytest.raises(ValueError):
        validate_commission_rate(value)


def test_currency_and_environment_validation():
    assert validate_currency(" cdf ") == "CDF"
    with pytest.raises(ValueError):
        validate_currency("FRANCS")
    with pytest.raises(ValueError):
        validate_environment("staging")
