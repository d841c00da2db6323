"""
CinetPay checkout gateway client.
Based on https://docs.cinetpay.com/api/1.0-fr/checkout/initialisation
Both calls are plain JSON POSTs authenticated by apikey + site_id in the body.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import requests

from ..common.config import AppConfig
from ..common.errors import GatewayError


INIT_SUCCESS_CODE = "201"
PAYMENT_SUCCESS_CODE = "00"


class CinetPayGateway:
    """
    Thin wrapper over the two CinetPay endpoints used by the payment flow:
    - paymentInitialization: returns a payment_url/payment_token pair
    - checkPayStatus: returns the settlement code for a transaction id
    Any transport error or unexpected payload raises GatewayError.
    """

    def __init__(self, config: AppConfig, http: Optional[requests.Session] = None) -> None:
        self.api_key = config.cinetpay_api_key
        self.site_id = config.cinetpay_site_id
        self.base_url = config.cinetpay_base_url.rstrip("/")
        self.timeout = config.gateway_timeout
        self._http = http or requests.Session()
        self.logger = logging.getLogger(__name__)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.site_id)

    def _post(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.is_configured:
            raise GatewayError("Configuration CinetPay manquante")
        url = f"{self.base_url}/v2/?method={method}"
        body = {"apikey": self.api_key, "site_id": self.site_id}
        body.update(payload)
        try:
            response = self._http.post(url, json=body, timeout=self.timeout)
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            self.logger.error("CinetPay %s failed: %s", method, exc)
            raise GatewayError(error=str(exc)) from exc
        if not isinstance(data, dict):
            raise GatewayError(error="unexpected gateway payload")
        return data

    def initialize(
        self,
        *,
        transaction_id: str,
        amount: Decimal,
        currency: str,
        description: str,
        return_url: str,
        notify_url: str,
        customer: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Open a checkout session; returns ``{"payment_url", "payment_token", "raw"}``."""
        payload = {
            "transaction_id": transaction_id,
            # CinetPay expects an integer amount for CDF/XOF
            "amount": int(amount),
            "currency": currency,
            "description": description,
            "return_url": return_url,
            "notify_url": notify_url,
        }
        payload.update({f"customer_{k}": v for k, v in customer.items()})
        data = self._post("paymentInitialization", payload)
        if str(data.get("code")) != INIT_SUCCESS_CODE:
            raise GatewayError(data.get("message") or "Erreur lors de l'initialisation du paiement", code=data.get("code"))
        inner = data.get("data") or {}
        return {
            "payment_url": inner.get("payment_url"),
            "payment_token": inner.get("payment_token"),
            "raw": data,
        }

    def check_status(self, transaction_id: str) -> Dict[str, Any]:
        """Query settlement; returns ``{"success", "code", "amount", "currency", "raw"}``."""
        data = self._post("checkPayStatus", {"transaction_id": transaction_id})
        inner = data.get("data") or {}
        code = str(data.get("code"))
        return {
            "success": code == PAYMENT_SUCCESS_CODE,
            "code": code,
            "amount": inner.get("amount"),
            "currency": inner.get("currency"),
            "raw": data,
        }
