"""WhatsApp Business notifications sent to buyers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

import requests

from ..common.config import AppConfig
from ..common.errors import NotificationError
from ..common.services.logging import log_event


@dataclass
class NotificationResult:
    success: bool
    is_mock: bool = False
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class WhatsAppNotifier:
    """Best-effort sender: ``send`` never raises, callers fire and forget."""

    def __init__(self, config: AppConfig, http: Optional[requests.Session] = None) -> None:
        self._api_url = config.whatsapp_api_url
        self._token = config.whatsapp_api_token
        self._timeout = config.gateway_timeout
        self._mock = not config.is_production
        self._http = http or requests.Session()
        self.logger = logging.getLogger(__name__)

    def _post(self, phone_number: str, message: str) -> None:
        if not self._api_url or not self._token:
            raise NotificationError("Configuration WhatsApp manquante")
        try:
            response = self._http.post(
                f"{self._api_url}/messages",
                json={
                    "messaging_product": "whatsapp",
                    "to": phone_number,
                    "type": "text",
                    "text": {"body": message},
                },
                headers={"Authorization": f"Bearer {self._token}"},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise NotificationError(error=str(exc)) from exc

    def send(self, phone_number: str, message: str) -> NotificationResult:
        if self._mock:
            log_event("info", "notification.sent", to=phone_number, body=message, mock=True)
            return NotificationResult(success=True, is_mock=True, message="Notification envoyée (mock)")
        try:
            self._post(phone_number, message)
        except NotificationError as exc:
            self.logger.warning("WhatsApp notification to %s failed: %s", phone_number, exc.message)
            log_event("warning", "notification.failed", to=phone_number, reason=exc.message, **exc.details)
            return NotificationResult(success=False, message=exc.default_message)
        except Exception as exc:
            # the order flow must not fail because a message could not be delivered
            self.logger.exception("WhatsApp notification to %s failed", phone_number)
            log_event("error", "notification.failed", to=phone_number, error=str(exc))
            return NotificationResult(success=False, message=NotificationError.default_message)
        log_event("info", "notification.sent", to=phone_number, mock=False)
        return NotificationResult(success=True, message="Notification WhatsApp envoyée")
