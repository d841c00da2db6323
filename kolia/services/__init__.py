"""External integrations used by the KOLIA API."""

from .cinetpay_gateway import CinetPayGateway
from .whatsapp_notifier import NotificationResult, WhatsAppNotifier

__all__ = [
    "CinetPayGateway",
    "NotificationResult",
    "WhatsAppNotifier",
]
