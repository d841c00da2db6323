"""Payment endpoints backed by the CinetPay gateway."""

from __future__ import annotations

from flask import Blueprint

from ..common.errors import KoliaError
from ..common.services.logging import log_event
from ..common.utils.validators import field
from .helpers import components, current_actor, ok, payload, require_auth


payments_bp = Blueprint("kolia_payments", __name__, url_prefix="/api/payments")


@payments_bp.post("/initialize")
@require_auth("client")
def initialize_payment():
    result = components()["payment_service"].initialize_payment(current_actor(), payload())
    message = "Paiement initialisé (mode développement)" if result.get("is_mock") else "Paiement initialisé avec succès"
    return ok(result, message)


@payments_bp.post("/verify")
@require_auth()
def verify_payment():
    transaction_id = field(payload(), "transactionId", "transaction_id")
    result = components()["payment_service"].verify_payment(transaction_id)
    if result["status"] == "failed":
        return {"success": False, "message": "Paiement échoué", "data": result}, 400
    return ok(result, "Paiement vérifié avec succès")


@payments_bp.post("/webhook")
def payment_webhook():
    # CinetPay posts form data with cpm_trans_id; always acknowledge with 200
    body = payload()
    transaction_id = body.get("cpm_trans_id") or field(body, "transactionId", "transaction_id")
    try:
        result = components()["payment_service"].verify_payment(transaction_id)
    except KoliaError as exc:
        log_event("warning", "payment.webhook_ignored", transaction_id=transaction_id, error=exc.message)
        return {"success": True, "message": "ignored"}, 200
    return ok({"transaction_id": transaction_id, "status": result["status"]})


@payments_bp.get("/<transaction_id>/status")
@require_auth()
def payment_status(transaction_id: str):
    return ok(components()["payment_service"].get_payment_status(transaction_id, current_actor()))


@payments_bp.post("/<transaction_id>/refund")
@require_auth("admin")
def refund(transaction_id: str):
    result = components()["payment_service"].process_refund(transaction_id, payload().get("reason"))
    return ok(result, "Remboursement traité avec succès")
