import time
from decimal import Decimal, InvalidOperation
from typing import Dict, Mapping, Optional
from ..db.session import get_session
from ..errors import (
    AmountMismatch,
    ConflictError,
    GatewayError,
    NotEligible,
    OrderNotFound,
    TransactionNotFound,
)
from ..models.order import Order
from ..models.transaction import GATEWAY_METHOD, MOCK_METHOD, Transaction
from ..utils.clock import utcnow
from ..utils.dto import to_transaction_dto
from ..utils.validators import ensure_amount, ensure_currency, ensure_positive_int, field
from .auth_service import Actor
from .logging import log_event


def _settle_order(session, order_id: int) -> int:
    """Mark the order paid and confirm it if still pending.

    Both statements are conditional so a repeated settlement is a no-op.
    Returns the number of rows whose payment_status changed.
    """
    paid = (
        session.query(Order)
        .filter(Order.id == order_id, Order.payment_status != "paid")
        .update(
            {Order.payment_status: "paid", Order.version: Order.version + 1},
            synchronize_session=False,
        )
    )
    session.query(Order).filter(Order.id == order_id, Order.status == "pending").update(
        {Order.status: "confirmed", Order.version: Order.version + 1},
        synchronize_session=False,
    )
    return paid


def _matches_transaction(check: Mapping, tx: Transaction) -> bool:
    """True when the gateway settled exactly the amount and currency we asked for."""
    try:
        amount = Decimal(str(check.get("amount")))
    except InvalidOperation:
        return False
    currency = str(check.get("currency") or "").upper()
    return amount == Decimal(str(tx.amount)) and currency == tx.currency


class PaymentService:
    """Payment initialization, verification and refunds against the gateway.

    Each operation writes the transaction row and its order cascade inside a
    single session, so both commit together or not at all.
    """

    def __init__(self, config, gateway, session_factory=get_session):
        self._config = config
        self._gateway = gateway
        self._session_factory = session_factory

    def _new_transaction_id(self, prefix: str, order_id: int) -> str:
        return f"{prefix}_{order_id}_{time.time_ns() // 1_000_000}"

    def initialize_payment(self, buyer: Actor, payload: Mapping) -> Dict:
        order_id = ensure_positive_int(field(payload, "orderId", "order_id"), "order_id", minimum=1)
        amount = ensure_amount(payload.get("amount"), "amount")
        currency = ensure_currency(payload.get("currency") or self._config.currency, self._config.currency)

        with self._session_factory() as session:
            # scoped to the buyer: another user's order looks like a missing one
            order = session.query(Order).filter(Order.id == order_id, Order.user_id == buyer.id).first()
            if order is None:
                raise OrderNotFound()
            if order.payment_status == "paid":
                raise ConflictError("Cette commande est déjà payée")
            if order.status == "cancelled":
                raise ConflictError("Cette commande est annulée")
            if amount != Decimal(str(order.total)):
                raise AmountMismatch(order.total, amount)

            transaction_id = self._new_transaction_id(self._config.transaction_prefix, order_id)
            try:
                checkout = self._gateway.initialize(
                    transaction_id=transaction_id,
                    amount=amount,
                    currency=currency,
                    description=f"Commande KOLIA #{order_id}",
                    return_url=self._config.get_return_url(transaction_id),
                    notify_url=self._config.get_notify_url(),
                    customer={
                        "name": buyer.name,
                        "email": buyer.email,
                        "phone_number": buyer.phone,
                        "address": buyer.address,
                        "city": self._config.customer_city,
                        "country": self._config.customer_country,
                        "state": self._config.customer_state,
                    },
                )
            except GatewayError as exc:
                if self._config.is_production:
                    log_event("error", "payment.gateway_error", order_id=order_id, error=exc.message)
                    raise
                log_event("warning", "payment.mock_fallback", order_id=order_id, error=exc.message)
                mock_id = self._new_transaction_id("MOCK", order_id)
                session.add(
                    Transaction(
                        id=mock_id,
                        order_id=order_id,
                        user_id=buyer.id,
                        amount=amount,
                        currency=currency,
                        status="pending",
                        payment_method=MOCK_METHOD,
                    )
                )
                return {
                    "transaction_id": mock_id,
                    "payment_url": self._config.get_mock_payment_url(mock_id),
                    "is_mock": True,
                }

            session.add(
                Transaction(
                    id=transaction_id,
                    order_id=order_id,
                    user_id=buyer.id,
                    amount=amount,
                    currency=currency,
                    status="pending",
                    payment_method=GATEWAY_METHOD,
                    gateway_token=checkout.get("payment_token"),
                )
            )
            log_event("info", "payment.initialized", order_id=order_id, transaction_id=transaction_id)
            return {
                "transaction_id": transaction_id,
                "payment_url": checkout.get("payment_url"),
                "payment_token": checkout.get("payment_token"),
                "is_mock": False,
            }

    def verify_payment(self, transaction_id: Optional[str]) -> Dict:
        if not transaction_id:
            raise TransactionNotFound()
        with self._session_factory() as session:
            tx = session.get(Transaction, transaction_id)
            if tx is None:
                raise TransactionNotFound()

            if tx.status == "completed":
                # duplicate webhook or client poll: make sure the cascade holds, write nothing else
                _settle_order(session, tx.order_id)
                return {"transaction_id": tx.id, "status": "completed", "is_mock": tx.payment_method == MOCK_METHOD}
            if tx.status == "refunded":
                return {"transaction_id": tx.id, "status": "refunded", "is_mock": tx.payment_method == MOCK_METHOD}

            if tx.payment_method == MOCK_METHOD:
                if self._config.is_production:
                    raise ConflictError("Les paiements de test sont désactivés en production")
                tx.status = "completed"
                tx.completed_at = utcnow()
                _settle_order(session, tx.order_id)
                log_event("info", "payment.verified", transaction_id=tx.id, order_id=tx.order_id, mock=True)
                return {"transaction_id": tx.id, "status": "completed", "is_mock": True}

            check = self._gateway.check_status(tx.id)
            tx.gateway_response = check.get("raw")
            if check.get("success") and not _matches_transaction(check, tx):
                tx.status = "failed"
                log_event(
                    "error",
                    "payment.mismatch",
                    transaction_id=tx.id,
                    order_id=tx.order_id,
                    reported_amount=check.get("amount"),
                    reported_currency=check.get("currency"),
                )
                return {"transaction_id": tx.id, "status": "failed", "is_mock": False}
            if check.get("success"):
                tx.status = "completed"
                tx.completed_at = utcnow()
                _settle_order(session, tx.order_id)
                log_event("info", "payment.verified", transaction_id=tx.id, order_id=tx.order_id, mock=False)
                return {
                    "transaction_id": tx.id,
                    "status": "completed",
                    "amount": check.get("amount"),
                    "currency": check.get("currency"),
                    "is_mock": False,
                }

            tx.status = "failed"
            log_event("warning", "payment.failed", transaction_id=tx.id, order_id=tx.order_id, code=check.get("code"))
            return {"transaction_id": tx.id, "status": "failed", "is_mock": False}

    def get_payment_status(self, transaction_id: str, actor: Actor) -> Dict:
        with self._session_factory() as session:
            tx = session.get(Transaction, transaction_id)
            if tx is None or (not actor.is_admin and tx.user_id != actor.id):
                raise TransactionNotFound()
            data = to_transaction_dto(tx)
            data["order_status"] = tx.order.status
            data["order_payment_status"] = tx.order.payment_status
            return data

    def process_refund(self, transaction_id: str, reason: Optional[str] = None) -> Dict:
        with self._session_factory() as session:
            tx = session.get(Transaction, transaction_id)
            if tx is None or tx.status != "completed":
                raise NotEligible()
            tx.status = "refunded"
            tx.refund_reason = reason
            tx.refunded_at = utcnow()
            session.query(Order).filter(Order.id == tx.order_id).update(
                {
                    Order.status: "cancelled",
                    Order.payment_status: "refunded",
                    Order.cancelled_at: utcnow(),
                    Order.version: Order.version + 1,
                },
                synchronize_session=False,
            )
            log_event("info", "payment.refunded", transaction_id=tx.id, order_id=tx.order_id, reason=reason)
            return {"transaction_id": tx.id, "status": "refunded", "amount": float(tx.amount)}
