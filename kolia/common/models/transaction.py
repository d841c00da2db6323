from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, JSON, Numeric, String, Text, func
from sqlalchemy.orm import relationship
from .base import Base


TRANSACTION_STATUSES = ("pending", "completed", "failed", "refunded")
MOCK_METHOD = "mock"
GATEWAY_METHOD = "cinetpay"


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'completed', 'failed', 'refunded')", name="ck_transactions_status"
        ),
    )

    id = Column(String(100), primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(10), nullable=False, default="CDF")
    status = Column(String(20), nullable=False, default="pending", index=True)
    payment_method = Column(String(50), nullable=False)
    gateway_token = Column(String(255), nullable=True)
    gateway_response = Column(JSON, nullable=True)
    refund_reason = Column(Text, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    refunded_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    order = relationship("Order", back_populates="transactions")
