from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
import uuid
from datetime import datetime
import enum
from app.db.session import Base


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class Transaction(Base):
    """One-time payment for an event booking."""
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # Amount charged after discount, minor units
    discount_amount = Column(Integer, default=0, nullable=False)
    platform_fee = Column(Integer, default=0, nullable=False)
    organizer_revenue = Column(Integer, default=0, nullable=False)
    refund_amount = Column(Integer, default=0, nullable=False)
    currency = Column(String(3), default="php", nullable=False)
    status = Column(String, default=TransactionStatus.PENDING.value, nullable=False, index=True)
    promo_code = Column(String, nullable=True)
    paymongo_payment_intent_id = Column(String, nullable=True, index=True)
    stripe_payment_intent_id = Column(String, nullable=True, index=True)
    stripe_charge_id = Column(String, nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
