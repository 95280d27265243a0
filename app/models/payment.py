from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text
import uuid
from datetime import datetime
from app.db.session import Base


class Payment(Base):
    """Recurring subscription payment, recorded from a paid processor invoice."""
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    subscription_id = Column(String(36), ForeignKey("subscriptions.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # Minor currency units
    currency = Column(String(3), nullable=False)
    status = Column(String, nullable=False)  # succeeded, failed
    payment_method = Column(String, nullable=True)
    stripe_charge_id = Column(String, nullable=True)
    stripe_invoice_id = Column(String, nullable=True, index=True)  # Deduplicates invoice redeliveries
    description = Column(Text, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
