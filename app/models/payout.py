from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime
import enum
from app.db.session import Base


class PayoutStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Payout(Base):
    """Organizer withdrawal request. Status changes are admin-initiated."""
    __tablename__ = "payouts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organizer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # Minor currency units
    currency = Column(String(3), default="php", nullable=False)
    status = Column(String, default=PayoutStatus.PENDING.value, nullable=False, index=True)
    payment_method = Column(String, nullable=True)  # e.g. bank_transfer, gcash
    account_details = Column(JSON, nullable=True)
    transaction_ids = Column(JSON, nullable=False, default=list)
    requested_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    processed_at = Column(DateTime, nullable=True)
    processed_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    failure_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    organizer = relationship("User", foreign_keys=[organizer_id])
    processor = relationship("User", foreign_keys=[processed_by])
