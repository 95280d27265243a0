from sqlalchemy import Column, String, DateTime, JSON, Boolean, UniqueConstraint
import uuid
from datetime import datetime
from app.db.session import Base


class WebhookEvent(Base):
    __tablename__ = "webhook_events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    provider = Column(String, nullable=False, index=True)  # paymongo, stripe
    event_id = Column(String, nullable=False, index=True)
    type = Column(String, nullable=True, index=True)
    payload = Column(JSON, nullable=False)  # Full event payload from the processor
    processed = Column(Boolean, default=False, nullable=False, index=True)
    received_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    processed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("provider", "event_id", name="uq_webhook_events_provider_event_id"),
    )
