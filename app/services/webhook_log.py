"""
Delivery log for processor webhooks, keyed by (provider, event id).
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.models.webhook_event import WebhookEvent

logger = logging.getLogger(__name__)


def get_event(db: Session, provider: str, event_id: str) -> Optional[WebhookEvent]:
    return db.query(WebhookEvent).filter(
        WebhookEvent.provider == provider,
        WebhookEvent.event_id == event_id,
    ).first()


def record_event(
    db: Session,
    provider: str,
    event_id: str,
    event_type: Optional[str],
    payload: Dict[str, Any],
) -> WebhookEvent:
    """Store a delivery, or return the existing row when it was seen before."""
    existing = get_event(db, provider, event_id)
    if existing:
        return existing

    webhook_event = WebhookEvent(
        provider=provider,
        event_id=event_id,
        type=event_type,
        payload=payload,
    )
    db.add(webhook_event)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent delivery of the same event stored it first
        db.rollback()
        return get_event(db, provider, event_id)
    db.refresh(webhook_event)
    return webhook_event


def mark_processed(db: Session, webhook_event: WebhookEvent) -> None:
    webhook_event.processed = True
    webhook_event.processed_at = datetime.utcnow()
    db.commit()
    logger.info("[WEBHOOK] %s event %s processed", webhook_event.provider, webhook_event.event_id)
