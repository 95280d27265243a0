"""
Re-run webhook deliveries that were stored but never processed.
"""
import logging
from typing import Dict, Optional
from sqlalchemy.orm import Session
from app.models.webhook_event import WebhookEvent
from app.services import webhook_log
from app.services.paymongo_processor import process_paymongo_event
from app.services.stripe_processor import process_stripe_event

logger = logging.getLogger(__name__)

HANDLERS = {
    "paymongo": process_paymongo_event,
    "stripe": process_stripe_event,
}


def replay_unprocessed(db: Session, provider: Optional[str] = None, limit: int = 100) -> Dict[str, int]:
    """Process stored deliveries oldest first. A failing event is logged and left for the next run."""
    query = db.query(WebhookEvent).filter(WebhookEvent.processed.is_(False))
    if provider:
        query = query.filter(WebhookEvent.provider == provider)
    pending = query.order_by(WebhookEvent.received_at.asc()).limit(limit).all()

    result = {"processed": 0, "failed": 0}
    for webhook_event in pending:
        handler = HANDLERS.get(webhook_event.provider)
        if handler is None:
            logger.warning("[WEBHOOK] No handler for provider %s", webhook_event.provider)
            result["failed"] += 1
            continue
        try:
            handler(db, webhook_event.payload)
            webhook_log.mark_processed(db, webhook_event)
            result["processed"] += 1
        except Exception:
            logger.exception("[WEBHOOK] Replay of %s event %s failed", webhook_event.provider, webhook_event.event_id)
            db.rollback()
            result["failed"] += 1
    return result
