"""
Payment processor webhook handlers.
Verify signatures, log each delivery, then reconcile synchronously.
"""
import json
import logging
from typing import Any, Callable, Dict, Optional
import stripe
from fastapi import APIRouter, Request, HTTPException, status, Header, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.core.config import settings
from app.services import paymongo_processor, webhook_log
from app.services.paymongo_client import verify_webhook_signature
from app.services.stripe_client import verify_webhook
from app.services.stripe_processor import process_stripe_event

logger = logging.getLogger(__name__)

router = APIRouter()

RECEIVED = {"received": True}


def _parse_body(body: bytes) -> Dict[str, Any]:
    try:
        event = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload")
    if not isinstance(event, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload")
    return event


def _dispatch(
    db: Session,
    provider: str,
    event: Dict[str, Any],
    event_id: Optional[str],
    event_type: Optional[str],
    handler: Callable[[Session, Dict[str, Any]], None],
):
    """
    Run `handler` for a verified event, at most once per processed event id.

    Exceptions escaping the handler are logged and answered according to
    WEBHOOK_ERROR_POLICY; the delivery stays unprocessed so a redelivery
    runs it again.
    """
    webhook_event = None
    if event_id:
        webhook_event = webhook_log.record_event(db, provider, event_id, event_type, event)
        if webhook_event.processed:
            logger.info("[WEBHOOK] %s event %s already processed - skipping", provider, event_id)
            return RECEIVED

    try:
        handler(db, event)
        if webhook_event is not None:
            webhook_log.mark_processed(db, webhook_event)
    except Exception:
        logger.exception("[WEBHOOK] Error processing %s event %s (%s)", provider, event_id, event_type)
        db.rollback()
        if settings.WEBHOOK_ERROR_POLICY == "acknowledge":
            return RECEIVED
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Webhook processing failed"},
        )

    return RECEIVED


@router.post("/paymongo")
async def paymongo_webhook(
    request: Request,
    db: Session = Depends(get_db),
    paymongo_signature: Optional[str] = Header(None, alias="paymongo-signature"),
):
    """
    Handle PayMongo webhook events.

    The signature is only enforced when PAYMONGO_WEBHOOK_SECRET is set.
    """
    body = await request.body()
    logger.info("[WEBHOOK] PayMongo delivery received (signature header: %s)", paymongo_signature is not None)

    secret = settings.PAYMONGO_WEBHOOK_SECRET
    if secret:
        if not verify_webhook_signature(body, paymongo_signature, secret):
            logger.warning("[WEBHOOK] PayMongo signature verification failed")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook signature")
    else:
        logger.warning("[WEBHOOK] PAYMONGO_WEBHOOK_SECRET not configured - accepting unsigned payload")

    event = _parse_body(body)
    return _dispatch(
        db,
        "paymongo",
        event,
        paymongo_processor.event_id_of(event),
        paymongo_processor.event_type_of(event),
        paymongo_processor.process_paymongo_event,
    )


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
):
    """
    Handle Stripe webhook events. Fails closed: no secret or no signature is a 400.
    """
    body = await request.body()
    logger.info("[WEBHOOK] Stripe delivery received (signature header: %s)", stripe_signature is not None)

    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("[WEBHOOK] STRIPE_WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Webhook secret not configured")
    if not stripe_signature:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing stripe-signature header")

    try:
        verify_webhook(body, stripe_signature, settings.STRIPE_WEBHOOK_SECRET)
    except stripe.SignatureVerificationError as e:
        logger.warning("[WEBHOOK] Stripe signature verification failed: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

    event = _parse_body(body)
    return _dispatch(
        db,
        "stripe",
        event,
        event.get("id"),
        event.get("type"),
        process_stripe_event,
    )
