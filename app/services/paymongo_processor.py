"""
Processor for PayMongo webhook events.

PayMongo delivers events either as a flat envelope
`{"type": ..., "data": {"attributes": {...}}}` or as its native nested
envelope `{"data": {"id": "evt_...", "type": "event", "attributes":
{"type": ..., "data": {"id": ..., "attributes": {...}}}}}`. Both are
accepted.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session
from app.core.config import settings
from app.models.subscription import SubscriptionStatus
from app.models.transaction import TransactionStatus
from app.services.reconciliation import (
    AmountMatchStrategy,
    apply_status,
    get_amount_match_strategy,
    resolve_subscription,
)
from app.services.transactions import find_transaction, mark_transaction

logger = logging.getLogger(__name__)

HANDLED_EVENT_TYPES = (
    "payment.paid",
    "payment.failed",
    "source.chargeable",
    "checkout_session.payment.paid",
)


@dataclass
class PaymongoResource:
    """The payment/source/checkout resource an event is about."""
    id: Optional[str]
    attributes: Dict[str, Any] = field(default_factory=dict)

    @property
    def payment_intent_id(self) -> Optional[str]:
        return self.attributes.get("payment_intent_id")

    @property
    def amount(self) -> Optional[int]:
        value = self.attributes.get("amount")
        return int(value) if value is not None else None

    @property
    def metadata(self) -> Dict[str, Any]:
        return self.attributes.get("metadata") or {}


def event_type_of(event: Dict[str, Any]) -> Optional[str]:
    data = event.get("data") or {}
    attributes = data.get("attributes") or {}
    return event.get("type") or attributes.get("type") or data.get("type")


def event_id_of(event: Dict[str, Any]) -> Optional[str]:
    """Delivery id for deduplication; only present on the native envelope."""
    if event.get("id"):
        return event["id"]
    data = event.get("data") or {}
    if data.get("type") == "event":
        return data.get("id")
    return None


def resource_of(event: Dict[str, Any]) -> PaymongoResource:
    data = event.get("data") or {}
    attributes = data.get("attributes") or data

    nested = attributes.get("data")
    if isinstance(nested, dict) and isinstance(nested.get("attributes"), dict):
        return PaymongoResource(id=nested.get("id"), attributes=nested["attributes"])

    inner = attributes.get("attributes")
    if isinstance(inner, dict):
        return PaymongoResource(id=attributes.get("id") or data.get("id"), attributes=inner)

    return PaymongoResource(id=attributes.get("id") or data.get("id"), attributes=attributes)


def process_paymongo_event(
    db: Session,
    event: Dict[str, Any],
    strategy: Optional[AmountMatchStrategy] = None,
) -> None:
    """
    Process a verified PayMongo event and reconcile the matching subscription.

    Unknown event types are logged and ignored. Errors propagate to the
    webhook handler, which logs them and answers according to
    WEBHOOK_ERROR_POLICY.
    """
    event_type = event_type_of(event)
    resource = resource_of(event)
    if strategy is None:
        strategy = get_amount_match_strategy(settings.AMOUNT_MATCH_STRATEGY)

    logger.info("[PAYMONGO] Processing %s (resource %s)", event_type, resource.id)

    if event_type in ("payment.paid", "checkout_session.payment.paid"):
        _process_paid(db, resource, event_type)
    elif event_type == "source.chargeable":
        _process_source_chargeable(db, resource, strategy)
    elif event_type == "payment.failed":
        _process_failed(db, resource)
    else:
        logger.info("[PAYMONGO] Event type %s not handled - skipping", event_type)


def _activate(db: Session, resource: PaymongoResource, subscription, event_type: str) -> None:
    purchased_plan_id = resource.metadata.get("planId")
    if apply_status(db, subscription, SubscriptionStatus.ACTIVE, plan_id=purchased_plan_id):
        logger.info("[PAYMONGO] Subscription %s activated via %s", subscription.id, event_type)


def _process_paid(db: Session, resource: PaymongoResource, event_type: str) -> None:
    payment_intent_id = resource.payment_intent_id
    if not payment_intent_id:
        logger.warning("[PAYMONGO] %s event missing payment_intent_id", event_type)
        return

    transaction = find_transaction(db, paymongo_payment_intent_id=payment_intent_id)
    if transaction:
        mark_transaction(db, transaction, TransactionStatus.COMPLETED)

    subscription = resolve_subscription(db, payment_intent_id)
    if subscription is None:
        return
    _activate(db, resource, subscription, event_type)


def _process_source_chargeable(db: Session, resource: PaymongoResource, strategy: AmountMatchStrategy) -> None:
    payment_intent_id = resource.payment_intent_id
    if not payment_intent_id:
        logger.info("[PAYMONGO] source.chargeable %s has no payment_intent_id, matching by amount", resource.id)

    subscription = resolve_subscription(db, payment_intent_id, amount=resource.amount, strategy=strategy)
    if subscription is None:
        return
    _activate(db, resource, subscription, "source.chargeable")


def _process_failed(db: Session, resource: PaymongoResource) -> None:
    payment_intent_id = resource.payment_intent_id
    if not payment_intent_id:
        logger.warning("[PAYMONGO] payment.failed event missing payment_intent_id")
        return

    transaction = find_transaction(db, paymongo_payment_intent_id=payment_intent_id)
    if transaction:
        mark_transaction(db, transaction, TransactionStatus.FAILED)

    # Subscriptions stay incomplete so the organizer can retry checkout
    subscription = resolve_subscription(db, payment_intent_id)
    if subscription is not None:
        logger.info(
            "[PAYMONGO] Payment failed for subscription %s; leaving status %s",
            subscription.id, subscription.status,
        )
