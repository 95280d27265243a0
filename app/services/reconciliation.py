"""
Subscription reconciliation for payment processor callbacks.

Two halves:
- Resolving which internal Subscription a processor event refers to
  (payment-intent lookup, Stripe subscription lookup, or an amount-matching
  fallback strategy).
- Applying the status the event reports. Writes are a single conditional
  UPDATE (compare-and-set on the current status) rather than
  read-modify-save, so a stale read can never clobber a newer status and
  redelivered events cannot move a subscription backwards.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from sqlalchemy import update
from sqlalchemy.orm import Session
from app.models.plan import Plan
from app.models.subscription import Subscription, SubscriptionStatus

logger = logging.getLogger(__name__)

_S = SubscriptionStatus

# target status -> statuses it may be written over
ALLOWED_SOURCES: Dict[SubscriptionStatus, frozenset] = {
    _S.ACTIVE: frozenset({_S.INCOMPLETE, _S.TRIALING, _S.PAST_DUE, _S.ACTIVE}),
    _S.PAST_DUE: frozenset({_S.ACTIVE, _S.TRIALING, _S.PAST_DUE}),
    _S.CANCELED: frozenset({_S.INCOMPLETE, _S.TRIALING, _S.ACTIVE, _S.PAST_DUE, _S.CANCELED}),
    _S.INCOMPLETE_EXPIRED: frozenset({_S.INCOMPLETE, _S.INCOMPLETE_EXPIRED}),
    _S.TRIALING: frozenset({_S.INCOMPLETE, _S.TRIALING}),
    _S.INCOMPLETE: frozenset({_S.INCOMPLETE}),
}

TERMINAL_STATUSES = frozenset({_S.CANCELED, _S.INCOMPLETE_EXPIRED})

AmountMatchStrategy = Callable[[Session, int], Optional[Subscription]]


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def find_by_payment_intent(db: Session, payment_intent_id: str) -> Optional[Subscription]:
    return db.query(Subscription).filter(
        Subscription.paymongo_payment_intent_id == payment_intent_id
    ).first()


def find_by_stripe_subscription(db: Session, stripe_subscription_id: str) -> Optional[Subscription]:
    return db.query(Subscription).filter(
        Subscription.stripe_subscription_id == stripe_subscription_id
    ).first()


def _incomplete_with_plan_price(db: Session, amount: int):
    return (
        db.query(Subscription)
        .join(Plan, Subscription.plan_id == Plan.id)
        .filter(
            Subscription.status == _S.INCOMPLETE.value,
            Plan.price == amount,
        )
        .order_by(Subscription.created_at.asc(), Subscription.id.asc())
    )


def first_incomplete_amount_match(db: Session, amount: int) -> Optional[Subscription]:
    """
    Oldest incomplete subscription whose plan price equals `amount`.

    First match wins. When several users have an incomplete checkout for
    plans of the same price this can pick the wrong one; the result is not
    guaranteed unique.
    """
    return _incomplete_with_plan_price(db, amount).first()


def unique_incomplete_amount_match(db: Session, amount: int) -> Optional[Subscription]:
    """Like `first_incomplete_amount_match`, but only when exactly one candidate exists."""
    candidates = _incomplete_with_plan_price(db, amount).limit(2).all()
    if len(candidates) > 1:
        logger.warning(
            "[RECONCILE] Ambiguous amount match: several incomplete subscriptions for amount %s, skipping",
            amount,
        )
        return None
    return candidates[0] if candidates else None


AMOUNT_MATCH_STRATEGIES: Dict[str, AmountMatchStrategy] = {
    "first": first_incomplete_amount_match,
    "unique": unique_incomplete_amount_match,
}


def get_amount_match_strategy(name: str) -> AmountMatchStrategy:
    try:
        return AMOUNT_MATCH_STRATEGIES[name]
    except KeyError:
        raise ValueError(f"Unknown amount match strategy: {name!r}")


def resolve_subscription(
    db: Session,
    payment_intent_id: Optional[str],
    amount: Optional[int] = None,
    strategy: Optional[AmountMatchStrategy] = None,
) -> Optional[Subscription]:
    """
    Find the subscription a processor event refers to.

    Looks up by payment intent id when one is present. Without one, and only
    when both `amount` and `strategy` are given, falls back to the amount
    matching strategy. Misses are logged and return None.
    """
    if payment_intent_id:
        subscription = find_by_payment_intent(db, payment_intent_id)
        if subscription is None:
            logger.warning("[RECONCILE] Subscription not found for payment intent %s", payment_intent_id)
        return subscription

    if amount is None or strategy is None:
        logger.warning("[RECONCILE] Event has no payment_intent_id and no amount fallback")
        return None

    subscription = strategy(db, amount)
    if subscription is None:
        logger.warning("[RECONCILE] No incomplete subscription matches amount %s", amount)
    return subscription


# ---------------------------------------------------------------------------
# Applying state
# ---------------------------------------------------------------------------

def can_transition(current: str, target: str) -> bool:
    try:
        return SubscriptionStatus(current) in ALLOWED_SOURCES[SubscriptionStatus(target)]
    except ValueError:
        return False


def map_stripe_status(stripe_status: Optional[str]) -> SubscriptionStatus:
    """Map a Stripe subscription status onto ours. Unknown values (unpaid, paused) become incomplete."""
    try:
        return SubscriptionStatus(stripe_status)
    except ValueError:
        return _S.INCOMPLETE


def from_epoch(value: Any) -> Optional[datetime]:
    """Epoch seconds -> naive UTC datetime."""
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc).replace(tzinfo=None)


def period_fields(obj: Dict[str, Any]) -> Dict[str, Any]:
    """
    Billing period fields reported on a Stripe subscription object.

    Newer API versions report current_period_* on the subscription item
    rather than the subscription, so the first item is used as a fallback.
    """
    items = (obj.get("items") or {}).get("data") or []
    first_item = items[0] if items else {}

    fields: Dict[str, Any] = {}
    for key in ("current_period_start", "current_period_end"):
        value = obj.get(key) or first_item.get(key)
        if value:
            fields[key] = from_epoch(value)
    for key in ("trial_end", "canceled_at"):
        if obj.get(key):
            fields[key] = from_epoch(obj[key])
    if "cancel_at_period_end" in obj:
        fields["cancel_at_period_end"] = bool(obj.get("cancel_at_period_end"))
    return fields


def apply_status(
    db: Session,
    subscription: Subscription,
    target: SubscriptionStatus,
    plan_id: Optional[str] = None,
    fields: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Write `target` status (plus optional plan reassignment and extra columns).

    The UPDATE only matches while the row's status is one `target` may
    follow, so it behaves as compare-and-set. Returns False, without
    writing anything, when the current status does not allow the move.
    """
    target = SubscriptionStatus(target)
    sources = [s.value for s in ALLOWED_SOURCES[target]]

    values: Dict[str, Any] = dict(fields or {})
    values["status"] = target.value
    if plan_id:
        values["plan_id"] = plan_id
    values["version"] = Subscription.version + 1
    values["updated_at"] = datetime.utcnow()

    result = db.execute(
        update(Subscription)
        .where(Subscription.id == subscription.id, Subscription.status.in_(sources))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.commit()

    if result.rowcount != 1:
        db.refresh(subscription)
        logger.warning(
            "[RECONCILE] Refused transition %s -> %s for subscription %s",
            subscription.status, target.value, subscription.id,
        )
        return False

    db.refresh(subscription)
    logger.info("[RECONCILE] Subscription %s is now %s", subscription.id, target.value)
    return True
