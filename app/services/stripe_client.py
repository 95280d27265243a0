"""
Thin wrappers around the Stripe SDK used by the subscription endpoints
and the webhook receiver.
"""
import logging
from typing import Any, Dict, Optional
import stripe
from app.core.config import settings
from app.services.errors import PaymentProviderError

logger = logging.getLogger(__name__)


def _configure():
    if not settings.STRIPE_SECRET_KEY:
        raise PaymentProviderError("stripe", "STRIPE_SECRET_KEY is not configured")
    stripe.api_key = settings.STRIPE_SECRET_KEY


def _as_dict(obj: Any) -> Dict[str, Any]:
    """Plain dict copy of a StripeObject."""
    for attr in ("to_dict", "to_dict_recursive"):
        fn = getattr(obj, attr, None)
        if callable(fn):
            return fn()
    return dict(obj)


def verify_webhook(payload: bytes, sig_header: str, secret: str) -> None:
    """Raise stripe.SignatureVerificationError unless the header signs `payload`."""
    stripe.WebhookSignature.verify_header(
        payload.decode("utf-8"),
        sig_header,
        secret,
        tolerance=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
    )


def create_customer(email: str, name: str, metadata: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    _configure()
    try:
        customer = stripe.Customer.create(email=email, name=name, metadata=metadata or {})
    except stripe.StripeError as e:
        logger.error("[STRIPE] Customer creation failed for %s: %s", email, e)
        raise PaymentProviderError("stripe", "Customer creation failed")
    return _as_dict(customer)


def create_subscription(customer_id: str, price_id: str, metadata: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    _configure()
    try:
        subscription = stripe.Subscription.create(
            customer=customer_id,
            items=[{"price": price_id}],
            metadata=metadata or {},
            payment_behavior="default_incomplete",
            expand=["latest_invoice.payment_intent"],
        )
    except stripe.StripeError as e:
        logger.error("[STRIPE] Subscription creation failed for customer %s: %s", customer_id, e)
        raise PaymentProviderError("stripe", "Subscription creation failed")
    return _as_dict(subscription)


def cancel_subscription(stripe_subscription_id: str, immediately: bool = False) -> Dict[str, Any]:
    """Cancel at period end by default; `immediately` cancels right away."""
    _configure()
    try:
        if immediately:
            subscription = stripe.Subscription.cancel(stripe_subscription_id)
        else:
            subscription = stripe.Subscription.modify(stripe_subscription_id, cancel_at_period_end=True)
    except stripe.StripeError as e:
        logger.error("[STRIPE] Cancel failed for %s: %s", stripe_subscription_id, e)
        raise PaymentProviderError("stripe", "Subscription cancellation failed")
    return _as_dict(subscription)


def update_subscription(stripe_subscription_id: str, new_price_id: str) -> Dict[str, Any]:
    """Swap the price on the subscription's first item, prorating the change."""
    _configure()
    try:
        current = _as_dict(stripe.Subscription.retrieve(stripe_subscription_id))
        items = (current.get("items") or {}).get("data") or []
        if not items:
            raise PaymentProviderError("stripe", "Subscription has no items")
        subscription = stripe.Subscription.modify(
            stripe_subscription_id,
            items=[{"id": items[0]["id"], "price": new_price_id}],
            proration_behavior="create_prorations",
        )
    except stripe.StripeError as e:
        logger.error("[STRIPE] Update failed for %s: %s", stripe_subscription_id, e)
        raise PaymentProviderError("stripe", "Subscription update failed")
    return _as_dict(subscription)
