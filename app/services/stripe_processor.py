"""
Processor for Stripe webhook events.
Reconciles subscriptions, recurring payments and booking transactions.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session
from app.models.payment import Payment
from app.models.subscription import Subscription, SubscriptionStatus
from app.models.transaction import TransactionStatus
from app.models.user import User
from app.services.reconciliation import (
    apply_status,
    find_by_stripe_subscription,
    from_epoch,
    map_stripe_status,
    period_fields,
)
from app.services.transactions import apply_refund, find_transaction, mark_transaction

logger = logging.getLogger(__name__)


def process_stripe_event(db: Session, event: Dict[str, Any]):
    """
    Process a verified Stripe webhook event and update the database.

    Handles:
    - customer.subscription.created/updated -> update or create the subscription
    - customer.subscription.deleted -> cancel the subscription
    - payment_intent.succeeded/payment_failed -> booking transaction status
    - invoice.payment_succeeded -> record a Payment
    - invoice.payment_failed -> mark subscription past_due
    - checkout.session.completed -> link and activate the subscription
    - charge.refunded -> refund bookkeeping on the transaction
    """
    event_type = event.get("type") or ""
    data = (event.get("data") or {}).get("object") or {}

    logger.info("[STRIPE] Processing %s (object %s)", event_type, data.get("id"))

    if event_type in ("customer.subscription.created", "customer.subscription.updated"):
        _process_subscription_upsert(db, data)
    elif event_type == "customer.subscription.deleted":
        _process_subscription_deleted(db, data)
    elif event_type == "payment_intent.succeeded":
        _process_payment_intent(db, data, TransactionStatus.COMPLETED)
    elif event_type == "payment_intent.payment_failed":
        _process_payment_intent(db, data, TransactionStatus.FAILED)
    elif event_type == "invoice.payment_succeeded":
        _process_invoice_paid(db, data)
    elif event_type == "invoice.payment_failed":
        _process_invoice_failed(db, data)
    elif event_type == "checkout.session.completed":
        _process_checkout_completed(db, data)
    elif event_type == "charge.refunded":
        _process_refund(db, data)
    else:
        logger.info("[STRIPE] Event type %s not handled - skipping", event_type)


def _find_user_for_subscription(db: Session, data: Dict[str, Any]) -> Optional[User]:
    metadata = data.get("metadata") or {}
    if metadata.get("userId"):
        user = db.query(User).filter(User.id == metadata["userId"]).first()
        if user:
            return user

    customer_id = data.get("customer")
    if customer_id:
        user = db.query(User).filter(User.stripe_customer_id == customer_id).first()
        if user:
            return user

    email = data.get("customer_email")
    if email:
        return db.query(User).filter(User.email == email).first()
    return None


def _process_subscription_upsert(db: Session, data: Dict[str, Any]):
    stripe_subscription_id = data.get("id")
    if not stripe_subscription_id:
        return

    status = map_stripe_status(data.get("status"))
    fields = period_fields(data)

    subscription = find_by_stripe_subscription(db, stripe_subscription_id)
    if subscription:
        apply_status(db, subscription, status, fields=fields)
        return

    user = _find_user_for_subscription(db, data)
    if not user:
        logger.warning("[SUBSCRIPTION] No user found for Stripe subscription %s - dropping", stripe_subscription_id)
        return

    metadata = data.get("metadata") or {}
    subscription = Subscription(
        user_id=user.id,
        plan_id=metadata.get("planId"),
        status=status.value,
        stripe_subscription_id=stripe_subscription_id,
        stripe_customer_id=data.get("customer"),
        **fields,
    )
    db.add(subscription)
    db.commit()
    logger.info(
        "[SUBSCRIPTION] Created subscription %s for user %s from Stripe %s (%s)",
        subscription.id, user.id, stripe_subscription_id, status.value,
    )


def _process_subscription_deleted(db: Session, data: Dict[str, Any]):
    stripe_subscription_id = data.get("id")
    subscription = find_by_stripe_subscription(db, stripe_subscription_id) if stripe_subscription_id else None
    if not subscription:
        logger.warning("[SUBSCRIPTION] Deleted Stripe subscription %s not found", stripe_subscription_id)
        return
    apply_status(db, subscription, SubscriptionStatus.CANCELED, fields={"canceled_at": datetime.utcnow()})


def _process_payment_intent(db: Session, data: Dict[str, Any], status: TransactionStatus):
    payment_intent_id = data.get("id")
    transaction = find_transaction(db, stripe_payment_intent_id=payment_intent_id) if payment_intent_id else None
    if not transaction:
        logger.info("[STRIPE] No transaction for payment intent %s", payment_intent_id)
        return

    charge_id = data.get("latest_charge")
    if isinstance(charge_id, dict):
        charge_id = charge_id.get("id")
    if charge_id and not transaction.stripe_charge_id:
        transaction.stripe_charge_id = charge_id
    mark_transaction(db, transaction, status)


def _invoice_subscription_id(invoice: Dict[str, Any]) -> Optional[str]:
    subscription_id = invoice.get("subscription")
    if isinstance(subscription_id, dict):
        return subscription_id.get("id")
    if subscription_id:
        return subscription_id
    # Newer API versions nest it under parent.subscription_details
    parent = invoice.get("parent") or {}
    return (parent.get("subscription_details") or {}).get("subscription")


def _process_invoice_paid(db: Session, invoice: Dict[str, Any]):
    invoice_id = invoice.get("id")
    stripe_subscription_id = _invoice_subscription_id(invoice)
    if not stripe_subscription_id:
        logger.info("[STRIPE] Invoice %s is not for a subscription - skipping", invoice_id)
        return

    subscription = find_by_stripe_subscription(db, stripe_subscription_id)
    if not subscription:
        logger.warning("[STRIPE] Subscription %s for invoice %s not found", stripe_subscription_id, invoice_id)
        return

    if invoice_id and db.query(Payment).filter(Payment.stripe_invoice_id == invoice_id).first():
        logger.info("[STRIPE] Payment for invoice %s already recorded - skipping", invoice_id)
        return

    charge_id = invoice.get("charge")
    if isinstance(charge_id, dict):
        charge_id = charge_id.get("id")
    transitions = invoice.get("status_transitions") or {}

    payment = Payment(
        subscription_id=subscription.id,
        user_id=subscription.user_id,
        amount=invoice.get("amount_paid") or 0,
        currency=(invoice.get("currency") or "").upper(),
        status="succeeded",
        payment_method="card",
        stripe_charge_id=charge_id,
        stripe_invoice_id=invoice_id,
        description=invoice.get("description") or f"Subscription payment ({invoice.get('number') or invoice_id})",
        paid_at=from_epoch(transitions.get("paid_at")) or datetime.utcnow(),
    )
    db.add(payment)
    db.commit()
    logger.info("[STRIPE] Recorded payment %s for subscription %s", payment.id, subscription.id)


def _process_invoice_failed(db: Session, invoice: Dict[str, Any]):
    stripe_subscription_id = _invoice_subscription_id(invoice)
    subscription = find_by_stripe_subscription(db, stripe_subscription_id) if stripe_subscription_id else None
    if not subscription:
        logger.warning("[STRIPE] Subscription for failed invoice %s not found", invoice.get("id"))
        return
    apply_status(db, subscription, SubscriptionStatus.PAST_DUE)


def _process_checkout_completed(db: Session, session: Dict[str, Any]):
    metadata = session.get("metadata") or {}
    subscription_id = metadata.get("subscriptionId")
    if not subscription_id:
        logger.info("[STRIPE] Checkout session %s has no subscriptionId - skipping", session.get("id"))
        return

    subscription = db.query(Subscription).filter(Subscription.id == subscription_id).first()
    if not subscription:
        logger.warning("[STRIPE] Subscription %s from checkout session not found", subscription_id)
        return

    fields: Dict[str, Any] = {}
    if session.get("subscription"):
        fields["stripe_subscription_id"] = session["subscription"]
    if session.get("customer"):
        fields["stripe_customer_id"] = session["customer"]
    apply_status(db, subscription, SubscriptionStatus.ACTIVE, fields=fields)


def _process_refund(db: Session, charge: Dict[str, Any]):
    """Process refund - record refunded amount on the booking transaction"""
    charge_id = charge.get("id")
    transaction = find_transaction(db, stripe_charge_id=charge_id) if charge_id else None
    if not transaction and charge.get("payment_intent"):
        transaction = find_transaction(db, stripe_payment_intent_id=charge["payment_intent"])
    if not transaction:
        logger.info("[STRIPE] No transaction for refunded charge %s", charge_id)
        return
    apply_refund(db, transaction, charge.get("amount_refunded") or 0)
