"""
Organizer subscriptions: view, start checkout, cancel, change plan.
"""
import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.api.deps import get_current_user, require_organizer
from app.models.plan import Plan
from app.models.subscription import Subscription, SubscriptionStatus, LIVE_STATUSES
from app.models.user import User
from app.schemas.subscription import (
    SubscriptionCreate,
    SubscriptionUpdate,
    SubscriptionResponse,
    SubscriptionCreateResponse,
    Subscription as SubscriptionSchema,
)
from app.services import paymongo_client, stripe_client
from app.services.errors import PaymentProviderError
from app.services.reconciliation import map_stripe_status, period_fields

logger = logging.getLogger(__name__)

router = APIRouter()


def _provider_error(e: PaymentProviderError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.get("", response_model=SubscriptionResponse)
def get_my_subscription(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    subscription = db.query(Subscription).filter(
        Subscription.user_id == current_user.id,
        Subscription.status.in_(LIVE_STATUSES)
    ).first()
    if not subscription:
        return {"message": "No active subscription", "subscription": None}
    return {"message": "Subscription retrieved", "subscription": SubscriptionSchema.model_validate(subscription)}


@router.post("", response_model=SubscriptionCreateResponse, status_code=status.HTTP_201_CREATED)
def create_subscription(
    body: SubscriptionCreate,
    current_user: User = Depends(require_organizer),
    db: Session = Depends(get_db)
):
    """
    Start a subscription to a plan.

    Free plans are active immediately. Paid plans are stored with the
    processor's pending state and activated by its webhook.
    """
    plan = db.query(Plan).filter(Plan.id == body.plan_id).first()
    if not plan or not plan.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or inactive plan")

    existing = db.query(Subscription).filter(
        Subscription.user_id == current_user.id,
        Subscription.status.in_(LIVE_STATUSES)
    ).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already has an active subscription")

    if not plan.price:
        subscription = Subscription(
            user_id=current_user.id,
            plan_id=plan.id,
            status=SubscriptionStatus.ACTIVE.value,
            current_period_start=datetime.utcnow(),
        )
        db.add(subscription)
        db.commit()
        db.refresh(subscription)
        logger.info("[SUBSCRIPTION] User %s activated free plan %s", current_user.id, plan.name)
        return {
            "message": "Subscription created successfully",
            "subscription": SubscriptionSchema.model_validate(subscription),
        }

    if body.provider == "stripe":
        return _create_stripe_subscription(db, current_user, plan)
    return _create_paymongo_subscription(db, current_user, plan)


def _create_paymongo_subscription(db: Session, user: User, plan: Plan):
    try:
        intent = paymongo_client.create_payment_intent(
            plan.price,
            plan.currency,
            metadata={"userId": user.id, "planId": plan.id},
            description=f"{plan.name} plan subscription",
        )
    except PaymentProviderError as e:
        raise _provider_error(e)

    subscription = Subscription(
        user_id=user.id,
        plan_id=plan.id,
        status=SubscriptionStatus.INCOMPLETE.value,
        paymongo_payment_intent_id=intent["id"],
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    logger.info("[SUBSCRIPTION] Created incomplete subscription %s (intent %s)", subscription.id, intent["id"])

    return {
        "message": "Subscription created successfully",
        "subscription": SubscriptionSchema.model_validate(subscription),
        "client_secret": (intent.get("attributes") or {}).get("client_key"),
        "payment_intent_id": intent["id"],
    }


def _create_stripe_subscription(db: Session, user: User, plan: Plan):
    price_id = (plan.extra_metadata or {}).get("stripePriceId")
    if not price_id:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Stripe price ID not configured for this plan"
        )

    try:
        if not user.stripe_customer_id:
            customer = stripe_client.create_customer(user.email, user.name, {"userId": user.id})
            user.stripe_customer_id = customer["id"]
            db.commit()
        stripe_subscription = stripe_client.create_subscription(
            user.stripe_customer_id,
            price_id,
            {"userId": user.id, "planId": plan.id},
        )
    except PaymentProviderError as e:
        raise _provider_error(e)

    subscription = Subscription(
        user_id=user.id,
        plan_id=plan.id,
        status=map_stripe_status(stripe_subscription.get("status")).value,
        stripe_subscription_id=stripe_subscription["id"],
        stripe_customer_id=user.stripe_customer_id,
        **period_fields(stripe_subscription),
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    logger.info("[SUBSCRIPTION] Created Stripe subscription %s for user %s", stripe_subscription["id"], user.id)

    payment_intent = (stripe_subscription.get("latest_invoice") or {}).get("payment_intent") or {}
    return {
        "message": "Subscription created successfully",
        "subscription": SubscriptionSchema.model_validate(subscription),
        "client_secret": payment_intent.get("client_secret") if isinstance(payment_intent, dict) else None,
    }


def _get_own_subscription(db: Session, subscription_id: str, user: User) -> Subscription:
    subscription = db.query(Subscription).filter(
        Subscription.id == subscription_id,
        Subscription.user_id == user.id
    ).first()
    if not subscription:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscription not found")
    return subscription


@router.delete("/{subscription_id}", response_model=SubscriptionResponse)
def cancel_subscription(
    subscription_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Cancel at the end of the current period. The webhook records the final cancellation."""
    subscription = _get_own_subscription(db, subscription_id, current_user)
    if subscription.status == SubscriptionStatus.CANCELED.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Subscription is already canceled")

    if subscription.stripe_subscription_id:
        try:
            stripe_client.cancel_subscription(subscription.stripe_subscription_id, immediately=False)
        except PaymentProviderError as e:
            raise _provider_error(e)

    subscription.cancel_at_period_end = True
    db.commit()
    db.refresh(subscription)
    logger.info("[SUBSCRIPTION] Subscription %s set to cancel at period end", subscription.id)
    return {
        "message": "Subscription will be canceled at period end",
        "subscription": SubscriptionSchema.model_validate(subscription),
    }


@router.patch("/{subscription_id}", response_model=SubscriptionResponse)
def change_subscription_plan(
    subscription_id: str,
    body: SubscriptionUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    subscription = _get_own_subscription(db, subscription_id, current_user)
    if not subscription.stripe_subscription_id or not body.new_price_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid subscription or price ID")

    if body.plan_id:
        plan = db.query(Plan).filter(Plan.id == body.plan_id, Plan.is_active.is_(True)).first()
        if not plan:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or inactive plan")

    try:
        stripe_client.update_subscription(subscription.stripe_subscription_id, body.new_price_id)
    except PaymentProviderError as e:
        raise _provider_error(e)

    if body.plan_id:
        subscription.plan_id = body.plan_id
    db.commit()
    db.refresh(subscription)
    logger.info("[SUBSCRIPTION] Subscription %s moved to price %s", subscription.id, body.new_price_id)
    return {
        "message": "Subscription updated successfully",
        "subscription": SubscriptionSchema.model_validate(subscription),
    }
