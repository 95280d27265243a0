"""
Event booking payments.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.api.deps import get_current_user
from app.core.config import settings
from app.models.booking import Booking
from app.models.event import Event
from app.models.transaction import Transaction, TransactionStatus
from app.models.user import User
from app.schemas.payment import PaymentIntentCreate, PaymentIntentResponse
from app.services import paymongo_client
from app.services.errors import PaymentProviderError
from app.services.pricing import apply_discount, find_applicable_promo, split_platform_fee

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/create-intent", response_model=PaymentIntentResponse)
def create_payment_intent(
    body: PaymentIntentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Price an event booking (promo code applied) and open a PayMongo payment intent.

    A pending Transaction carrying the platform fee split is stored; the
    PayMongo webhook completes or fails it.
    """
    event = db.query(Event).filter(Event.slug == body.event_slug).first()
    if not event:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    if event.is_free:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This is a free event, no payment required")
    if not event.price:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Event price not set")

    if event.capacity:
        # Bookings without a payment status are free bookings and count as confirmed
        confirmed = db.query(Booking).filter(
            Booking.event_id == event.id,
            or_(Booking.payment_status == "confirmed", Booking.payment_status.is_(None))
        ).count()
        if confirmed >= event.capacity:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Event is sold out")

    promo = find_applicable_promo(db, body.promo_code, event) if body.promo_code else None
    amount, discount_amount = apply_discount(event.price, promo)
    currency = event.currency or settings.DEFAULT_CURRENCY

    try:
        intent = paymongo_client.create_payment_intent(
            amount,
            currency,
            metadata={
                "userId": current_user.id,
                "eventId": event.id,
                "eventSlug": event.slug,
                "promoCode": body.promo_code or "",
            },
        )
    except PaymentProviderError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    platform_fee, organizer_revenue = split_platform_fee(amount, settings.PLATFORM_FEE_PERCENT)
    transaction = Transaction(
        user_id=current_user.id,
        event_id=event.id,
        amount=amount,
        discount_amount=discount_amount,
        platform_fee=platform_fee,
        organizer_revenue=organizer_revenue,
        currency=currency,
        status=TransactionStatus.PENDING.value,
        promo_code=promo.code if promo else None,
        paymongo_payment_intent_id=intent["id"],
    )
    db.add(transaction)
    db.commit()
    db.refresh(transaction)
    logger.info(
        "[PAYMENT] Intent %s for event %s: amount=%s discount=%s fee=%s",
        intent["id"], event.slug, amount, discount_amount, platform_fee,
    )

    return {
        "message": "Payment intent created",
        "client_secret": (intent.get("attributes") or {}).get("client_key"),
        "payment_intent_id": intent["id"],
        "transaction_id": transaction.id,
        "amount": amount,
        "discount_amount": discount_amount,
        "currency": currency,
    }
