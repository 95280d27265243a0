from pydantic import BaseModel
from typing import Optional, List, Literal
from datetime import datetime
from app.schemas.plan import Plan


class SubscriptionCreate(BaseModel):
    plan_id: str
    provider: Literal["paymongo", "stripe"] = "paymongo"


class SubscriptionUpdate(BaseModel):
    new_price_id: Optional[str] = None
    plan_id: Optional[str] = None


class Subscription(BaseModel):
    id: str
    status: str
    plan: Optional[Plan] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[datetime] = None
    trial_end: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubscriptionResponse(BaseModel):
    message: str
    subscription: Optional[Subscription] = None


class SubscriptionCreateResponse(SubscriptionResponse):
    # PayMongo client key or Stripe client secret for completing payment
    client_secret: Optional[str] = None
    payment_intent_id: Optional[str] = None


class SubscriptionUser(BaseModel):
    id: str
    name: str
    email: str

    class Config:
        from_attributes = True


class AdminSubscription(Subscription):
    user: Optional[SubscriptionUser] = None
    stripe_subscription_id: Optional[str] = None
    paymongo_payment_intent_id: Optional[str] = None
    created_at: datetime


class SubscriptionStats(BaseModel):
    total: int
    active: int
    trialing: int
    canceled: int
    past_due: int


class AdminSubscriptionListResponse(BaseModel):
    message: str
    subscriptions: List[AdminSubscription]
    stats: SubscriptionStats
