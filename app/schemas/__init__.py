from app.schemas.plan import Plan, PlanCreate, PlanUpdate
from app.schemas.subscription import Subscription, SubscriptionCreate, SubscriptionUpdate
from app.schemas.payment import PaymentIntentCreate
from app.schemas.admin import Payout, PayoutUpdate

__all__ = [
    "Plan", "PlanCreate", "PlanUpdate",
    "Subscription", "SubscriptionCreate", "SubscriptionUpdate",
    "PaymentIntentCreate",
    "Payout", "PayoutUpdate",
]
