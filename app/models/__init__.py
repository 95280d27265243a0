from app.models.user import User, UserRole
from app.models.plan import Plan
from app.models.subscription import Subscription, SubscriptionStatus, LIVE_STATUSES
from app.models.payment import Payment
from app.models.transaction import Transaction, TransactionStatus
from app.models.payout import Payout, PayoutStatus
from app.models.notification import Notification
from app.models.event import Event
from app.models.booking import Booking
from app.models.promo_code import PromoCode
from app.models.webhook_event import WebhookEvent

__all__ = [
    "User", "UserRole", "Plan", "Subscription", "SubscriptionStatus", "LIVE_STATUSES",
    "Payment", "Transaction", "TransactionStatus", "Payout", "PayoutStatus",
    "Notification", "Event", "Booking", "PromoCode", "WebhookEvent",
]
