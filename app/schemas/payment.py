from pydantic import BaseModel
from typing import Optional


class PaymentIntentCreate(BaseModel):
    event_slug: str
    promo_code: Optional[str] = None


class PaymentIntentResponse(BaseModel):
    message: str
    client_secret: Optional[str] = None
    payment_intent_id: str
    transaction_id: str
    amount: int
    discount_amount: int
    currency: str
