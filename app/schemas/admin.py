from pydantic import BaseModel
from typing import Optional, List, Dict, Any
from datetime import datetime


class PayoutOrganizer(BaseModel):
    id: str
    name: str
    email: str

    class Config:
        from_attributes = True


class Payout(BaseModel):
    id: str
    organizer: Optional[PayoutOrganizer] = None
    amount: int
    currency: str
    status: str
    payment_method: Optional[str] = None
    account_details: Optional[Dict[str, Any]] = None
    transaction_ids: List[str] = []
    requested_at: datetime
    processed_at: Optional[datetime] = None
    processed_by: Optional[str] = None
    failure_reason: Optional[str] = None

    class Config:
        from_attributes = True


class PayoutUpdate(BaseModel):
    status: str  # Checked against PayoutStatus by the route (400 when unknown)
    failure_reason: Optional[str] = None


class PayoutStats(BaseModel):
    total: int
    pending: int
    processing: int
    completed: int
    failed: int
    cancelled: int
    total_pending_amount: int
    total_completed_amount: int


class PayoutListResponse(BaseModel):
    message: str
    payouts: List[Payout]
    stats: PayoutStats


class PayoutResponse(BaseModel):
    message: str
    payout: Payout


class FinancialSummary(BaseModel):
    total_platform_revenue: int
    total_organizer_revenue: int
    total_transaction_amount: int
    total_refunded: int
    subscription_revenue: int
    total_revenue: int
    net_revenue: int
    transaction_count: int


class MonthlyRevenue(BaseModel):
    month: str  # YYYY-MM
    platform_revenue: int
    organizer_revenue: int
    transactions: int


class TopEvent(BaseModel):
    event_id: str
    event_title: str
    revenue: int
    transactions: int


class FinancialsResponse(BaseModel):
    message: str
    summary: FinancialSummary
    monthly_breakdown: List[MonthlyRevenue]
    top_events: List[TopEvent]
