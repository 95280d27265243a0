"""
Admin API endpoints for plans, subscriptions, payouts and financial reporting.
Only accessible to admin users.
"""
import csv
import io
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session, joinedload
from app.db.session import get_db
from app.api.deps import require_admin
from app.models.event import Event
from app.models.payout import Payout, PayoutStatus
from app.models.plan import Plan
from app.models.subscription import Subscription, SubscriptionStatus, LIVE_STATUSES
from app.models.transaction import Transaction, TransactionStatus
from app.models.user import User, UserRole
from app.schemas.admin import (
    FinancialsResponse,
    PayoutListResponse,
    PayoutResponse,
    PayoutUpdate,
    Payout as PayoutSchema,
)
from app.schemas.plan import (
    PlanCreate,
    PlanListResponse,
    PlanResponse,
    PlanUpdate,
    Plan as PlanSchema,
)
from app.schemas.subscription import AdminSubscriptionListResponse, AdminSubscription
from app.services.notifications import create_notification, format_amount

logger = logging.getLogger(__name__)

router = APIRouter()


# Plans
@router.get("/plans", response_model=PlanListResponse)
def list_all_plans(
    db: Session = Depends(get_db),
    admin_user: User = Depends(require_admin)
):
    """All plans, including inactive ones, cheapest first"""
    plans = db.query(Plan).order_by(Plan.price.asc(), Plan.name.asc()).all()
    return {
        "message": "Plans retrieved successfully",
        "plans": [PlanSchema.model_validate(p) for p in plans],
        "count": len(plans),
    }


@router.post("/plans", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
def create_plan(
    body: PlanCreate,
    db: Session = Depends(get_db),
    admin_user: User = Depends(require_admin)
):
    if not body.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name and price are required")
    if db.query(Plan).filter(Plan.name == body.name).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A plan with this name already exists")

    data = body.model_dump(exclude={"metadata"})
    plan = Plan(**data, extra_metadata=body.metadata)
    db.add(plan)
    db.commit()
    db.refresh(plan)
    logger.info("[PLANS] Admin %s created plan %s (%s)", admin_user.id, plan.name, plan.id)
    return {"message": "Plan created successfully", "plan": PlanSchema.model_validate(plan)}


def _get_plan(db: Session, plan_id: str) -> Plan:
    plan = db.query(Plan).filter(Plan.id == plan_id).first()
    if not plan:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Plan not found")
    return plan


@router.patch("/plans/{plan_id}", response_model=PlanResponse)
def update_plan(
    plan_id: str,
    body: PlanUpdate,
    db: Session = Depends(get_db),
    admin_user: User = Depends(require_admin)
):
    plan = _get_plan(db, plan_id)
    update_data = body.model_dump(exclude_unset=True)

    new_name = update_data.get("name")
    if new_name is not None:
        if not new_name.strip():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name cannot be empty")
        duplicate = db.query(Plan).filter(Plan.name == new_name, Plan.id != plan.id).first()
        if duplicate:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A plan with this name already exists")

    # Merged rather than replaced so a partial edit keeps other keys
    if update_data.get("features") is not None:
        plan.features = {**(plan.features or {}), **update_data.pop("features")}
    if update_data.get("limits") is not None:
        plan.limits = {**(plan.limits or {}), **update_data.pop("limits")}
    if "metadata" in update_data:
        plan.extra_metadata = update_data.pop("metadata")

    for field, value in update_data.items():
        if value is not None:
            setattr(plan, field, value)

    plan.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(plan)
    logger.info("[PLANS] Admin %s updated plan %s", admin_user.id, plan.id)
    return {"message": "Plan updated successfully", "plan": PlanSchema.model_validate(plan)}


@router.delete("/plans/{plan_id}")
def delete_plan(
    plan_id: str,
    db: Session = Depends(get_db),
    admin_user: User = Depends(require_admin)
):
    plan = _get_plan(db, plan_id)
    live = db.query(Subscription).filter(
        Subscription.plan_id == plan.id,
        Subscription.status.in_(LIVE_STATUSES)
    ).count()
    if live:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot delete plan with {live} active subscription(s). Deactivate it instead."
        )

    # Ended and pending subscriptions keep their plan_id
    referenced = db.query(Subscription).filter(Subscription.plan_id == plan.id).count()
    if referenced:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot delete plan referenced by {referenced} other subscription(s). Deactivate it instead."
        )

    db.delete(plan)
    db.commit()
    logger.info("[PLANS] Admin %s deleted plan %s", admin_user.id, plan_id)
    return {"message": "Plan deleted successfully"}


# Subscriptions
@router.get("/subscriptions", response_model=AdminSubscriptionListResponse)
def list_subscriptions(
    status_filter: Optional[str] = Query(None, alias="status"),
    organizer_id: Optional[str] = None,
    db: Session = Depends(get_db),
    admin_user: User = Depends(require_admin)
):
    query = db.query(Subscription).options(
        joinedload(Subscription.user),
        joinedload(Subscription.plan),
    )
    if status_filter:
        query = query.filter(Subscription.status == status_filter)
    if organizer_id:
        organizer = db.query(User).filter(
            User.id == organizer_id,
            User.role == UserRole.ORGANIZER.value,
            User.deleted.is_(False)
        ).first()
        if not organizer:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organizer not found")
        query = query.filter(Subscription.user_id == organizer.id)

    subscriptions = query.order_by(Subscription.created_at.desc()).all()

    def count(s: SubscriptionStatus) -> int:
        return sum(1 for sub in subscriptions if sub.status == s.value)

    return {
        "message": "Subscriptions retrieved successfully",
        "subscriptions": [AdminSubscription.model_validate(s) for s in subscriptions],
        "stats": {
            "total": len(subscriptions),
            "active": count(SubscriptionStatus.ACTIVE),
            "trialing": count(SubscriptionStatus.TRIALING),
            "canceled": count(SubscriptionStatus.CANCELED),
            "past_due": count(SubscriptionStatus.PAST_DUE),
        },
    }


# Payouts
@router.get("/payouts", response_model=PayoutListResponse)
def list_payouts(
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    admin_user: User = Depends(require_admin)
):
    query = db.query(Payout).options(joinedload(Payout.organizer))
    if status_filter:
        query = query.filter(Payout.status == status_filter)
    payouts = query.order_by(Payout.created_at.desc()).all()

    counts = defaultdict(int)
    amounts = defaultdict(int)
    for payout in payouts:
        counts[payout.status] += 1
        amounts[payout.status] += payout.amount

    return {
        "message": "Payouts retrieved successfully",
        "payouts": [PayoutSchema.model_validate(p) for p in payouts],
        "stats": {
            "total": len(payouts),
            **{s.value: counts[s.value] for s in PayoutStatus},
            "total_pending_amount": amounts[PayoutStatus.PENDING.value],
            "total_completed_amount": amounts[PayoutStatus.COMPLETED.value],
        },
    }


@router.patch("/payouts/{payout_id}", response_model=PayoutResponse)
def update_payout_status(
    payout_id: str,
    body: PayoutUpdate,
    db: Session = Depends(get_db),
    admin_user: User = Depends(require_admin)
):
    """Move a payout to a new status and notify its organizer"""
    try:
        new_status = PayoutStatus(body.status)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid status")

    payout = db.query(Payout).filter(Payout.id == payout_id).first()
    if not payout:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payout not found")

    payout.status = new_status.value
    if new_status in (PayoutStatus.PROCESSING, PayoutStatus.COMPLETED, PayoutStatus.CANCELLED):
        payout.processed_at = datetime.utcnow()
        payout.processed_by = admin_user.id
    if new_status == PayoutStatus.FAILED and body.failure_reason:
        payout.failure_reason = body.failure_reason
    payout.updated_at = datetime.utcnow()

    create_notification(
        db,
        user_id=payout.organizer_id,
        title="Payout Status Updated",
        message=f"Your payout request of {format_amount(payout.amount, payout.currency)} has been {new_status.value}.",
        link="/organizer-dashboard/payouts",
        metadata={"payoutId": payout.id, "status": new_status.value, "amount": payout.amount},
    )
    db.commit()
    db.refresh(payout)
    logger.info("[PAYOUT] Admin %s set payout %s to %s", admin_user.id, payout.id, new_status.value)
    return {"message": "Payout status updated successfully", "payout": PayoutSchema.model_validate(payout)}


# Financials
TIME_RANGES = {
    "today": None,
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "3months": timedelta(days=90),
    "6months": timedelta(days=180),
    "year": timedelta(days=365),
}


def _range_start(time_range: str, now: datetime) -> Optional[datetime]:
    if time_range not in TIME_RANGES:
        return None
    if time_range == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    return now - TIME_RANGES[time_range]


def _financial_window(time_range: str, start_date: Optional[datetime], end_date: Optional[datetime]):
    """(start, end) bounds; explicit dates override the preset window bound by bound"""
    start = _range_start(time_range, datetime.utcnow())
    end = None
    if start_date:
        start = start_date
    if end_date:
        end = end_date
    return start, end


def _in_range(query, column, start: Optional[datetime], end: Optional[datetime]):
    if start:
        query = query.filter(column >= start)
    if end:
        query = query.filter(column <= end)
    return query


def _load_financials(db: Session, start: Optional[datetime], end: Optional[datetime]):
    transactions = _in_range(
        db.query(Transaction).filter(Transaction.status == TransactionStatus.COMPLETED.value),
        Transaction.created_at, start, end,
    ).order_by(Transaction.created_at.desc()).all()
    refunded = _in_range(
        db.query(Transaction).filter(Transaction.status.in_([
            TransactionStatus.REFUNDED.value,
            TransactionStatus.PARTIALLY_REFUNDED.value,
        ])),
        Transaction.created_at, start, end,
    ).all()
    subscriptions = _in_range(
        db.query(Subscription).options(joinedload(Subscription.plan)).filter(Subscription.status.in_(LIVE_STATUSES)),
        Subscription.created_at, start, end,
    ).order_by(Subscription.created_at.desc()).all()
    return transactions, refunded, subscriptions


def _summarize(transactions, refunded, subscriptions) -> dict:
    total_platform_revenue = sum(t.platform_fee or 0 for t in transactions)
    total_refunded = sum(t.refund_amount or 0 for t in refunded)
    subscription_revenue = sum(s.plan.price for s in subscriptions if s.plan and s.plan.price)
    total_revenue = total_platform_revenue + subscription_revenue
    return {
        "total_platform_revenue": total_platform_revenue,
        "total_organizer_revenue": sum(t.organizer_revenue or 0 for t in transactions),
        "total_transaction_amount": sum(t.amount or 0 for t in transactions),
        "total_refunded": total_refunded,
        "subscription_revenue": subscription_revenue,
        "total_revenue": total_revenue,
        "net_revenue": total_revenue - total_refunded,
        "transaction_count": len(transactions),
    }


def _event_titles(db: Session, event_ids) -> dict:
    if not event_ids:
        return {}
    return dict(db.query(Event.id, Event.title).filter(Event.id.in_(list(event_ids))).all())


@router.get("/financials", response_model=FinancialsResponse)
def get_financials(
    time_range: str = "all",
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    admin_user: User = Depends(require_admin)
):
    """Platform revenue overview from completed transactions and live subscriptions"""
    start, end = _financial_window(time_range, start_date, end_date)
    transactions, refunded, subscriptions = _load_financials(db, start, end)

    monthly = defaultdict(lambda: {"platform_revenue": 0, "organizer_revenue": 0, "transactions": 0})
    by_event = defaultdict(lambda: {"revenue": 0, "transactions": 0})
    for t in transactions:
        bucket = monthly[t.created_at.strftime("%Y-%m")]
        bucket["platform_revenue"] += t.platform_fee or 0
        bucket["organizer_revenue"] += t.organizer_revenue or 0
        bucket["transactions"] += 1
        by_event[t.event_id]["revenue"] += t.organizer_revenue or 0
        by_event[t.event_id]["transactions"] += 1

    titles = _event_titles(db, by_event)
    top_events = sorted(
        (
            {"event_id": event_id, "event_title": titles.get(event_id, "Unknown"), **data}
            for event_id, data in by_event.items()
        ),
        key=lambda e: e["revenue"],
        reverse=True,
    )[:10]

    return {
        "message": "Financial data retrieved successfully",
        "summary": _summarize(transactions, refunded, subscriptions),
        "monthly_breakdown": [{"month": month, **data} for month, data in sorted(monthly.items())],
        "top_events": top_events,
    }


def _money(amount: Optional[int]) -> str:
    return f"{(amount or 0) / 100:.2f}"


@router.get("/financials/export")
def export_financials(
    time_range: str = "all",
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    admin_user: User = Depends(require_admin)
):
    """Same report as /financials, as a CSV download with per-row details"""
    start, end = _financial_window(time_range, start_date, end_date)
    transactions, refunded, subscriptions = _load_financials(db, start, end)
    summary = _summarize(transactions, refunded, subscriptions)

    titles = _event_titles(db, {t.event_id for t in transactions})
    customer_ids = {t.user_id for t in transactions}
    customers = {}
    if customer_ids:
        customers = {
            u.id: u.name or u.email
            for u in db.query(User).filter(User.id.in_(list(customer_ids))).all()
        }

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["Financial Report Summary"])
    writer.writerow(["Period", "All Time" if time_range == "all" else time_range])
    writer.writerow(["Total Platform Revenue", _money(summary["total_platform_revenue"])])
    writer.writerow(["Total Organizer Revenue", _money(summary["total_organizer_revenue"])])
    writer.writerow(["Total Transaction Amount", _money(summary["total_transaction_amount"])])
    writer.writerow(["Total Refunded", _money(summary["total_refunded"])])
    writer.writerow(["Subscription Revenue", _money(summary["subscription_revenue"])])
    writer.writerow(["Total Revenue", _money(summary["total_revenue"])])
    writer.writerow([])
    writer.writerow(["Transaction Details"])
    writer.writerow(["Date", "Event", "Customer", "Amount", "Platform Fee", "Organizer Revenue", "Status", "Currency"])
    for t in transactions:
        writer.writerow([
            t.created_at.isoformat(),
            titles.get(t.event_id, "N/A"),
            customers.get(t.user_id, "N/A"),
            _money(t.amount),
            _money(t.platform_fee),
            _money(t.organizer_revenue),
            t.status,
            (t.currency or "").upper(),
        ])
    writer.writerow([])
    writer.writerow(["Subscription Details"])
    writer.writerow(["Plan", "Status", "Amount", "Created At"])
    for s in subscriptions:
        writer.writerow([
            s.plan.name if s.plan else "N/A",
            s.status,
            _money(s.plan.price if s.plan else 0),
            s.created_at.isoformat(),
        ])

    filename = f"financial-report-{time_range}-{datetime.utcnow().strftime('%Y%m%dT%H%M%SZ')}.csv"
    logger.info("[FINANCIALS] Admin %s exported financials (%s)", admin_user.id, time_range)
    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
