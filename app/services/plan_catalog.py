"""
Default subscription plans and plan ordering.
"""
import logging
from typing import List
from sqlalchemy.orm import Session
from app.models.plan import Plan

logger = logging.getLogger(__name__)

PLAN_ORDER = ["Free", "Basic", "Pro", "Enterprise"]

_NO_EXTRAS = {
    "whiteLabel": False,
    "dedicatedAccountManager": False,
    "slaGuarantee": False,
    "customIntegrations": False,
    "advancedSecurity": False,
    "teamManagement": False,
    "advancedReporting": False,
}

DEFAULT_PLANS = [
    {
        "name": "Free",
        "description": "Perfect for getting started with event management",
        "price": 0,
        "features": {
            "maxEvents": 3,
            "maxBookingsPerEvent": 50,
            "analytics": False,
            "customBranding": False,
            "prioritySupport": False,
            "apiAccess": False,
            **_NO_EXTRAS,
        },
        "limits": {"eventsPerMonth": 3, "bookingsPerMonth": 150},
    },
    {
        "name": "Basic",
        "description": "For growing event organizers",
        "price": 150000,  # PHP 1,500/month
        "annual_price": 1500000,  # Two months free
        "features": {
            "maxEvents": 20,
            "maxBookingsPerEvent": 500,
            "analytics": True,
            "customBranding": False,
            "prioritySupport": False,
            "apiAccess": False,
            **_NO_EXTRAS,
        },
        "limits": {"eventsPerMonth": 20, "bookingsPerMonth": 10000},
    },
    {
        "name": "Pro",
        "description": "For professional event organizers",
        "price": 500000,
        "annual_price": 5000000,
        "is_popular": True,
        "features": {
            "maxEvents": None,  # Unlimited
            "maxBookingsPerEvent": None,
            "analytics": True,
            "customBranding": True,
            "prioritySupport": True,
            "apiAccess": True,
            **_NO_EXTRAS,
        },
        "limits": {"eventsPerMonth": None, "bookingsPerMonth": None},
    },
    {
        "name": "Enterprise",
        "description": "Custom solutions for large organizations",
        "price": 0,  # Custom pricing
        "features": {
            "maxEvents": None,
            "maxBookingsPerEvent": None,
            "analytics": True,
            "customBranding": True,
            "prioritySupport": True,
            "apiAccess": True,
            **{key: True for key in _NO_EXTRAS},
        },
        "limits": {},
    },
]


def seed_plans_if_empty(db: Session) -> bool:
    """Create or reactivate the default plans when no active plan exists."""
    if db.query(Plan).filter(Plan.is_active.is_(True)).count() > 0:
        return False

    for plan_data in DEFAULT_PLANS:
        plan = db.query(Plan).filter(Plan.name == plan_data["name"]).first()
        if plan is None:
            plan = Plan(name=plan_data["name"])
            db.add(plan)
        plan.description = plan_data["description"]
        plan.price = plan_data["price"]
        plan.annual_price = plan_data.get("annual_price")
        plan.currency = "php"
        plan.billing_cycle = "monthly"
        plan.features = plan_data["features"]
        plan.limits = plan_data["limits"]
        plan.is_popular = plan_data.get("is_popular", False)
        plan.is_active = True
    db.commit()
    logger.info("[PLANS] Seeded %d default plans", len(DEFAULT_PLANS))
    return True


def sort_plans(plans: List[Plan]) -> List[Plan]:
    """Known plans in catalog order, everything else after them by price."""
    def key(plan: Plan):
        if plan.name in PLAN_ORDER:
            return (0, PLAN_ORDER.index(plan.name), 0)
        return (1, 0, plan.price or 0)
    return sorted(plans, key=key)
