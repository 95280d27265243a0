"""
Public plan catalog.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.models.plan import Plan
from app.schemas.plan import PlanListResponse, Plan as PlanSchema
from app.services.plan_catalog import seed_plans_if_empty, sort_plans

router = APIRouter()


@router.get("", response_model=PlanListResponse)
def list_plans(db: Session = Depends(get_db)):
    """List active plans, seeding the default catalog on first use."""
    seed_plans_if_empty(db)
    plans = db.query(Plan).filter(Plan.is_active.is_(True)).all()
    return {
        "message": "Plans retrieved successfully",
        "plans": [PlanSchema.model_validate(p) for p in sort_plans(plans)],
    }
