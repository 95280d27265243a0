from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime


class PlanBase(BaseModel):
    name: str
    description: Optional[str] = None
    price: int = Field(..., ge=0)  # Minor currency units
    annual_price: Optional[int] = Field(None, ge=0)
    currency: str = "php"
    billing_cycle: str = "monthly"
    features: Dict[str, Any] = {}
    limits: Dict[str, Any] = {}
    is_popular: bool = False


class PlanCreate(PlanBase):
    metadata: Optional[Dict[str, Any]] = None  # e.g. {"stripePriceId": "price_..."}
    is_active: bool = True


class PlanUpdate(BaseModel):
    """Partial update. `features` and `limits` are merged into the stored values."""
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    annual_price: Optional[int] = Field(None, ge=0)
    currency: Optional[str] = None
    billing_cycle: Optional[str] = None
    features: Optional[Dict[str, Any]] = None
    limits: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None
    is_popular: Optional[bool] = None


class Plan(PlanBase):
    id: str
    is_active: bool
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="extra_metadata")
    created_at: datetime

    class Config:
        from_attributes = True


class PlanListResponse(BaseModel):
    message: str
    plans: List[Plan]
    count: Optional[int] = None


class PlanResponse(BaseModel):
    message: str
    plan: Plan
