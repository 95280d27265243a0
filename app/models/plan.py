from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, JSON
import uuid
from datetime import datetime
from app.db.session import Base


class Plan(Base):
    __tablename__ = "plans"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    price = Column(Integer, nullable=False, default=0)  # Minor currency units (centavos)
    annual_price = Column(Integer, nullable=True)
    currency = Column(String(3), default="php", nullable=False)
    billing_cycle = Column(String, default="monthly", nullable=False)  # monthly, yearly
    features = Column(JSON, nullable=False, default=dict)
    limits = Column(JSON, nullable=False, default=dict)
    # "metadata" is reserved on declarative classes
    extra_metadata = Column("metadata", JSON, nullable=True)  # e.g. {"stripePriceId": "price_..."}
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    is_popular = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
