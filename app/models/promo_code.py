from sqlalchemy import Column, String, Integer, Float, Boolean, DateTime, ForeignKey
import uuid
from datetime import datetime
from app.db.session import Base


class PromoCode(Base):
    __tablename__ = "promo_codes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code = Column(String, nullable=False, index=True)  # Stored upper case
    event_id = Column(String(36), ForeignKey("events.id"), nullable=True, index=True)  # null = any event
    discount_type = Column(String, nullable=False)  # percentage, fixed
    discount_value = Column(Float, nullable=False)
    max_discount_amount = Column(Integer, nullable=True)  # Cap for percentage discounts
    usage_limit = Column(Integer, nullable=True)
    used_count = Column(Integer, default=0, nullable=False)
    valid_from = Column(DateTime, nullable=False)
    valid_until = Column(DateTime, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
