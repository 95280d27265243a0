from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey
import uuid
from datetime import datetime
from app.db.session import Base


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    slug = Column(String, nullable=False, unique=True, index=True)
    title = Column(String, nullable=False)
    organizer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    is_free = Column(Boolean, default=False, nullable=False)
    price = Column(Integer, nullable=True)  # Minor currency units
    currency = Column(String(3), nullable=True)
    capacity = Column(Integer, nullable=True)  # null = unlimited
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
