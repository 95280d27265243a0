"""
In-app notifications for users.
"""
import logging
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session
from app.models.notification import Notification

logger = logging.getLogger(__name__)


def create_notification(
    db: Session,
    user_id: str,
    title: str,
    message: str,
    type: str = "other",
    link: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Notification:
    """Add a notification to the session; the caller commits."""
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        link=link,
        extra_metadata=metadata,
    )
    db.add(notification)
    logger.info("[NOTIFY] %s notification for user %s: %s", type, user_id, title)
    return notification


def format_amount(amount: int, currency: str) -> str:
    """150000, "php" -> "1500.00 PHP"."""
    return f"{amount / 100:.2f} {currency.upper()}"
