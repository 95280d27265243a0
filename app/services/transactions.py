"""
Booking transaction status updates driven by processor callbacks.
"""
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from app.models.transaction import Transaction, TransactionStatus

logger = logging.getLogger(__name__)

_T = TransactionStatus

# A completed or refunded transaction is never flipped back to failed by a late callback
_ALLOWED_SOURCES = {
    _T.COMPLETED: {_T.PENDING, _T.FAILED, _T.COMPLETED},
    _T.FAILED: {_T.PENDING, _T.FAILED},
}


def find_transaction(
    db: Session,
    paymongo_payment_intent_id: Optional[str] = None,
    stripe_payment_intent_id: Optional[str] = None,
    stripe_charge_id: Optional[str] = None,
) -> Optional[Transaction]:
    query = db.query(Transaction)
    if paymongo_payment_intent_id:
        return query.filter(Transaction.paymongo_payment_intent_id == paymongo_payment_intent_id).first()
    if stripe_payment_intent_id:
        return query.filter(Transaction.stripe_payment_intent_id == stripe_payment_intent_id).first()
    if stripe_charge_id:
        return query.filter(Transaction.stripe_charge_id == stripe_charge_id).first()
    return None


def mark_transaction(db: Session, transaction: Transaction, status: TransactionStatus) -> bool:
    status = TransactionStatus(status)
    if TransactionStatus(transaction.status) not in _ALLOWED_SOURCES[status]:
        logger.warning(
            "[TRANSACTION] Ignoring %s -> %s for transaction %s",
            transaction.status, status.value, transaction.id,
        )
        return False
    transaction.status = status.value
    transaction.updated_at = datetime.utcnow()
    db.commit()
    logger.info("[TRANSACTION] Transaction %s marked %s", transaction.id, status.value)
    return True


def apply_refund(db: Session, transaction: Transaction, amount_refunded: int) -> None:
    """Record the cumulative refunded amount reported by the processor."""
    transaction.refund_amount = amount_refunded
    if amount_refunded >= transaction.amount:
        transaction.status = _T.REFUNDED.value
    else:
        transaction.status = _T.PARTIALLY_REFUNDED.value
    transaction.updated_at = datetime.utcnow()
    db.commit()
    logger.info(
        "[TRANSACTION] Transaction %s %s (%s of %s)",
        transaction.id, transaction.status, amount_refunded, transaction.amount,
    )
