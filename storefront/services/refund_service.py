import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from storefront.models.payment import Payment, PaymentStatus
from storefront.notifications import NotificationEvent, dispatch_order_event
from storefront.services.order_event_service import log_order_event

logger = logging.getLogger(__name__)


def _as_amount(value) -> Optional[Decimal]:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    # NaN and Infinity parse but cannot be compared or stored
    return amount if amount.is_finite() else None


def apply_refund(
    session: Session,
    payment: Payment,
    refund_amount,
    reason: str,
    actor_id: Optional[int] = None,
) -> bool:
    """
    Mark ``payment`` refunded inside the caller's transaction.

    Only a completed payment can be refunded, for at most the paid amount.
    Stock is not touched here. Nothing is committed.
    """
    amount = _as_amount(refund_amount)

    if payment.status != PaymentStatus.completed:
        logger.warning(f"Cannot refund payment {payment.id} with status {payment.status.value}")
        return False

    if amount is None or amount <= 0:
        logger.warning(f"Refund amount {refund_amount} for payment {payment.id} must be positive")
        return False

    if amount > payment.amount:
        logger.warning(
            f"Refund amount {amount} exceeds payment amount {payment.amount} for payment {payment.id}"
        )
        return False

    now = datetime.utcnow()
    payment.status = PaymentStatus.refunded
    payment.refund_amount = amount
    payment.refunded_at = now
    payment.failure_reason = f"Refunded: {reason}"
    payment.updated_at = now
    session.add(payment)

    log_order_event(
        session,
        order_id=payment.order_id,
        event_type="refund_processed",
        label=f"Refunded {amount}",
        actor_id=actor_id,
        meta={"amount": str(amount), "reason": reason},
    )
    return True


def process_refund(
    session: Session,
    payment_id: int,
    refund_amount,
    reason: str,
    actor_id: Optional[int] = None,
) -> bool:
    payment = session.get(Payment, payment_id, with_for_update=True, populate_existing=True)
    if payment is None:
        session.rollback()
        return False

    try:
        if not apply_refund(session, payment, refund_amount, reason, actor_id):
            session.rollback()
            return False
        session.commit()
    except SQLAlchemyError:
        logger.exception(f"Error refunding payment {payment_id}")
        session.rollback()
        raise

    logger.info(f"Payment {payment_id} refunded. Amount: {refund_amount}, Reason: {reason}")

    dispatch_order_event(
        event=NotificationEvent.REFUND_PROCESSED,
        order=payment.order,
        extra={"amount": str(payment.refund_amount), "reason": reason},
    )
    return True


def process_order_refund(
    session: Session,
    order_id: int,
    refund_amount,
    reason: str,
    actor_id: Optional[int] = None,
) -> bool:
    payment = session.exec(
        select(Payment).where(Payment.order_id == order_id)
    ).first()
    if payment is None:
        return False

    return process_refund(session, payment.id, refund_amount, reason, actor_id)
