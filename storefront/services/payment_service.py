import logging
from datetime import datetime
from typing import Optional, Tuple, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from storefront.models.order import Order
from storefront.models.payment import Payment, PaymentStatus

logger = logging.getLogger(__name__)


def get_payment(session: Session, payment_id: int) -> Optional[Payment]:
    return session.get(Payment, payment_id)


def payments_query(
    status: Optional[PaymentStatus] = None,
    order_number: Optional[str] = None,
):
    query = select(Payment).join(Order, Order.id == Payment.order_id)

    if status:
        query = query.where(Payment.status == status)

    if order_number:
        query = query.where(Order.order_number.ilike(f"%{order_number}%"))

    return query.order_by(Payment.payment_date.desc())


def _other_completed_payment(session: Session, payment: Payment) -> Optional[Payment]:
    return session.exec(
        select(Payment)
        .where(Payment.order_id == payment.order_id)
        .where(Payment.status == PaymentStatus.completed)
        .where(Payment.id != payment.id)
    ).first()


def validate_payment(session: Session, payment: Payment) -> Tuple[bool, str]:
    if session.get(Order, payment.order_id) is None:
        return False, "Order not found"

    if payment.amount is None or payment.amount <= 0:
        return False, "Payment amount must be greater than zero"

    if _other_completed_payment(session, payment) is not None:
        return False, "Order already has a completed payment"

    return True, ""


def change_payment_status(
    session: Session,
    payment_id: int,
    new_status: Union[PaymentStatus, str],
    reason: Optional[str] = None,
    transaction_id: Optional[str] = None,
    gateway: Optional[str] = None,
) -> bool:
    """
    Record the outcome of a payment attempt.

    Refunds are not reachable from here; they go through
    ``refund_service.process_refund``. A refunded payment is final.
    """
    payment = session.get(Payment, payment_id)
    if payment is None:
        return False

    try:
        target = PaymentStatus(new_status)
    except ValueError:
        return False

    if target == PaymentStatus.refunded:
        logger.warning(f"Payment {payment_id}: refunds must go through the refund operation")
        return False

    if payment.status == PaymentStatus.refunded:
        logger.warning(f"Payment {payment_id} is refunded and cannot change status")
        return False

    if transaction_id:
        duplicate = session.exec(
            select(Payment.id)
            .where(Payment.transaction_id == transaction_id)
            .where(Payment.id != payment.id)
        ).first()
        if duplicate is not None:
            logger.warning(f"Transaction id {transaction_id} already used by payment {duplicate}")
            return False

    if target == PaymentStatus.completed and _other_completed_payment(session, payment):
        return False

    old_status = payment.status
    now = datetime.utcnow()

    payment.status = target
    payment.updated_at = now
    if transaction_id:
        payment.transaction_id = transaction_id
    if gateway:
        payment.gateway = gateway

    if target == PaymentStatus.completed:
        payment.processed_at = now
    elif target == PaymentStatus.failed and reason:
        payment.failure_reason = reason

    session.add(payment)
    try:
        session.commit()
    except IntegrityError:
        # lost a race on the transaction id index
        session.rollback()
        logger.warning(f"Conflict while updating payment {payment_id}")
        return False
    except SQLAlchemyError:
        session.rollback()
        raise

    logger.info(f"Payment status changed from {old_status.value} to {target.value} for ID: {payment_id}")
    return True


def delete_payment(session: Session, payment_id: int) -> bool:
    """Hard delete; payments carry no soft-delete flag."""
    payment = session.get(Payment, payment_id)
    if payment is None:
        return False

    try:
        session.delete(payment)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise

    logger.info(f"Payment {payment_id} deleted")
    return True
