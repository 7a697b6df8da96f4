import logging
from datetime import datetime
from typing import List, Optional, Set, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from storefront.constants.order_status import ALLOWED_TRANSITIONS, CANCELLABLE_STATUSES
from storefront.models.order import Order, OrderStatus
from storefront.models.order_event import OrderEvent
from storefront.models.payment import Payment, PaymentStatus
from storefront.notifications import NotificationEvent, dispatch_order_event
from storefront.services.inventory_service import restore_inventory
from storefront.services.order_event_service import get_order_events, log_order_event
from storefront.services.refund_service import apply_refund

logger = logging.getLogger(__name__)

STATUS_NOTIFICATIONS = {
    OrderStatus.shipped: NotificationEvent.SHIPPED,
    OrderStatus.delivered: NotificationEvent.DELIVERED,
    OrderStatus.cancelled: NotificationEvent.CANCELLED,
}


def _coerce_status(value: Union[OrderStatus, str, None]) -> Optional[OrderStatus]:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(str(value).lower())
    except ValueError:
        return None


def valid_status_transitions(current_status: Union[OrderStatus, str]) -> Set[OrderStatus]:
    """Statuses an order in ``current_status`` may move to next."""
    status = _coerce_status(current_status)
    if status is None:
        return set()
    return set(ALLOWED_TRANSITIONS.get(status, []))


def is_valid_status_transition(current_status, new_status) -> bool:
    new = _coerce_status(new_status)
    return new is not None and new in valid_status_transitions(current_status)


# ---------------------------------------------------------------- reads

def get_order(session: Session, order_id: int, customer_id: Optional[int] = None) -> Optional[Order]:
    """Get order by ID, optionally checking customer ownership"""
    statement = select(Order).where(Order.id == order_id)
    if customer_id is not None:
        statement = statement.where(Order.customer_id == customer_id)

    return session.exec(statement).first()


def lock_order(session: Session, order_id: int, customer_id: Optional[int] = None) -> Optional[Order]:
    """
    Load an order with its row locked until the caller commits or rolls back.

    The row is re-read even if the session already holds it, so the status
    checked afterwards is the committed one.
    """
    statement = (
        select(Order)
        .where(Order.id == order_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if customer_id is not None:
        statement = statement.where(Order.customer_id == customer_id)

    return session.exec(statement).first()


def get_order_by_number(session: Session, order_number: str) -> Optional[Order]:
    return session.exec(
        select(Order).where(Order.order_number == order_number)
    ).first()


def customer_orders_query(customer_id: int):
    return (
        select(Order)
        .where(Order.customer_id == customer_id)
        .order_by(Order.order_date.desc())
    )


def list_customer_orders(session: Session, customer_id: int) -> List[Order]:
    return session.exec(customer_orders_query(customer_id)).all()


def get_order_history(session: Session, order_id: int) -> List[OrderEvent]:
    return get_order_events(session, order_id)


# ---------------------------------------------------------------- writes

def update_status(
    session: Session,
    order_id: int,
    new_status: Union[OrderStatus, str],
    notes: Optional[str] = None,
    actor_id: Optional[int] = None,
    tracking_number: Optional[str] = None,
) -> bool:
    """
    Move an order along the status table.

    Returns False, leaving the order untouched, when the order does not
    exist or the transition is not allowed. Entering ``cancelled`` puts the
    stock back; entering ``shipped``/``delivered`` stamps the matching date.
    Notifications go out only after the commit.
    """
    order = lock_order(session, order_id)
    if order is None:
        session.rollback()
        return False

    target = _coerce_status(new_status)
    old_status = order.status

    if target is None or not is_valid_status_transition(old_status, target):
        logger.warning(
            f"Rejected status change {old_status.value} -> {new_status} for order {order.order_number}"
        )
        session.rollback()
        return False

    now = datetime.utcnow()
    try:
        order.status = target
        order.updated_at = now

        if target == OrderStatus.cancelled:
            restore_inventory(session, order)
        elif target == OrderStatus.shipped:
            order.shipped_at = now
            if tracking_number:
                order.tracking_number = tracking_number
        elif target == OrderStatus.delivered:
            order.delivered_at = now

        session.add(order)
        log_order_event(
            session,
            order_id=order.id,
            event_type="status_changed",
            label=f"Status changed from {old_status.value} to {target.value}",
            actor_id=actor_id,
            meta={"from": old_status.value, "to": target.value, "notes": notes},
        )
        session.commit()
    except SQLAlchemyError:
        logger.exception(f"Error updating status of order {order_id}")
        session.rollback()
        raise

    logger.info(f"Order {order.order_number} moved from {old_status.value} to {target.value}")

    notification = STATUS_NOTIFICATIONS.get(target)
    if notification is not None:
        dispatch_order_event(event=notification, order=order, extra={"notes": notes})
    return True


def cancel_order(
    session: Session,
    order_id: int,
    reason: str,
    actor_id: Optional[int] = None,
    customer_id: Optional[int] = None,
) -> bool:
    """
    Cancel a pending or processing order.

    The status change, the stock restoration and, for a completed payment,
    the full refund are committed as one unit. Pass ``customer_id`` to
    restrict the cancellation to that customer's own order.
    """
    order = lock_order(session, order_id, customer_id=customer_id)
    if order is None:
        session.rollback()
        return False

    if order.status not in CANCELLABLE_STATUSES:
        logger.warning(
            f"Order {order.order_number} cannot be cancelled from {order.status.value}"
        )
        session.rollback()
        return False

    old_status = order.status
    refunded = False
    now = datetime.utcnow()

    try:
        order.status = OrderStatus.cancelled
        order.updated_at = now
        session.add(order)

        restore_inventory(session, order)

        payment = session.exec(
            select(Payment)
            .where(Payment.order_id == order.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).first()
        if payment is not None and payment.status == PaymentStatus.completed:
            if not apply_refund(
                session, payment, order.total, f"Order cancellation: {reason}", actor_id
            ):
                session.rollback()
                return False
            refunded = True

        log_order_event(
            session,
            order_id=order.id,
            event_type="cancelled",
            label=f"Order cancelled: {reason}",
            actor_id=actor_id,
            meta={"from": old_status.value, "reason": reason, "refunded": refunded},
        )
        session.commit()
    except SQLAlchemyError:
        logger.exception(f"Error cancelling order {order_id}")
        session.rollback()
        raise

    logger.info(f"Order {order.order_number} cancelled (refunded={refunded}): {reason}")

    dispatch_order_event(
        event=NotificationEvent.CANCELLED, order=order, extra={"reason": reason}
    )
    if refunded:
        dispatch_order_event(
            event=NotificationEvent.REFUND_PROCESSED,
            order=order,
            extra={"amount": str(order.total), "reason": reason},
        )
    return True


def add_order_note(
    session: Session,
    order_id: int,
    note: str,
    actor_id: Optional[int] = None,
) -> bool:
    order = get_order(session, order_id)
    if order is None or not note or not note.strip():
        return False

    try:
        order.updated_at = datetime.utcnow()
        session.add(order)
        log_order_event(
            session,
            order_id=order.id,
            event_type="note_added",
            label="Note added",
            actor_id=actor_id,
            meta={"note": note.strip()},
        )
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise

    return True
