# -------- ADMIN ORDERS --------
from datetime import date, datetime, time
from enum import Enum
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from storefront.database import get_session
from storefront.dependencies.actor import RequestContext, require_admin
from storefront.models.order import Order, OrderStatus
from storefront.models.payment import Payment, PaymentStatus
from storefront.schemas.orders_schemas import (
    CancelOrderRequest,
    OrderEventRead,
    OrderNoteRequest,
    OrderRead,
    RefundRequest,
    StatusUpdateRequest,
)
from storefront.services.order_lifecycle import (
    add_order_note,
    cancel_order,
    get_order,
    get_order_history,
    update_status,
    valid_status_transitions,
)
from storefront.services.refund_service import process_order_refund
from storefront.services.statistics_service import orders_needing_attention
from storefront.utils.pagination import paginate


router = APIRouter()


class OrderSortField(str, Enum):
    order_date = "order_date"
    total = "total"
    status = "status"
    order_number = "order_number"


class SortDirection(str, Enum):
    asc = "asc"
    desc = "desc"


ORDER_SORT_COLUMNS = {
    OrderSortField.order_date: Order.order_date,
    OrderSortField.total: Order.total,
    OrderSortField.status: Order.status,
    OrderSortField.order_number: Order.order_number,
}


def _summary(o: Order) -> dict:
    return {
        "order_id": o.id,
        "order_number": o.order_number,
        "customer_id": o.customer_id,
        "date": o.order_date,
        "total_amount": o.total,
        "status": o.status,
        "payment_status": o.payment.status if o.payment else PaymentStatus.none,
    }


def _get_order_or_404(session: Session, order_id: int) -> Order:
    order = get_order(session, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.get("")
def list_orders(
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    sort_by: OrderSortField = OrderSortField.order_date,
    sort_order: SortDirection = SortDirection.desc,
    session: Session = Depends(get_session),
    _: RequestContext = Depends(require_admin),
):
    query = select(Order)

    if search:
        query = query.where(Order.order_number.ilike(f"%{search}%"))

    if status:
        query = query.where(Order.status == status)

    if payment_status and payment_status != PaymentStatus.none:
        query = query.join(Payment, Payment.order_id == Order.id).where(
            Payment.status == payment_status
        )

    if start_date:
        query = query.where(Order.order_date >= datetime.combine(start_date, time.min))

    if end_date:
        query = query.where(Order.order_date <= datetime.combine(end_date, time.max))

    column = ORDER_SORT_COLUMNS[sort_by]
    query = query.order_by(column.desc() if sort_order == SortDirection.desc else column.asc())

    data = paginate(session=session, query=query, page=page, limit=limit)
    data["results"] = [_summary(o) for o in data["results"]]
    return data


@router.get("/attention")
def list_orders_needing_attention(
    session: Session = Depends(get_session),
    _: RequestContext = Depends(require_admin),
):
    return [_summary(o) for o in orders_needing_attention(session)]


@router.get("/{order_id}", response_model=OrderRead)
def order_details(
    order_id: int,
    session: Session = Depends(get_session),
    _: RequestContext = Depends(require_admin),
):
    return OrderRead.model_validate(_get_order_or_404(session, order_id))


@router.get("/{order_id}/transitions")
def order_transitions(
    order_id: int,
    session: Session = Depends(get_session),
    _: RequestContext = Depends(require_admin),
):
    order = _get_order_or_404(session, order_id)
    allowed = sorted(valid_status_transitions(order.status), key=lambda s: s.value)
    return {
        "order_id": order.id,
        "current_status": order.status,
        "allowed": allowed,
    }


@router.patch("/{order_id}/status", response_model=OrderRead)
def change_order_status(
    order_id: int,
    data: StatusUpdateRequest,
    session: Session = Depends(get_session),
    admin: RequestContext = Depends(require_admin),
):
    order = _get_order_or_404(session, order_id)
    current = order.status

    if not update_status(
        session,
        order_id,
        data.status,
        notes=data.notes,
        actor_id=admin.actor_id,
        tracking_number=data.tracking_number,
    ):
        raise HTTPException(
            400,
            f"Cannot change order status from {current.value} to {data.status.value}",
        )

    return OrderRead.model_validate(_get_order_or_404(session, order_id))


@router.post("/{order_id}/cancel", response_model=OrderRead)
def cancel_order_by_admin(
    order_id: int,
    data: CancelOrderRequest,
    session: Session = Depends(get_session),
    admin: RequestContext = Depends(require_admin),
):
    order = _get_order_or_404(session, order_id)
    current = order.status

    if not cancel_order(session, order_id, reason=data.reason, actor_id=admin.actor_id):
        raise HTTPException(400, f"Order cannot be cancelled. Current status: {current.value}")

    return OrderRead.model_validate(_get_order_or_404(session, order_id))


@router.post("/{order_id}/refund")
def refund_order(
    order_id: int,
    data: RefundRequest,
    session: Session = Depends(get_session),
    admin: RequestContext = Depends(require_admin),
):
    _get_order_or_404(session, order_id)

    if not process_order_refund(
        session, order_id, data.amount, data.reason, actor_id=admin.actor_id
    ):
        raise HTTPException(
            400,
            "Refund rejected: payment must be completed and the amount must not exceed the paid amount",
        )

    return {"message": "Refund processed", "order_id": order_id, "amount": data.amount}


@router.post("/{order_id}/notes", status_code=201)
def add_note(
    order_id: int,
    data: OrderNoteRequest,
    session: Session = Depends(get_session),
    admin: RequestContext = Depends(require_admin),
):
    _get_order_or_404(session, order_id)

    if not add_order_note(session, order_id, data.note, actor_id=admin.actor_id):
        raise HTTPException(400, "Note is empty")

    return {"message": "Note added", "order_id": order_id}


@router.get("/{order_id}/events", response_model=list[OrderEventRead])
def order_timeline(
    order_id: int,
    session: Session = Depends(get_session),
    _: RequestContext = Depends(require_admin),
):
    _get_order_or_404(session, order_id)
    return [OrderEventRead.model_validate(e) for e in get_order_history(session, order_id)]
