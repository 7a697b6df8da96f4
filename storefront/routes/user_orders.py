from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from storefront.database import get_session
from storefront.dependencies.actor import RequestContext, get_current_customer
from storefront.schemas.orders_schemas import CancelOrderRequest, OrderRead
from storefront.services.order_lifecycle import (
    cancel_order,
    customer_orders_query,
    get_order,
    get_order_by_number,
)
from storefront.utils.pagination import paginate

router = APIRouter()


@router.get("")
def my_orders(
    page: int = 1,
    limit: int = 10,
    session: Session = Depends(get_session),
    customer: RequestContext = Depends(get_current_customer),
):
    data = paginate(
        session=session,
        query=customer_orders_query(customer.actor_id),
        page=page,
        limit=limit,
    )

    data["results"] = [
        {
            "order_id": o.id,
            "order_number": o.order_number,
            "date": o.order_date,
            "status": o.status,
            "total": o.total,
            "item_count": len(o.items),
        }
        for o in data["results"]
    ]
    return data


@router.get("/{order_number}", response_model=OrderRead)
def my_order_detail(
    order_number: str,
    session: Session = Depends(get_session),
    customer: RequestContext = Depends(get_current_customer),
):
    order = get_order_by_number(session, order_number)
    if not order or order.customer_id != customer.actor_id:
        raise HTTPException(404, "Order not found")

    return OrderRead.model_validate(order)


@router.post("/{order_id}/cancel")
def cancel_my_order(
    order_id: int,
    data: CancelOrderRequest,
    session: Session = Depends(get_session),
    customer: RequestContext = Depends(get_current_customer),
):
    """
    Customer cancels their own order
    """
    order = get_order(session, order_id, customer_id=customer.actor_id)
    if not order:
        raise HTTPException(404, "Order not found")

    if not cancel_order(
        session,
        order_id,
        reason=data.reason,
        actor_id=customer.actor_id,
        customer_id=customer.actor_id,
    ):
        raise HTTPException(400, f"Order cannot be cancelled. Current status: {order.status.value}")

    return {
        "message": "Order cancelled successfully",
        "order_id": order_id,
        "status": "cancelled",
    }
