from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from storefront.database import get_session
from storefront.dependencies.actor import RequestContext, get_current_customer
from storefront.schemas.checkout_schemas import (
    CheckoutSummaryRequest,
    OrderTotals,
    PlaceOrderRequest,
)
from storefront.schemas.orders_schemas import OrderRead
from storefront.services.checkout_service import (
    calculate_order_totals,
    cart_subtotal,
    place_order,
)
from storefront.services.errors import CheckoutError

router = APIRouter()


def checkout_http_error(exc: CheckoutError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc))


@router.post("/summary", response_model=OrderTotals)
def checkout_summary(
    data: CheckoutSummaryRequest,
    session: Session = Depends(get_session),
    _: RequestContext = Depends(get_current_customer),
):
    try:
        subtotal = cart_subtotal(session, [item.to_cart_line() for item in data.items])
    except CheckoutError as exc:
        raise checkout_http_error(exc)

    return calculate_order_totals(subtotal)


@router.post("/place-order", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
def place_order_endpoint(
    data: PlaceOrderRequest,
    session: Session = Depends(get_session),
    customer: RequestContext = Depends(get_current_customer),
):
    try:
        order = place_order(
            session,
            customer_id=customer.actor_id,
            cart_items=[item.to_cart_line() for item in data.items],
            shipping_address=data.shipping_address,
            payment_method=data.payment_method,
            notes=data.notes,
        )
    except CheckoutError as exc:
        raise checkout_http_error(exc)

    return OrderRead.model_validate(order)
