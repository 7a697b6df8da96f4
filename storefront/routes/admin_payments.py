from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from storefront.database import get_session
from storefront.dependencies.actor import RequestContext, require_admin
from storefront.models.payment import PaymentStatus
from storefront.schemas.orders_schemas import (
    PaymentRead,
    PaymentStatusUpdateRequest,
    RefundRequest,
)
from storefront.services.payment_service import (
    change_payment_status,
    delete_payment,
    get_payment,
    payments_query,
)
from storefront.services.refund_service import process_refund
from storefront.utils.pagination import paginate

router = APIRouter()


def _get_payment_or_404(session: Session, payment_id: int):
    payment = get_payment(session, payment_id)
    if not payment:
        raise HTTPException(404, "Payment not found")
    return payment


@router.get("")
def list_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[PaymentStatus] = Query(None),
    search: Optional[str] = Query(None),
    session: Session = Depends(get_session),
    _: RequestContext = Depends(require_admin),
):
    data = paginate(
        session=session,
        query=payments_query(status=status, order_number=search),
        page=page,
        limit=limit,
    )

    data["results"] = [
        {
            "payment_id": p.id,
            "order_id": p.order_id,
            "order_number": p.order.order_number if p.order else None,
            "txn_id": p.transaction_id,
            "amount": p.amount,
            "status": p.status,
            "method": p.method,
            "payment_date": p.payment_date,
        }
        for p in data["results"]
    ]
    return data


@router.get("/{payment_id}", response_model=PaymentRead)
def get_payment_details(
    payment_id: int,
    session: Session = Depends(get_session),
    _: RequestContext = Depends(require_admin),
):
    return PaymentRead.model_validate(_get_payment_or_404(session, payment_id))


@router.patch("/{payment_id}/status", response_model=PaymentRead)
def update_payment_status(
    payment_id: int,
    data: PaymentStatusUpdateRequest,
    session: Session = Depends(get_session),
    _: RequestContext = Depends(require_admin),
):
    _get_payment_or_404(session, payment_id)

    if not change_payment_status(
        session,
        payment_id,
        data.status,
        reason=data.reason,
        transaction_id=data.transaction_id,
        gateway=data.gateway,
    ):
        raise HTTPException(400, f"Cannot change payment status to {data.status.value}")

    return PaymentRead.model_validate(_get_payment_or_404(session, payment_id))


@router.post("/{payment_id}/refund", response_model=PaymentRead)
def refund_payment(
    payment_id: int,
    data: RefundRequest,
    session: Session = Depends(get_session),
    admin: RequestContext = Depends(require_admin),
):
    _get_payment_or_404(session, payment_id)

    if not process_refund(session, payment_id, data.amount, data.reason, actor_id=admin.actor_id):
        raise HTTPException(
            400,
            "Refund rejected: payment must be completed and the amount must not exceed the paid amount",
        )

    return PaymentRead.model_validate(_get_payment_or_404(session, payment_id))


@router.delete("/{payment_id}")
def remove_payment(
    payment_id: int,
    session: Session = Depends(get_session),
    _: RequestContext = Depends(require_admin),
):
    if not delete_payment(session, payment_id):
        raise HTTPException(404, "Payment not found")

    return {"message": "Payment deleted", "payment_id": payment_id}
