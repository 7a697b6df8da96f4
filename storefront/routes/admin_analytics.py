from datetime import date, datetime, time, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from storefront.database import get_session
from storefront.dependencies.actor import RequestContext, require_admin
from storefront.services.statistics_service import (
    get_order_metrics,
    get_order_statistics,
    get_payment_statistics,
)


router = APIRouter()


@router.get("/orders")
def order_statistics(
    session: Session = Depends(get_session),
    _: RequestContext = Depends(require_admin),
):
    return get_order_statistics(session)


@router.get("/orders/metrics")
def order_metrics(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    session: Session = Depends(get_session),
    _: RequestContext = Depends(require_admin),
):
    # last 30 days by default
    end = end_date or datetime.utcnow().date()
    start = start_date or end - timedelta(days=30)

    return get_order_metrics(
        session,
        datetime.combine(start, time.min),
        datetime.combine(end, time.max),
    )


@router.get("/payments")
def payment_statistics(
    session: Session = Depends(get_session),
    _: RequestContext = Depends(require_admin),
):
    return get_payment_statistics(session)
