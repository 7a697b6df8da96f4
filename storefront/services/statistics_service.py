from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlmodel import Session, func, select

from storefront.constants.order_status import ATTENTION_STATUSES, REVENUE_STATUSES
from storefront.models.order import Order, OrderStatus
from storefront.models.payment import Payment, PaymentStatus
from storefront.services.checkout_service import to_money

ZERO = Decimal("0.00")


def _periods(now: Optional[datetime] = None):
    """Start of today, of this ISO week (Monday) and of this month."""
    now = now or datetime.utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week = today - timedelta(days=today.weekday())
    month = today.replace(day=1)
    return {"today": today, "week": week, "month": month}


def _average(amount: Decimal, count: int) -> Decimal:
    return to_money(amount / count) if count else ZERO


def _revenue(session: Session, since: Optional[datetime] = None) -> Decimal:
    query = select(func.sum(Order.total)).where(Order.status.in_(REVENUE_STATUSES))
    if since is not None:
        query = query.where(Order.order_date >= since)
    return to_money(session.exec(query).one() or 0)


def orders_needing_attention(session: Session) -> List[Order]:
    return session.exec(
        select(Order)
        .where(Order.status.in_(ATTENTION_STATUSES))
        .order_by(Order.order_date)
    ).all()


def get_order_statistics(session: Session, now: Optional[datetime] = None) -> dict:
    periods = _periods(now)

    rows = session.exec(
        select(Order.status, func.count(Order.id), func.sum(Order.total))
        .group_by(Order.status)
    ).all()

    status_counts = {s.value: 0 for s in OrderStatus}
    revenue_by_status = {s.value: ZERO for s in OrderStatus}
    for status, count, amount in rows:
        status_counts[status.value] = count
        revenue_by_status[status.value] = to_money(amount or 0)

    total_orders = sum(status_counts.values())
    total_revenue = _revenue(session)

    period_counts = {
        name: session.exec(
            select(func.count(Order.id)).where(Order.order_date >= start)
        ).one()
        for name, start in periods.items()
    }

    return {
        "total_orders": total_orders,
        "status_counts": status_counts,
        "revenue_by_status": revenue_by_status,
        "total_revenue": total_revenue,
        "today_revenue": _revenue(session, periods["today"]),
        "week_revenue": _revenue(session, periods["week"]),
        "month_revenue": _revenue(session, periods["month"]),
        "today_orders": period_counts["today"],
        "week_orders": period_counts["week"],
        "month_orders": period_counts["month"],
        "average_order_value": _average(total_revenue, total_orders),
        "orders_needing_attention": sum(status_counts[s.value] for s in ATTENTION_STATUSES),
    }


def get_order_metrics(session: Session, from_date: datetime, to_date: datetime) -> dict:
    """Order figures for orders placed between ``from_date`` and ``to_date`` inclusive."""
    window = (Order.order_date >= from_date, Order.order_date <= to_date)

    by_status = {s.value: 0 for s in OrderStatus}
    for status, count in session.exec(
        select(Order.status, func.count(Order.id)).where(*window).group_by(Order.status)
    ).all():
        by_status[status.value] = count

    by_payment_status = {s.value: 0 for s in PaymentStatus}
    for status, count in session.exec(
        select(Payment.status, func.count(Payment.id))
        .join(Order, Order.id == Payment.order_id)
        .where(*window)
        .group_by(Payment.status)
    ).all():
        by_payment_status[status.value] = count

    revenue = to_money(
        session.exec(
            select(func.sum(Order.total))
            .where(*window)
            .where(Order.status.in_(REVENUE_STATUSES))
        ).one() or 0
    )
    order_count = sum(by_status.values())

    return {
        "from_date": from_date,
        "to_date": to_date,
        "order_count": order_count,
        "total_revenue": revenue,
        "average_order_value": _average(revenue, order_count),
        "orders_by_status": by_status,
        "orders_by_payment_status": by_payment_status,
    }


def get_payment_statistics(session: Session, now: Optional[datetime] = None) -> dict:
    periods = _periods(now)

    counts = {s.value: 0 for s in PaymentStatus}
    amounts = {s.value: ZERO for s in PaymentStatus}
    for status, count, amount in session.exec(
        select(Payment.status, func.count(Payment.id), func.sum(Payment.amount))
        .group_by(Payment.status)
    ).all():
        counts[status.value] = count
        amounts[status.value] = to_money(amount or 0)

    total_payments = sum(counts.values())
    total_amount = sum(amounts.values(), ZERO)

    by_period = {}
    for name, start in periods.items():
        count, amount = session.exec(
            select(func.count(Payment.id), func.sum(Payment.amount))
            .where(Payment.payment_date >= start)
        ).one()
        by_period[name] = {"count": count, "amount": to_money(amount or 0)}

    most_used = session.exec(
        select(Payment.method, func.count(Payment.id).label("uses"))
        .group_by(Payment.method)
        .order_by(func.count(Payment.id).desc())
        .limit(1)
    ).first()

    last_payment_date = session.exec(select(func.max(Payment.payment_date))).one()

    return {
        "total_payments": total_payments,
        "total_amount": total_amount,
        "status_counts": counts,
        "status_amounts": amounts,
        "today": by_period["today"],
        "this_week": by_period["week"],
        "this_month": by_period["month"],
        "average_payment_amount": _average(total_amount, total_payments),
        "most_used_method": most_used[0].value if most_used else None,
        "last_payment_date": last_payment_date,
    }
