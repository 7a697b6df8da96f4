"""Tests for order status changes and cancellation."""

from decimal import Decimal

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from storefront.models import Order, OrderStatus, Payment, PaymentStatus, Product
from storefront.notifications import NotificationEvent, register_handler
from storefront.schemas.checkout_schemas import CartLine
from storefront.services import order_lifecycle
from storefront.services.order_lifecycle import (
    add_order_note,
    cancel_order,
    get_order,
    get_order_history,
    is_valid_status_transition,
    list_customer_orders,
    update_status,
    valid_status_transitions,
)
from storefront.services.payment_service import change_payment_status

# path from pending to each status, through allowed moves only
PATHS = {
    OrderStatus.pending: [],
    OrderStatus.processing: [OrderStatus.processing],
    OrderStatus.shipped: [OrderStatus.processing, OrderStatus.shipped],
    OrderStatus.delivered: [OrderStatus.processing, OrderStatus.shipped, OrderStatus.delivered],
    OrderStatus.cancelled: [OrderStatus.cancelled],
    OrderStatus.returned: [OrderStatus.processing, OrderStatus.shipped, OrderStatus.returned],
}

ALLOWED = {
    (OrderStatus.pending, OrderStatus.processing),
    (OrderStatus.pending, OrderStatus.cancelled),
    (OrderStatus.processing, OrderStatus.shipped),
    (OrderStatus.processing, OrderStatus.cancelled),
    (OrderStatus.shipped, OrderStatus.delivered),
    (OrderStatus.shipped, OrderStatus.returned),
    (OrderStatus.delivered, OrderStatus.returned),
}

DISALLOWED = [
    (current, target)
    for current in OrderStatus
    for target in OrderStatus
    if (current, target) not in ALLOWED
]


def drive(session, order, status):
    for step in PATHS[status]:
        assert update_status(session, order.id, step)
    session.refresh(order)
    assert order.status == status
    return order


def stock(session, product_id):
    return session.get(Product, product_id).stock_quantity


def complete_payment(session, order):
    assert change_payment_status(session, order.payment.id, PaymentStatus.completed, transaction_id=f"TX-{order.id}")
    session.refresh(order)


class TestTransitionTable:
    def test_pending(self):
        assert valid_status_transitions(OrderStatus.pending) == {
            OrderStatus.processing,
            OrderStatus.cancelled,
        }

    def test_shipped(self):
        assert valid_status_transitions("shipped") == {
            OrderStatus.delivered,
            OrderStatus.returned,
        }

    @pytest.mark.parametrize("status", [OrderStatus.cancelled, OrderStatus.returned])
    def test_terminal_states(self, status):
        assert valid_status_transitions(status) == set()

    def test_unknown_status(self):
        assert valid_status_transitions("lost_in_mail") == set()

    def test_case_insensitive_names(self):
        assert is_valid_status_transition("Pending", "PROCESSING")

    def test_no_self_transitions(self):
        for status in OrderStatus:
            assert not is_valid_status_transition(status, status)


class TestUpdateStatus:
    def test_happy_path_to_delivered(self, session, make_order):
        order = make_order()

        drive(session, order, OrderStatus.delivered)

        assert order.shipped_at is not None
        assert order.delivered_at is not None
        assert order.delivered_at >= order.shipped_at

    @pytest.mark.parametrize(
        "current,target",
        DISALLOWED,
        ids=[f"{c.value}->{t.value}" for c, t in DISALLOWED],
    )
    def test_disallowed_pairs_change_nothing(self, session, make_order, current, target):
        order = drive(session, make_order(), current)
        before = (order.status, order.updated_at, stock(session, 7))

        assert update_status(session, order.id, target) is False

        session.refresh(order)
        assert (order.status, order.updated_at, stock(session, 7)) == before

    def test_missing_order(self, session):
        assert update_status(session, 404, OrderStatus.processing) is False

    def test_unknown_target(self, session, make_order):
        order = make_order()
        assert update_status(session, order.id, "teleported") is False

    def test_tracking_number_on_ship(self, session, make_order):
        order = drive(session, make_order(), OrderStatus.processing)

        assert update_status(session, order.id, OrderStatus.shipped, tracking_number="1Z999")

        session.refresh(order)
        assert order.tracking_number == "1Z999"

    def test_cancel_through_status_restores_stock_only(self, session, make_order):
        order = make_order()
        complete_payment(session, order)
        assert stock(session, 7) == 8

        assert update_status(session, order.id, OrderStatus.cancelled, notes="customer called")

        session.refresh(order)
        assert order.status == OrderStatus.cancelled
        assert stock(session, 7) == 10
        assert order.payment.status == PaymentStatus.completed

    def test_change_is_on_timeline(self, session, make_order):
        order = make_order()

        update_status(session, order.id, OrderStatus.processing, notes="picked", actor_id=1)

        event = [e for e in get_order_history(session, order.id) if e.event_type == "status_changed"][0]
        assert event.meta == {"from": "pending", "to": "processing", "notes": "picked"}
        assert event.created_by == "1"

    def test_shipping_notifies(self, session, make_order):
        seen = []
        register_handler(NotificationEvent.SHIPPED, lambda event, order, extra: seen.append(order.id))
        order = make_order()

        drive(session, order, OrderStatus.shipped)

        assert seen == [order.id]

    def test_rejected_change_does_not_notify(self, session, make_order):
        seen = []
        register_handler(NotificationEvent.DELIVERED, lambda *args: seen.append(args))
        order = make_order()

        assert update_status(session, order.id, OrderStatus.delivered) is False
        assert seen == []


class TestCancelOrder:
    def test_pending_unpaid(self, session, make_order):
        order = make_order()

        assert cancel_order(session, order.id, "changed my mind")

        session.refresh(order)
        assert order.status == OrderStatus.cancelled
        assert stock(session, 7) == 10
        assert order.payment.status == PaymentStatus.pending
        assert order.payment.refund_amount is None

    def test_processing_paid_is_refunded(self, session, make_order):
        order = make_order()
        complete_payment(session, order)
        drive(session, order, OrderStatus.processing)

        assert cancel_order(session, order.id, "out of stock at warehouse", actor_id=1)

        session.refresh(order)
        payment = order.payment
        assert order.status == OrderStatus.cancelled
        assert payment.status == PaymentStatus.refunded
        assert payment.refund_amount == order.total
        assert payment.refunded_at is not None
        assert payment.failure_reason == "Refunded: Order cancellation: out of stock at warehouse"
        assert stock(session, 7) == 10

    @pytest.mark.parametrize(
        "status",
        [OrderStatus.shipped, OrderStatus.delivered, OrderStatus.cancelled, OrderStatus.returned],
    )
    def test_not_cancellable(self, session, make_order, status):
        order = drive(session, make_order(), status)
        before = stock(session, 7)

        assert cancel_order(session, order.id, "too late") is False

        session.refresh(order)
        assert order.status == status
        assert stock(session, 7) == before

    def test_cancelling_twice_restores_once(self, session, make_order):
        order = make_order()

        assert cancel_order(session, order.id, "first")
        assert cancel_order(session, order.id, "second") is False

        assert stock(session, 7) == 10

    def test_missing_order(self, session):
        assert cancel_order(session, 404, "nope") is False

    def test_other_customers_order(self, session, make_order):
        order = make_order(customer_id=42)

        assert cancel_order(session, order.id, "not mine", customer_id=43) is False

        session.refresh(order)
        assert order.status == OrderStatus.pending

    def test_refund_failure_rolls_back_cancel(self, engine, session, make_order, monkeypatch):
        order = make_order()
        complete_payment(session, order)

        def broken_refund(*args, **kwargs):
            raise SQLAlchemyError("payments table locked")

        monkeypatch.setattr(order_lifecycle, "apply_refund", broken_refund)

        with pytest.raises(SQLAlchemyError):
            cancel_order(session, order.id, "changed my mind")

        with Session(engine) as fresh:
            stored = fresh.get(Order, order.id)
            assert stored.status == OrderStatus.pending
            assert fresh.get(Payment, order.payment.id).status == PaymentStatus.completed
            assert fresh.get(Product, 7).stock_quantity == 8

    def test_notifies_cancel_and_refund(self, session, make_order):
        seen = []
        for event in (NotificationEvent.CANCELLED, NotificationEvent.REFUND_PROCESSED):
            register_handler(event, lambda event, order, extra: seen.append(event))
        order = make_order()
        complete_payment(session, order)

        cancel_order(session, order.id, "changed my mind")

        assert seen == [NotificationEvent.CANCELLED, NotificationEvent.REFUND_PROCESSED]

    def test_timeline(self, session, make_order):
        order = make_order()
        complete_payment(session, order)

        cancel_order(session, order.id, "changed my mind")

        types = {e.event_type for e in get_order_history(session, order.id)}
        assert {"order_placed", "cancelled", "refund_processed"} <= types


class TestCommittedStatusIsChecked:
    def test_second_cancel_sees_first(self, engine, session, make_order):
        order = make_order()
        assert order.status == OrderStatus.pending

        with Session(engine) as other:
            assert cancel_order(other, order.id, "cancelled at the counter")

        assert cancel_order(session, order.id, "cancelled online") is False
        assert stock(session, 7) == 10

    def test_status_change_sees_cancel(self, engine, session, make_order):
        order = make_order()
        assert order.status == OrderStatus.pending

        with Session(engine) as other:
            assert update_status(other, order.id, OrderStatus.cancelled)

        assert update_status(session, order.id, OrderStatus.processing) is False
        session.refresh(order)
        assert order.status == OrderStatus.cancelled
        assert stock(session, 7) == 10

    def test_paid_order_refunded_once(self, engine, session, make_order):
        order = make_order()
        complete_payment(session, order)

        with Session(engine) as other:
            assert cancel_order(other, order.id, "first")

        assert cancel_order(session, order.id, "second") is False
        payment = session.get(Payment, order.payment.id)
        assert payment.failure_reason == "Refunded: Order cancellation: first"


class TestStockConservation:
    def test_placed_plus_shelf_is_constant(self, session, make_order):
        kept = make_order(lines=[CartLine(product_id=7, quantity=3)])
        cancelled = make_order(lines=[CartLine(product_id=7, quantity=4)])
        shipped = make_order(lines=[CartLine(product_id=7, quantity=2)])

        cancel_order(session, cancelled.id, "duplicate")
        drive(session, shipped, OrderStatus.shipped)

        outstanding = kept.items[0].quantity + shipped.items[0].quantity
        assert stock(session, 7) + outstanding == 10

    def test_returned_order_keeps_stock_out(self, session, make_order):
        order = make_order()
        drive(session, order, OrderStatus.returned)

        assert stock(session, 7) == 8


class TestNotes:
    def test_note_added(self, session, make_order):
        order = make_order()

        assert add_order_note(session, order.id, "  gift wrap please ", actor_id=1)

        notes = [e for e in get_order_history(session, order.id) if e.event_type == "note_added"]
        assert notes[0].meta == {"note": "gift wrap please"}

    @pytest.mark.parametrize("note", ["", "   "])
    def test_blank_note_rejected(self, session, make_order, note):
        order = make_order()
        assert add_order_note(session, order.id, note) is False

    def test_missing_order(self, session):
        assert add_order_note(session, 404, "hello") is False

    def test_timeline_index(self, engine):
        names = {ix["name"] for ix in inspect(engine).get_indexes("order_event")}
        assert "ix_order_event_order_created" in names


def test_get_order_checks_owner(session, make_order):
    order = make_order(customer_id=42)

    assert get_order(session, order.id, customer_id=42) is not None
    assert get_order(session, order.id, customer_id=7) is None
    assert order.total == Decimal("63.99")


def test_list_customer_orders(session, make_order):
    mine = make_order(customer_id=42)
    make_order(customer_id=43, lines=[CartLine(product_id=8, quantity=1)])

    assert [o.id for o in list_customer_orders(session, 42)] == [mine.id]
