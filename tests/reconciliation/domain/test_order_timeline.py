"""Tests for the activity timeline derived from an order."""

from datetime import UTC, datetime, timedelta

from reconciliation.order.order import Order
from reconciliation.order.timeline import build_activity


def _make_order(**kwargs):
    now = datetime.now(UTC)
    data = {
        "order_number": "ORD-TL-1",
        "payment_method": "stripe",
        "payment_status": "completed",
        "stripe_payment_intent_id": "pi_1",
        "total": 60.0,
        "created_at": now - timedelta(days=2),
        "paid_at": now - timedelta(days=2) + timedelta(minutes=1),
    }
    data.update(kwargs)
    return Order.register(**data)


class TestBuildActivity:
    def test_new_order(self):
        kinds = [entry.kind for entry in build_activity(_make_order())]
        assert kinds == ["order_placed", "payment_completed"]

    def test_unpaid_order_has_no_payment_entry(self):
        order = _make_order(payment_status="pending", paid_at=None)
        kinds = [entry.kind for entry in build_activity(order)]
        assert kinds == ["order_placed"]

    def test_cancelled_and_refunded(self):
        order = _make_order()
        order.record_cancellation(reason="Changed mind")
        order.record_refund(60.0)
        entries = build_activity(order)
        assert [e.kind for e in entries] == [
            "order_placed",
            "payment_completed",
            "order_cancelled",
            "refund_processed",
        ]
        assert entries[2].detail == "Changed mind"
        assert entries[3].title == "Refund of 60.00 USD processed"

    def test_rejected_return(self):
        order = _make_order()
        order.request_return("Wrong size")
        order.reject_return("Worn item")
        entries = build_activity(order)
        assert [e.kind for e in entries][-2:] == ["return_requested", "return_rejected"]
        assert entries[-1].detail == "Worn item"

    def test_entries_are_chronological(self):
        order = _make_order()
        order.request_return("Wrong size")
        order.approve_return()
        order.record_refund(30.0)
        moments = [entry.occurred_at for entry in build_activity(order)]
        assert moments == sorted(moments)
