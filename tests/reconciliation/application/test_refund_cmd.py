"""Application tests for refund issuance through the payment gateway."""

import pytest
import structlog
from protean import current_domain
from protean.exceptions import ValidationError
from reconciliation.errors import AlreadyRefunded, NotEligible, PaymentGatewayError
from reconciliation.gateway import get_gateway, set_gateway
from reconciliation.gateway.fake_adapter import FakeGateway
from reconciliation.order import service
from reconciliation.order.refunds import InitiateRefund


def _cancelled_stripe_order(order_number, total=100.0):
    order = service.register_order(
        order_number=order_number,
        payment_method="stripe",
        payment_status="completed",
        stripe_payment_intent_id=f"pi_{order_number}",
        status="confirmed",
        total=total,
        currency="EUR",
    )
    return service.record_cancellation(order.id, reason="Changed mind")


def _approved_cod_return(order_number, total=45.0):
    order = service.register_order(
        order_number=order_number,
        payment_method="cod",
        payment_status="completed",
        status="delivered",
        total=total,
    )
    service.request_return(order.id, reason="Damaged")
    return service.approve_return(order.id)


class TestStripeRefunds:
    def test_gateway_called_with_payment_reference(self):
        order = _cancelled_stripe_order("ORD-RF-1")
        service.initiate_refund(order.id, 40.0)

        calls = get_gateway().calls
        assert len(calls) == 1
        assert calls[0]["payment_reference"] == "pi_ORD-RF-1"
        assert calls[0]["amount"] == 40.0
        assert calls[0]["currency"] == "EUR"
        assert calls[0]["reason"] == "Order cancelled"

    def test_gateway_refund_id_recorded(self):
        order = _cancelled_stripe_order("ORD-RF-2")
        updated = service.initiate_refund(order.id, 40.0)
        refund = updated.ordered_refunds[0]
        assert refund.stripe_refund_id.startswith("re_fake_")
        assert refund.status == "completed"

    def test_handler_returns_refund_id(self):
        order = _cancelled_stripe_order("ORD-RF-3")
        refund_id = current_domain.process(InitiateRefund(order_id=order.id, amount=10.0), asynchronous=False)
        assert refund_id == str(service.get_order(order.id).ordered_refunds[0].id)

    def test_gateway_failure_appends_nothing(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=False, failure_reason="Charge already disputed")
        set_gateway(gateway)

        order = _cancelled_stripe_order("ORD-RF-4")
        with pytest.raises(PaymentGatewayError) as exc:
            service.initiate_refund(order.id, 40.0)

        assert exc.value.messages == {"gateway": ["Charge already disputed"]}
        assert len(service.get_order(order.id).refunds) == 0

    def test_retry_after_gateway_failure_succeeds(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=False)
        set_gateway(gateway)
        order = _cancelled_stripe_order("ORD-RF-5")
        with pytest.raises(PaymentGatewayError):
            service.initiate_refund(order.id, 40.0)

        gateway.configure(should_succeed=True)
        updated = service.initiate_refund(order.id, 40.0)
        assert updated.refunded_total == 40.0

    def test_missing_payment_reference_is_left_to_the_gateway(self):
        order = service.register_order(
            order_number="ORD-RF-20",
            payment_method="stripe",
            payment_status="completed",
            status="confirmed",
            total=100.0,
        )
        service.record_cancellation(order.id)

        updated = service.initiate_refund(order.id, 50.0)

        assert get_gateway().calls[0]["payment_reference"] is None
        assert [(r.amount, r.status) for r in updated.ordered_refunds] == [(50.0, "completed")]

    def test_gateway_refusal_without_payment_reference(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=False, failure_reason="No such payment_intent")
        set_gateway(gateway)
        order = service.register_order(
            order_number="ORD-RF-21",
            payment_method="stripe",
            payment_status="completed",
            status="confirmed",
            total=100.0,
        )
        service.record_cancellation(order.id)

        with pytest.raises(PaymentGatewayError) as exc:
            service.initiate_refund(order.id, 50.0)
        assert exc.value.messages == {"gateway": ["No such payment_intent"]}
        assert len(service.get_order(order.id).refunds) == 0

    def test_validation_failures_never_reach_gateway(self):
        order = _cancelled_stripe_order("ORD-RF-6", total=30.0)
        with pytest.raises(ValidationError):
            service.initiate_refund(order.id, 31.0)
        assert get_gateway().calls == []


class TestBankTransferRefunds:
    def test_cod_return_refund_skips_gateway(self):
        order = _approved_cod_return("ORD-RF-7")
        updated = service.initiate_refund(order.id, 45.0)

        assert get_gateway().calls == []
        refund = updated.ordered_refunds[0]
        assert refund.stripe_refund_id is None
        assert refund.reason == "Return approved"

    def test_custom_reason(self):
        order = _approved_cod_return("ORD-RF-8")
        updated = service.initiate_refund(order.id, 20.0, reason="Partial: one item kept")
        assert updated.ordered_refunds[0].reason == "Partial: one item kept"


class TestRefundGuards:
    def test_second_refund_rejected(self):
        order = _cancelled_stripe_order("ORD-RF-9")
        service.initiate_refund(order.id, 10.0)
        with pytest.raises(AlreadyRefunded):
            service.initiate_refund(order.id, 10.0)
        assert len(get_gateway().calls) == 1

    def test_not_eligible_order(self):
        order = service.register_order(order_number="ORD-RF-10", payment_method="stripe", total=10.0)
        with pytest.raises(NotEligible):
            service.initiate_refund(order.id, 5.0)


class ContextRecordingGateway(FakeGateway):
    def __init__(self) -> None:
        super().__init__()
        self.seen_context: list[dict] = []

    def create_refund(self, payment_reference, amount, currency, reason):
        self.seen_context.append(structlog.contextvars.get_contextvars())
        return super().create_refund(payment_reference, amount, currency, reason)


class TestLogContext:
    def test_order_id_bound_while_refund_runs(self):
        gateway = ContextRecordingGateway()
        set_gateway(gateway)
        order = _cancelled_stripe_order("ORD-RF-30")

        service.initiate_refund(order.id, 25.0)

        assert gateway.seen_context == [{"order_id": str(order.id)}]
        assert structlog.contextvars.get_contextvars() == {}

    def test_context_cleared_after_failure(self):
        order = _cancelled_stripe_order("ORD-RF-31", total=10.0)
        with pytest.raises(ValidationError):
            service.initiate_refund(order.id, 11.0)
        assert structlog.contextvars.get_contextvars() == {}
