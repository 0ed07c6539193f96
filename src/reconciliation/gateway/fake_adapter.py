"""Configurable fake payment gateway for development and testing.

Simulates Stripe refunds without external calls. Toggle it to decline
refunds at runtime (``POST /gateway/configure`` outside production, or
``configure()`` in tests); every call is recorded in ``calls``.
"""

from uuid import uuid4

from reconciliation.gateway.port import PaymentGateway, RefundResult


class FakeGateway(PaymentGateway):
    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Refund declined"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Refund declined") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_refund(
        self,
        payment_reference: str | None,
        amount: float,
        currency: str,
        reason: str,
    ) -> RefundResult:
        self.calls.append(
            {
                "method": "create_refund",
                "payment_reference": payment_reference,
                "amount": amount,
                "currency": currency,
                "reason": reason,
            }
        )

        if self.should_succeed:
            return RefundResult(
                success=True,
                gateway_refund_id=f"re_fake_{uuid4().hex[:14]}",
                gateway_status="succeeded",
            )
        return RefundResult(
            success=False,
            gateway_status="failed",
            failure_reason=self.failure_reason,
        )
