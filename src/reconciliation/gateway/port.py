"""Payment gateway port.

The refund ledger only ever asks the gateway for one thing: send money back
against a captured Stripe payment intent. Adapters implement that contract.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RefundResult:
    """Outcome of a gateway refund call."""

    success: bool
    gateway_refund_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    @abstractmethod
    def create_refund(
        self,
        payment_reference: str | None,
        amount: float,
        currency: str,
        reason: str,
    ) -> RefundResult:
        """Refund ``amount`` against the payment identified by ``payment_reference``."""
        ...
