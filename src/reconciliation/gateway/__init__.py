"""Payment gateway factory.

get_gateway() / set_gateway() swap the adapter the refund ledger talks to.
FakeGateway is the default until a real adapter is installed.
"""

from reconciliation.gateway.fake_adapter import FakeGateway
from reconciliation.gateway.port import PaymentGateway, RefundResult

__all__ = ["FakeGateway", "PaymentGateway", "RefundResult", "get_gateway", "reset_gateway", "set_gateway"]

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the active payment gateway. Defaults to FakeGateway."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = FakeGateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None
