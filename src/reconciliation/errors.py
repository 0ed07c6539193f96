"""Typed errors raised by reconciliation operations.

Validation and lookup failures reuse Protean's own exceptions
(``ValidationError`` and ``ObjectNotFoundError``). Conflicts and business-rule
gates build on ``InvalidOperationError`` so callers can tell them apart and
render a specific message. Every error carries a field-keyed message dict,
e.g. ``{"amount": ["exceeds order total"]}``.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError

NotFound = ObjectNotFoundError

__all__ = [
    "AlreadyCancelled",
    "AlreadyRefunded",
    "InvalidTransition",
    "NotEligible",
    "NotFound",
    "PaymentGatewayError",
    "ValidationError",
]


class InvalidTransition(InvalidOperationError):
    """A return request is not in a state that allows the requested move."""


class NotEligible(InvalidOperationError):
    """A business-rule gate failed, e.g. refunding a cash-on-delivery cancellation."""


class AlreadyRefunded(InvalidOperationError):
    """The order already carries a completed refund."""


class AlreadyCancelled(InvalidOperationError):
    """The order already carries a cancellation record."""


class PaymentGatewayError(InvalidOperationError):
    """The payment gateway declined or failed to process a refund."""
