"""Reconciliation bounded context — post-sale order reconciliation.

Handles order cancellations, return requests and their moderation, refund
issuance against the payment gateway, and the operator-facing statistics
derived from them. Orders are registered here by the purchase flow and are
never deleted by this context.
"""

import structlog
from protean.domain import Domain

reconciliation = Domain(name="reconciliation")

logger = structlog.get_logger(__name__)
