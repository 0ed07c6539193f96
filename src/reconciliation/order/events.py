"""Domain events for the Order aggregate.

Raised on every state change the reconciliation context makes. They are
immutable, versioned facts consumed by downstream projections and by the
purchase flow that owns the customer-facing side of the order.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from reconciliation.domain import reconciliation


@reconciliation.event(part_of="Order")
class OrderRegistered:
    """The purchase flow handed a new order over for reconciliation."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    status = String(required=True)
    payment_method = String(required=True)
    payment_status = String(required=True)
    total = Float(required=True)
    currency = String(default="USD")
    item_count = Integer(default=0)
    registered_at = DateTime(required=True)


@reconciliation.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    reason = Text()
    cancelled_by = String()
    payment_method = String(required=True)
    payment_status = String(required=True)
    cancelled_at = DateTime(required=True)


@reconciliation.event(part_of="Order")
class ReturnRequested:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    reason = Text(required=True)
    has_bank_details = String(default="False")
    requested_at = DateTime(required=True)


@reconciliation.event(part_of="Order")
class ReturnApproved:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    notes = Text()
    refund_amount = Float()
    approved_at = DateTime(required=True)


@reconciliation.event(part_of="Order")
class ReturnRejected:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    notes = Text(required=True)
    rejected_at = DateTime(required=True)


@reconciliation.event(part_of="Order")
class RefundIssued:
    """Money went back to the customer, through the gateway or by bank transfer."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    refund_id = Identifier(required=True)
    amount = Float(required=True)
    reason = Text()
    payment_method = String(required=True)
    stripe_refund_id = String()
    processed_at = DateTime(required=True)
