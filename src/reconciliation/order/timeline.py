"""Activity timeline for an order, derived from the record itself."""

from dataclasses import dataclass
from datetime import datetime

from reconciliation.order.order import Order, PaymentStatus, ReturnStatus, as_aware


@dataclass(frozen=True)
class ActivityEntry:
    kind: str
    title: str
    occurred_at: datetime
    detail: str | None = None


def build_activity(order: Order) -> list[ActivityEntry]:
    """Chronological list of what happened to ``order`` after checkout."""
    entries = []

    if order.created_at:
        entries.append(ActivityEntry("order_placed", "Order placed", as_aware(order.created_at), order.order_number))

    if order.paid_at and order.payment_status == PaymentStatus.COMPLETED.value:
        entries.append(ActivityEntry("payment_completed", "Payment completed", as_aware(order.paid_at), order.payment_method))

    if order.cancellation:
        entries.append(
            ActivityEntry(
                "order_cancelled",
                "Order cancelled",
                as_aware(order.cancellation.cancelled_at),
                order.cancellation.reason,
            )
        )

    if order.return_request:
        return_request = order.return_request
        entries.append(
            ActivityEntry("return_requested", "Return requested", as_aware(return_request.requested_at), return_request.reason)
        )
        if return_request.decided_at:
            approved = return_request.status == ReturnStatus.APPROVED.value
            entries.append(
                ActivityEntry(
                    "return_approved" if approved else "return_rejected",
                    "Return approved" if approved else "Return rejected",
                    as_aware(return_request.decided_at),
                    return_request.notes,
                )
            )

    for refund in order.ordered_refunds:
        if refund.processed_at:
            entries.append(
                ActivityEntry(
                    "refund_processed",
                    f"Refund of {refund.amount:.2f} {order.currency} processed",
                    as_aware(refund.processed_at),
                    refund.reason,
                )
            )

    return sorted(entries, key=lambda entry: entry.occurred_at)
