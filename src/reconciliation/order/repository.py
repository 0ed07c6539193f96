"""Query boundary for operator views.

Storage-level filters cover the plain columns. The matching rows are read in
batches until storage is exhausted; sub-record filters, search and ordering by
post-sale activity then run over the full set. Storage errors
propagate to the caller unchanged.
"""

from protean.exceptions import ValidationError

from reconciliation.domain import reconciliation
from reconciliation.order.order import Order, OrderStatus, PaymentMethod

DEFAULT_LIST_LIMIT = 100
SCAN_BATCH = 1000


def matches_search(order, search):
    """Case-insensitive match on order number, customer name or customer email."""
    if not search:
        return True
    needle = search.strip().lower()
    haystack = (order.order_number, order.customer_name, order.customer_email)
    return any(value and needle in value.lower() for value in haystack)


def _scan(query):
    """Read every row matching ``query``, one batch at a time."""
    query = query.order_by("id")
    orders, offset = [], 0
    while True:
        batch = query.offset(offset).limit(SCAN_BATCH).all()
        orders.extend(batch.items)
        if not batch.has_next:
            return orders
        offset += SCAN_BATCH


@reconciliation.repository(part_of=Order)
class OrderRepository:
    def list_orders(
        self,
        status=None,
        payment_method=None,
        has_return=None,
        search=None,
        limit=DEFAULT_LIST_LIMIT,
    ):
        """Orders most recently cancelled or return-requested first."""
        filters = {}
        if status is not None:
            if status not in {s.value for s in OrderStatus}:
                raise ValidationError({"status": [f"Unknown order status '{status}'"]})
            filters["status"] = status
        if payment_method is not None:
            if payment_method not in {m.value for m in PaymentMethod}:
                raise ValidationError({"payment_method": [f"Unknown payment method '{payment_method}'"]})
            filters["payment_method"] = payment_method
        if limit is not None and limit < 1:
            raise ValidationError({"limit": ["Limit must be a positive number"]})

        query = self._dao.query
        if filters:
            query = query.filter(**filters)
        orders = _scan(query)

        if has_return is not None:
            orders = [o for o in orders if (o.return_request is not None) == has_return]
        orders = [o for o in orders if matches_search(o, search)]
        orders.sort(key=lambda o: o.last_activity_at, reverse=True)

        return orders[:limit] if limit is not None else orders

    def find_by_number(self, order_number):
        results = self._dao.query.filter(order_number=order_number).all().items
        return results[0] if results else None
