"""Counts and listings behind the cancellation and return tabs.

Composition order is fixed: the payment-type filter is applied to the whole
collection first, then every scope is counted on that filtered set. Counting
scopes before payment type gives tab counts that no longer add up.

"Refunded" means the order carries a completed refund. It supersedes
"cancelled" and "approved", so those two tabs leave refunded orders out.
"""

import math
from dataclasses import dataclass, field

from reconciliation.order.order import Order, OrderStatus, ReturnStatus
from reconciliation.order.repository import matches_search
from reconciliation.views.filters import (
    CancellationScope,
    CancellationView,
    PaymentType,
    ReturnScope,
    ReturnView,
)


@dataclass(frozen=True)
class CancellationStats:
    total: int = 0
    cancelled: int = 0
    refunded: int = 0


@dataclass(frozen=True)
class ReturnStats:
    total: int = 0
    requested: int = 0
    approved: int = 0
    rejected: int = 0
    refunded: int = 0


@dataclass(frozen=True)
class Page:
    items: list = field(default_factory=list)
    page: int = 1
    page_size: int = 10
    total_items: int = 0

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total_items / self.page_size))


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------
def matches_payment_type(order: Order, payment_type: PaymentType) -> bool:
    if payment_type == PaymentType.COD:
        return order.is_cod
    if payment_type == PaymentType.PREPAID:
        return not order.is_cod
    return True


def _is_cancelled(order: Order) -> bool:
    return order.cancellation is not None or order.status == OrderStatus.CANCELLED.value


def _has_return(order: Order) -> bool:
    return order.return_request is not None


_CANCELLATION_SCOPES = {
    CancellationScope.ALL: lambda o: True,
    CancellationScope.CANCELLED: lambda o: not o.has_completed_refund,
    CancellationScope.REFUNDED: lambda o: o.has_completed_refund,
}

_RETURN_SCOPES = {
    ReturnScope.ALL: lambda o: True,
    ReturnScope.REQUESTED: lambda o: o.return_status == ReturnStatus.REQUESTED.value,
    ReturnScope.APPROVED: lambda o: o.return_status == ReturnStatus.APPROVED.value and not o.has_completed_refund,
    ReturnScope.REJECTED: lambda o: o.return_status == ReturnStatus.REJECTED.value,
    ReturnScope.REFUNDED: lambda o: o.has_completed_refund,
}


def _by_payment_type(orders, payment_type):
    return [o for o in orders if matches_payment_type(o, payment_type)]


def _count(orders, predicate):
    return sum(1 for o in orders if predicate(o))


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------
def compute_cancellation_stats(orders, payment_type=PaymentType.ALL) -> CancellationStats:
    filtered = _by_payment_type([o for o in orders if _is_cancelled(o)], payment_type)
    return CancellationStats(
        total=len(filtered),
        cancelled=_count(filtered, _CANCELLATION_SCOPES[CancellationScope.CANCELLED]),
        refunded=_count(filtered, _CANCELLATION_SCOPES[CancellationScope.REFUNDED]),
    )


def compute_return_stats(orders, payment_type=PaymentType.ALL) -> ReturnStats:
    filtered = _by_payment_type([o for o in orders if _has_return(o)], payment_type)
    return ReturnStats(
        total=len(filtered),
        requested=_count(filtered, _RETURN_SCOPES[ReturnScope.REQUESTED]),
        approved=_count(filtered, _RETURN_SCOPES[ReturnScope.APPROVED]),
        rejected=_count(filtered, _RETURN_SCOPES[ReturnScope.REJECTED]),
        refunded=_count(filtered, _RETURN_SCOPES[ReturnScope.REFUNDED]),
    )


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------
def select_orders(orders, view):
    """Orders shown on the tab described by ``view``, most recent activity first."""
    if isinstance(view, CancellationView):
        base = [o for o in orders if _is_cancelled(o)]
        in_scope = _CANCELLATION_SCOPES[view.scope]
    elif isinstance(view, ReturnView):
        base = [o for o in orders if _has_return(o)]
        in_scope = _RETURN_SCOPES[view.scope]
    else:
        raise TypeError(f"Unsupported view filter: {type(view).__name__}")

    selected = [
        o for o in _by_payment_type(base, view.payment_type) if in_scope(o) and matches_search(o, view.search)
    ]
    selected.sort(key=lambda o: o.last_activity_at, reverse=True)
    return selected


def paginate(items, page=1, page_size=10) -> Page:
    start = (page - 1) * page_size
    return Page(
        items=list(items[start : start + page_size]),
        page=page,
        page_size=page_size,
        total_items=len(items),
    )
