"""Operator-facing service boundary.

Every operation the console can invoke goes through here: the four
reconciliation operations, return intake, order registration, and the view
queries. Mutations run under the order's lock and return the updated order;
failures surface as the typed errors in ``reconciliation.errors``.
"""

import json

import structlog
from protean.utils.globals import current_domain

from reconciliation.order.cancellation import CancelOrder
from reconciliation.order.locking import order_lock
from reconciliation.order.order import Order
from reconciliation.order.refunds import InitiateRefund
from reconciliation.order.registration import RegisterOrder
from reconciliation.order.repository import DEFAULT_LIST_LIMIT
from reconciliation.order.returns import ApproveReturn, RejectReturn, RequestReturn
from reconciliation.utils.logging import add_context, clear_context
from reconciliation.views.filters import CancellationView, PaymentType, ReturnView, parse_choice
from reconciliation.views.stats import (
    CancellationStats,
    Page,
    ReturnStats,
    compute_cancellation_stats,
    compute_return_stats,
    paginate,
    select_orders,
)

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
def get_order(order_id) -> Order:
    return current_domain.repository_for(Order).get(order_id)


def list_orders(status=None, payment_method=None, has_return=None, search=None, limit=DEFAULT_LIST_LIMIT) -> list[Order]:
    return current_domain.repository_for(Order).list_orders(
        status=status,
        payment_method=payment_method,
        has_return=has_return,
        search=search,
        limit=limit,
    )


def _cancelled_orders():
    return list_orders(status="cancelled", limit=None)


def _returned_orders():
    return list_orders(has_return=True, limit=None)


def cancellation_stats(payment_type=None) -> CancellationStats:
    payment_type = parse_choice(PaymentType, payment_type, "payment_type")
    return compute_cancellation_stats(_cancelled_orders(), payment_type)


def return_stats(payment_type=None) -> ReturnStats:
    payment_type = parse_choice(PaymentType, payment_type, "payment_type")
    return compute_return_stats(_returned_orders(), payment_type)


def cancellation_listing(view: CancellationView) -> Page:
    orders = select_orders(_cancelled_orders(), view)
    return paginate(orders, view.page, view.page_size)


def return_listing(view: ReturnView) -> Page:
    orders = select_orders(_returned_orders(), view)
    return paginate(orders, view.page, view.page_size)


# ---------------------------------------------------------------------------
# Intake
# ---------------------------------------------------------------------------
def register_order(**data) -> Order:
    """Register an order produced by the purchase flow."""
    items = data.pop("items", None)
    command = RegisterOrder(items=json.dumps(items) if items else None, **data)
    order_id = current_domain.process(command, asynchronous=False)
    return get_order(order_id)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
def _process_locked(order_id, command) -> Order:
    add_context(order_id=str(order_id))
    try:
        with order_lock(order_id):
            current_domain.process(command, asynchronous=False)
            return get_order(order_id)
    finally:
        clear_context()


def record_cancellation(order_id, reason=None, cancelled_by=None) -> Order:
    order = _process_locked(order_id, CancelOrder(order_id=order_id, reason=reason, cancelled_by=cancelled_by))
    logger.info("Order cancelled", order_id=str(order_id), cancelled_by=cancelled_by)
    return order


def request_return(order_id, reason, bank_details=None) -> Order:
    command = RequestReturn(
        order_id=order_id,
        reason=reason,
        bank_details=json.dumps(bank_details) if bank_details else None,
    )
    order = _process_locked(order_id, command)
    logger.info("Return requested", order_id=str(order_id))
    return order


def approve_return(order_id, notes=None, refund_amount=None) -> Order:
    command = ApproveReturn(order_id=order_id, notes=notes, refund_amount=refund_amount)
    order = _process_locked(order_id, command)
    logger.info("Return approved", order_id=str(order_id), refund_amount=refund_amount)
    return order


def reject_return(order_id, notes) -> Order:
    order = _process_locked(order_id, RejectReturn(order_id=order_id, notes=notes))
    logger.info("Return rejected", order_id=str(order_id))
    return order


def initiate_refund(order_id, amount, reason=None) -> Order:
    return _process_locked(order_id, InitiateRefund(order_id=order_id, amount=amount, reason=reason))
