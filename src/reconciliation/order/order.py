"""Order aggregate (CQRS) — the record every reconciliation rule operates on.

The purchase flow registers orders here; this context then attaches the
post-sale sub-records and never deletes an order. The aggregate is a plain
CQRS aggregate (not event sourced): each operation is a single-record
mutation, and the refund ledger is append-only.

Sub-records:
    cancellation    attached once, sets status to cancelled, moves no money
    return_request  attached once by the customer, then decided by an operator
    refunds         appended only by record_refund, never edited afterwards

Return state machine:
    REQUESTED → APPROVED | REJECTED
    APPROVED, REJECTED → (terminal)
"""

import math
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from reconciliation.domain import reconciliation
from reconciliation.errors import (
    AlreadyCancelled,
    AlreadyRefunded,
    InvalidTransition,
    NotEligible,
    NotFound,
)
from reconciliation.order.events import (
    OrderCancelled,
    OrderRegistered,
    RefundIssued,
    ReturnApproved,
    ReturnRejected,
    ReturnRequested,
)

CANCELLATION_REFUND_REASON = "Order cancelled"
RETURN_REFUND_REASON = "Return approved"
DELETED_PRODUCT_SUFFIX = " (Deleted)"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"
    REFUNDED = "refunded"
    FAILED = "failed"


class PaymentMethod(Enum):
    STRIPE = "stripe"
    COD = "cod"


class PaymentStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ReturnStatus(Enum):
    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"


class RefundStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class BankAccountType(Enum):
    CHECKING = "checking"
    SAVINGS = "savings"


# ---------------------------------------------------------------------------
# State Machine
# ---------------------------------------------------------------------------
_VALID_RETURN_TRANSITIONS = {
    ReturnStatus.REQUESTED: {ReturnStatus.APPROVED, ReturnStatus.REJECTED},
    ReturnStatus.APPROVED: set(),
    ReturnStatus.REJECTED: set(),
}


def as_amount(value):
    """Coerce ``value`` to a finite float, or None when it is not a usable amount."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    return amount if math.isfinite(amount) else None


def as_aware(value):
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@reconciliation.value_object(part_of="Order")
class BankDetails:
    """Account a cash-on-delivery refund is paid into by bank transfer."""

    account_holder_name = String(required=True, max_length=255)
    account_number = String(required=True, max_length=34)
    routing_number = String(required=True, max_length=34)
    bank_name = String(required=True, max_length=255)
    account_type = String(choices=BankAccountType, default=BankAccountType.CHECKING.value)


@reconciliation.value_object(part_of="Order")
class Cancellation:
    reason = Text()
    cancelled_at = DateTime(required=True)
    cancelled_by = String(max_length=100)


@reconciliation.value_object(part_of="Order")
class ReturnRequest:
    """A customer's return request and the operator's decision on it.

    Replaced wholesale when decided (value object semantics).
    """

    status = String(choices=ReturnStatus, required=True)
    reason = Text(required=True)
    requested_at = DateTime(required=True)
    refund_amount = Float()
    notes = Text()
    decided_at = DateTime()
    bank_details = ValueObject(BankDetails)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@reconciliation.entity(part_of="Order")
class OrderItem:
    position = Integer(default=0)
    product_id = Identifier()  # Null once the catalogue entry is deleted
    title = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    line_subtotal = Float(required=True, min_value=0.0)

    @property
    def display_title(self):
        if not self.product_id:
            return f"{self.title}{DELETED_PRODUCT_SUFFIX}"
        return self.title


@reconciliation.entity(part_of="Order")
class Refund:
    """A ledger entry for money sent back to the customer."""

    sequence = Integer(required=True, min_value=1)
    amount = Float(required=True)
    status = String(choices=RefundStatus, default=RefundStatus.COMPLETED.value)
    reason = String(max_length=500)
    processed_at = DateTime()
    stripe_refund_id = String(max_length=255)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@reconciliation.aggregate
class Order:
    """An order as seen by the operator console after the sale.

    The refund bound (completed refunds never exceed the order total) and the
    refund/payment-method consistency rules are checked after every change.
    """

    order_number = String(required=True, max_length=50, unique=True)

    # Customer, copied from the purchase flow for operator search
    customer_name = String(max_length=255)
    customer_email = String(max_length=254)

    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)

    # Payment
    payment_method = String(choices=PaymentMethod, required=True)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    paid_at = DateTime()
    stripe_payment_intent_id = String(max_length=255)

    items = HasMany(OrderItem)

    # Pricing
    subtotal = Float(min_value=0.0, default=0.0)
    discount = Float(min_value=0.0, default=0.0)
    shipping_charges = Float(min_value=0.0, default=0.0)
    total = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="USD")

    # Post-sale sub-records
    cancellation = ValueObject(Cancellation)
    return_request = ValueObject(ReturnRequest)
    refunds = HasMany(Refund)

    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def completed_refunds_cannot_exceed_total(self):
        if self.total is not None and self.refunded_total > self.total:
            raise ValidationError({"refunds": ["Completed refunds cannot exceed the order total"]})

    @invariant.post
    def refund_amounts_must_be_positive(self):
        if any(refund.amount is None or refund.amount <= 0 for refund in self.refunds):
            raise ValidationError({"refunds": ["Refund amounts must be greater than zero"]})

    @invariant.post
    def stripe_refund_id_requires_stripe_payment(self):
        if self.payment_method == PaymentMethod.STRIPE.value:
            return
        if any(refund.stripe_refund_id for refund in self.refunds):
            raise ValidationError({"refunds": ["Only Stripe payments can carry a Stripe refund id"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(
        cls,
        order_number,
        payment_method,
        total,
        items=None,
        subtotal=None,
        discount=0.0,
        shipping_charges=0.0,
        currency="USD",
        customer_name=None,
        customer_email=None,
        status=OrderStatus.PENDING.value,
        payment_status=PaymentStatus.PENDING.value,
        paid_at=None,
        stripe_payment_intent_id=None,
        created_at=None,
    ):
        """Register an order handed over by the purchase flow."""
        now = datetime.now(UTC)

        lines = []
        for position, item in enumerate(items or []):
            line_subtotal = item.get("line_subtotal")
            if line_subtotal is None:
                line_subtotal = round(item["quantity"] * item["unit_price"], 2)
            lines.append(
                OrderItem(
                    position=position,
                    product_id=item.get("product_id"),
                    title=item["title"],
                    quantity=item["quantity"],
                    unit_price=item["unit_price"],
                    line_subtotal=line_subtotal,
                )
            )

        if subtotal is None:
            subtotal = round(sum(line.line_subtotal for line in lines), 2)

        order = cls(
            order_number=order_number,
            customer_name=customer_name,
            customer_email=customer_email,
            status=status,
            payment_method=payment_method,
            payment_status=payment_status,
            paid_at=as_aware(paid_at),
            stripe_payment_intent_id=stripe_payment_intent_id,
            subtotal=subtotal,
            discount=discount or 0.0,
            shipping_charges=shipping_charges or 0.0,
            total=total,
            currency=currency,
            created_at=as_aware(created_at) or now,
            updated_at=now,
        )
        for line in lines:
            order.add_items(line)

        order.raise_(
            OrderRegistered(
                order_id=str(order.id),
                order_number=order.order_number,
                status=order.status,
                payment_method=order.payment_method,
                payment_status=order.payment_status,
                total=order.total,
                currency=order.currency,
                item_count=len(lines),
                registered_at=now,
            )
        )

        return order

    # -------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------
    @property
    def ordered_items(self):
        return sorted(self.items, key=lambda item: item.position or 0)

    @property
    def ordered_refunds(self):
        return sorted(self.refunds, key=lambda refund: refund.sequence or 0)

    @property
    def completed_refunds(self):
        return [r for r in self.ordered_refunds if r.status == RefundStatus.COMPLETED.value]

    @property
    def has_completed_refund(self):
        return bool(self.completed_refunds)

    @property
    def refunded_total(self):
        return round(sum(r.amount or 0.0 for r in self.completed_refunds), 2)

    @property
    def is_cod(self):
        return self.payment_method == PaymentMethod.COD.value

    @property
    def return_status(self):
        return self.return_request.status if self.return_request else None

    @property
    def suggested_refund_amount(self):
        """Amount the operator's refund form starts from."""
        if self.return_request and self.return_request.refund_amount is not None:
            return self.return_request.refund_amount
        return self.total

    @property
    def display_amount(self):
        return self.refunded_total if self.has_completed_refund else self.suggested_refund_amount

    @property
    def last_activity_at(self):
        """When the order last entered a post-sale queue, falling back to creation."""
        moments = [as_aware(self.created_at)]
        if self.cancellation:
            moments.append(as_aware(self.cancellation.cancelled_at))
        if self.return_request:
            moments.append(as_aware(self.return_request.requested_at))
        return max(m for m in moments if m is not None)

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def record_cancellation(self, reason=None, cancelled_by=None):
        if self.cancellation:
            raise AlreadyCancelled({"cancellation": ["Order is already cancelled"]})

        now = datetime.now(UTC)
        with atomic_change(self):
            self.cancellation = Cancellation(
                reason=reason,
                cancelled_at=now,
                cancelled_by=cancelled_by,
            )
            self.status = OrderStatus.CANCELLED.value
            self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                reason=reason,
                cancelled_by=cancelled_by,
                payment_method=self.payment_method,
                payment_status=self.payment_status,
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Returns
    # -------------------------------------------------------------------
    def request_return(self, reason, bank_details=None):
        """Attach a return request. A rejected return cannot be requested again."""
        if self.return_request:
            raise InvalidTransition(
                {"return": [f"A return was already requested and is {self.return_request.status}"]}
            )
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["A reason is required to request a return"]})
        if bank_details and not self.is_cod:
            raise ValidationError({"bank_details": ["Bank details are only accepted for cash-on-delivery orders"]})

        if isinstance(bank_details, dict):
            bank_details = BankDetails(**bank_details)

        now = datetime.now(UTC)
        self.return_request = ReturnRequest(
            status=ReturnStatus.REQUESTED.value,
            reason=reason.strip(),
            requested_at=now,
            bank_details=bank_details,
        )
        self.updated_at = now

        self.raise_(
            ReturnRequested(
                order_id=str(self.id),
                order_number=self.order_number,
                reason=reason.strip(),
                has_bank_details=str(bank_details is not None),
                requested_at=now,
            )
        )

    def _assert_return_exists(self):
        if not self.return_request:
            raise NotFound({"return": [f"Order {self.order_number} has no return request"]})

    def _assert_return_can_transition(self, target_status):
        self._assert_return_exists()
        current = ReturnStatus(self.return_request.status)
        if target_status not in _VALID_RETURN_TRANSITIONS.get(current, set()):
            raise InvalidTransition({"return": [f"Cannot move a return from {current.value} to {target_status.value}"]})

    def _decide_return(self, status, notes, decided_at, refund_amount=None):
        current = self.return_request
        self.return_request = ReturnRequest(
            status=status.value,
            reason=current.reason,
            requested_at=current.requested_at,
            refund_amount=refund_amount if refund_amount is not None else current.refund_amount,
            notes=notes,
            decided_at=decided_at,
            bank_details=current.bank_details,
        )
        self.updated_at = decided_at

    def approve_return(self, notes=None, refund_amount=None):
        self._assert_return_can_transition(ReturnStatus.APPROVED)

        if refund_amount is not None:
            amount = as_amount(refund_amount)
            if amount is None or amount <= 0:
                raise ValidationError({"refund_amount": ["invalid amount"]})
            if amount > self.total:
                raise ValidationError({"refund_amount": ["exceeds order total"]})
            refund_amount = amount

        notes = notes.strip() if notes and notes.strip() else None
        now = datetime.now(UTC)
        self._decide_return(ReturnStatus.APPROVED, notes, now, refund_amount=refund_amount)

        self.raise_(
            ReturnApproved(
                order_id=str(self.id),
                order_number=self.order_number,
                notes=notes,
                refund_amount=self.return_request.refund_amount,
                approved_at=now,
            )
        )

    def reject_return(self, notes):
        """Reject the return. Operators must say why."""
        self._assert_return_exists()
        if not notes or not notes.strip():
            raise ValidationError({"notes": ["Notes are required when rejecting a return"]})
        self._assert_return_can_transition(ReturnStatus.REJECTED)

        now = datetime.now(UTC)
        self._decide_return(ReturnStatus.REJECTED, notes.strip(), now)

        self.raise_(
            ReturnRejected(
                order_id=str(self.id),
                order_number=self.order_number,
                notes=notes.strip(),
                rejected_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Refunds
    # -------------------------------------------------------------------
    @property
    def has_approved_return(self):
        return self.return_status == ReturnStatus.APPROVED.value

    @property
    def is_refund_eligible(self):
        if self.has_approved_return:
            return True
        return (
            self.cancellation is not None
            and not self.is_cod
            and self.payment_status == PaymentStatus.COMPLETED.value
        )

    @property
    def requires_gateway(self):
        return self.payment_method == PaymentMethod.STRIPE.value

    @property
    def default_refund_reason(self):
        return RETURN_REFUND_REASON if self.has_approved_return else CANCELLATION_REFUND_REASON

    def _ineligibility_reason(self):
        if self.return_request and self.cancellation is None:
            return f"Return is {self.return_request.status}, refunds need an approved return"
        if self.cancellation is not None:
            if self.is_cod:
                return "Cash-on-delivery cancellations have no gateway refund path; approve a return with bank details"
            return "Payment for this order has not been completed"
        return "Order is neither cancelled nor carrying an approved return"

    def check_refund(self, amount):
        """Run every refund gate without touching the ledger.

        Returns the amount as a float. Raises, in this order: AlreadyRefunded,
        ValidationError (invalid amount, exceeds order total), NotEligible.
        """
        if self.has_completed_refund:
            raise AlreadyRefunded({"refunds": [f"Order {self.order_number} has already been refunded"]})

        value = as_amount(amount)
        if value is None or value <= 0:
            raise ValidationError({"amount": ["invalid amount"]})
        if value > self.total:
            raise ValidationError({"amount": ["exceeds order total"]})

        if not self.is_refund_eligible:
            raise NotEligible({"refund": [self._ineligibility_reason()]})

        return value

    def record_refund(self, amount, reason=None, stripe_refund_id=None):
        """Append a completed refund to the ledger and return it."""
        value = self.check_refund(amount)
        reason = (reason or "").strip() or self.default_refund_reason

        now = datetime.now(UTC)
        refund = Refund(
            sequence=len(self.refunds) + 1,
            amount=value,
            status=RefundStatus.COMPLETED.value,
            reason=reason,
            processed_at=now,
            stripe_refund_id=stripe_refund_id,
        )
        self.add_refunds(refund)
        self.updated_at = now

        self.raise_(
            RefundIssued(
                order_id=str(self.id),
                order_number=self.order_number,
                refund_id=str(refund.id),
                amount=value,
                reason=reason,
                payment_method=self.payment_method,
                stripe_refund_id=stripe_refund_id,
                processed_at=now,
            )
        )

        return refund
