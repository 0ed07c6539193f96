"""RegisterOrder — intake of orders produced by the purchase flow.

Order numbers are unique across the context; the duplicate check needs a
repository query, so it lives in the handler rather than the aggregate.
"""

import json

import structlog
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from reconciliation.domain import reconciliation
from reconciliation.order.order import Order, OrderStatus, PaymentStatus

logger = structlog.get_logger(__name__)


@reconciliation.command(part_of="Order")
class RegisterOrder:
    order_number = String(required=True, max_length=50)
    payment_method = String(required=True, max_length=20)
    total = Float(required=True)
    items = Text()  # JSON: [{product_id, title, quantity, unit_price, line_subtotal}]
    subtotal = Float()
    discount = Float(default=0.0)
    shipping_charges = Float(default=0.0)
    currency = String(max_length=3, default="USD")
    customer_name = String(max_length=255)
    customer_email = String(max_length=254)
    status = String(max_length=20, default=OrderStatus.PENDING.value)
    payment_status = String(max_length=20, default=PaymentStatus.PENDING.value)
    paid_at = DateTime()
    stripe_payment_intent_id = String(max_length=255)
    created_at = DateTime()


@reconciliation.command_handler(part_of=Order)
class RegisterOrderHandler:
    @handle(RegisterOrder)
    def register_order(self, command):
        repo = current_domain.repository_for(Order)

        if repo.find_by_number(command.order_number) is not None:
            raise ValidationError({"order_number": [f"Order {command.order_number} is already registered"]})

        order = Order.register(
            order_number=command.order_number,
            payment_method=command.payment_method,
            total=command.total,
            items=json.loads(command.items) if command.items else [],
            subtotal=command.subtotal,
            discount=command.discount,
            shipping_charges=command.shipping_charges,
            currency=command.currency or "USD",
            customer_name=command.customer_name,
            customer_email=command.customer_email,
            status=command.status or OrderStatus.PENDING.value,
            payment_status=command.payment_status or PaymentStatus.PENDING.value,
            paid_at=command.paid_at,
            stripe_payment_intent_id=command.stripe_payment_intent_id,
            created_at=command.created_at,
        )
        repo.add(order)

        logger.info("Order registered", order_id=str(order.id), order_number=order.order_number)
        return str(order.id)
