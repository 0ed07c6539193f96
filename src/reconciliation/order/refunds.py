"""InitiateRefund — issue money back for a cancelled or returned order.

Stripe orders are refunded through the payment gateway before the ledger
entry is appended; a declined gateway call leaves the ledger untouched.
Cash-on-delivery refunds (approved returns only) are paid out by bank
transfer and are recorded directly.
"""

import structlog
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from reconciliation.domain import reconciliation
from reconciliation.errors import PaymentGatewayError
from reconciliation.gateway import get_gateway
from reconciliation.order.order import Order

logger = structlog.get_logger(__name__)


@reconciliation.command(part_of="Order")
class InitiateRefund:
    order_id = Identifier(required=True)
    amount = Float()  # Validated by the aggregate so bad amounts get a specific message
    reason = String(max_length=500)


@reconciliation.command_handler(part_of=Order)
class InitiateRefundHandler:
    @handle(InitiateRefund)
    def initiate_refund(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        amount = order.check_refund(command.amount)
        reason = (command.reason or "").strip() or order.default_refund_reason

        stripe_refund_id = None
        if order.requires_gateway:
            result = get_gateway().create_refund(
                payment_reference=order.stripe_payment_intent_id,
                amount=amount,
                currency=order.currency,
                reason=reason,
            )
            if not result.success:
                logger.warning(
                    "Gateway declined refund",
                    order_id=str(order.id),
                    amount=amount,
                    failure_reason=result.failure_reason,
                )
                raise PaymentGatewayError({"gateway": [result.failure_reason or "Refund failed at the payment gateway"]})
            stripe_refund_id = result.gateway_refund_id

        refund = order.record_refund(amount, reason=reason, stripe_refund_id=stripe_refund_id)
        repo.add(order)

        logger.info(
            "Refund issued",
            order_id=str(order.id),
            refund_id=str(refund.id),
            amount=amount,
            payment_method=order.payment_method,
        )
        return str(refund.id)
