"""CancelOrder — record a cancellation on an order.

Recording a cancellation never moves money; a prepaid cancellation only
becomes refundable through InitiateRefund.
"""

from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from reconciliation.domain import reconciliation
from reconciliation.order.order import Order


@reconciliation.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = Text()
    cancelled_by = String(max_length=100)


@reconciliation.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_cancellation(
            reason=command.reason,
            cancelled_by=command.cancelled_by,
        )
        repo.add(order)
