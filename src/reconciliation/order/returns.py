"""Order returns — request, approve and reject.

Customers request a return (cash-on-delivery customers attach the bank
account the refund should be paid into). Operators then approve it, optionally
fixing the amount to refund, or reject it with a note explaining why.
"""

import json

from protean.fields import Float, Identifier, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from reconciliation.domain import reconciliation
from reconciliation.order.order import Order


@reconciliation.command(part_of="Order")
class RequestReturn:
    order_id = Identifier(required=True)
    reason = Text(required=True)
    bank_details = Text()  # JSON: {account_holder_name, account_number, routing_number, bank_name, account_type}


@reconciliation.command(part_of="Order")
class ApproveReturn:
    order_id = Identifier(required=True)
    notes = Text()
    refund_amount = Float()


@reconciliation.command(part_of="Order")
class RejectReturn:
    order_id = Identifier(required=True)
    notes = Text()  # Required; checked by the aggregate so blank notes get a specific message


@reconciliation.command_handler(part_of=Order)
class ReturnHandler:
    @handle(RequestReturn)
    def request_return(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.request_return(
            reason=command.reason,
            bank_details=json.loads(command.bank_details) if command.bank_details else None,
        )
        repo.add(order)

    @handle(ApproveReturn)
    def approve_return(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.approve_return(
            notes=command.notes,
            refund_amount=command.refund_amount,
        )
        repo.add(order)

    @handle(RejectReturn)
    def reject_return(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.reject_return(notes=command.notes)
        repo.add(order)
