"""Order status change: command and handler.

Status changes requested from outside go through the state machine, so
guards (e.g. an empty order cannot be confirmed) and hooks apply.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order
from ordering.order.state_machine import OrderStateMachine
from ordering.order.status import OrderStatus, to_status


@ordering.command(part_of="Order")
class ChangeOrderStatus:
    order_id = Identifier(required=True)
    new_status = String(required=True, choices=OrderStatus)


_state_machine = OrderStateMachine()


@ordering.command_handler(part_of=Order)
class ChangeOrderStatusHandler:
    @handle(ChangeOrderStatus)
    def change_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        _state_machine.execute_transition(order, to_status(command.new_status))
        repo.add(order)
        return order.status
