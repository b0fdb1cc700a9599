"""Order creation: command and handler."""

from protean import handle
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class CreateOrder:
    customer_id = Identifier(required=True)
    notes = Text()


@ordering.command_handler(part_of=Order)
class CreateOrderHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        order = Order.create(customer_id=command.customer_id, notes=command.notes)
        current_domain.repository_for(Order).add(order)
        return str(order.id)
