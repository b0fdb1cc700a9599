"""Order modification: commands and handler.

Handles item additions, removals and quantity changes. All modifications
are only allowed while the order is Pending.
"""

from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.line_item import MAX_QUANTITY, LineItem
from ordering.order.order import Order
from ordering.shared.money import BASE_CURRENCY


@ordering.command(part_of="Order")
class AddItem:
    """Add a line item, merging with an existing line for the same product."""

    order_id = Identifier(required=True)
    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    product_description = Text()
    quantity = Integer(required=True, min_value=1, max_value=MAX_QUANTITY)
    unit_price = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default=BASE_CURRENCY)


@ordering.command(part_of="Order")
class RemoveItem:
    order_id = Identifier(required=True)
    product_id = Identifier(required=True)


@ordering.command(part_of="Order")
class ChangeItemQuantity:
    order_id = Identifier(required=True)
    product_id = Identifier(required=True)
    new_quantity = Integer(required=True, min_value=1, max_value=MAX_QUANTITY)


@ordering.command_handler(part_of=Order)
class ModifyOrderHandler:
    @handle(AddItem)
    def add_item(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.add_item(
            LineItem.create(
                product_id=command.product_id,
                product_name=command.product_name,
                product_description=command.product_description,
                quantity=command.quantity,
                unit_price=command.unit_price,
                currency=command.currency or BASE_CURRENCY,
            )
        )
        repo.add(order)

    @handle(RemoveItem)
    def remove_item(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.remove_item(command.product_id)
        repo.add(order)

    @handle(ChangeItemQuantity)
    def change_item_quantity(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.change_item_quantity(command.product_id, command.new_quantity)
        repo.add(order)
