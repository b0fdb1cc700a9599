"""Domain events for the Order aggregate.

All events are versioned, immutable facts raised by the aggregate into its
event buffer. Callers read them through ``Order.domain_events`` and clear
the buffer after dispatch; persisting the order through its repository
hands them to the domain's broker.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderCreated:
    """A new, empty order was opened for a customer."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    status = String(required=True)
    notes = Text()
    occurred_at = DateTime(required=True)


@ordering.event(part_of="Order")
class ItemAdded:
    """A line item was added, or merged into an existing line of the same product."""

    __version__ = 1

    order_id = Identifier(required=True)
    product_id = Identifier(required=True)
    product_name = String(required=True)
    quantity = Integer(required=True)
    unit_price = Float(required=True)
    total_price = Float(required=True)
    currency = String(required=True)
    merged = Boolean(default=False)
    occurred_at = DateTime(required=True)


@ordering.event(part_of="Order")
class ItemRemoved:
    __version__ = 1

    order_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    occurred_at = DateTime(required=True)


@ordering.event(part_of="Order")
class ItemQuantityChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    occurred_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """Raised on every successful status transition."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    occurred_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderConfirmed:
    """The order entered Confirmed; carries what downstream services need to act on it."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    total = Float(required=True)
    currency = String(required=True)
    items = Text(required=True)  # JSON: list of {product_id, quantity}
    occurred_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    occurred_at = DateTime(required=True)
