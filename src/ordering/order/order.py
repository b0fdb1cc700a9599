"""Order aggregate: customer order, its line items and lifecycle status.

The order is a standard (non event-sourced) aggregate. Items can only be
changed while the order is Pending, all items share one currency, and status
moves only along the edges of ``ordering.order.status.TRANSITIONS``. Every
mutation raises a domain event into the aggregate's buffer; callers read
``domain_events`` and call ``clear_events()`` once they have dispatched them.
The buffer assumes a single writer per order.
"""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, String, Text

from ordering.domain import ordering
from ordering.errors import (
    CurrencyMismatchError,
    InvalidAmountError,
    InvalidCustomerIdError,
    InvalidStateError,
    InvalidTransitionError,
    ItemNotFoundError,
)
from ordering.order.events import (
    ItemAdded,
    ItemQuantityChanged,
    ItemRemoved,
    OrderConfirmed,
    OrderCreated,
    OrderDelivered,
    OrderStatusChanged,
)
from ordering.order.line_item import MAX_QUANTITY, LineItem
from ordering.order.status import TERMINAL_STATUSES, OrderStatus, to_status, valid_transitions
from ordering.shared.money import BASE_CURRENCY, Money


@ordering.aggregate
class Order:
    customer_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    items = HasMany(LineItem)
    notes = Text()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def items_must_share_one_currency(self):
        currencies = {item.currency for item in self.items}
        if len(currencies) > 1:
            raise ValidationError({"items": [f"Order items must share one currency, found {sorted(currencies)}"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id, notes=None):
        if customer_id is None or not str(customer_id).strip():
            raise InvalidCustomerIdError("Customer id cannot be blank")

        now = datetime.now(UTC)
        order = cls(
            customer_id=customer_id,
            status=OrderStatus.PENDING.value,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                customer_id=str(customer_id),
                status=order.status,
                notes=notes,
                occurred_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Item management (Pending only)
    # -------------------------------------------------------------------
    def add_item(self, item: LineItem):
        """Add a line item, merging it into an existing line of the same product."""
        self._assert_pending("add items to")

        currency = self.currency()
        if self.items and item.currency != currency:
            raise CurrencyMismatchError(f"Item currency {item.currency} does not match order currency {currency}")

        existing = self.find_item(item.product_id)
        merged = existing is not None
        if merged:
            # The merged line moves to the end of the list
            item = existing.with_quantity(existing.quantity + item.quantity)
            self.remove_items(existing)
        self.add_items(item)

        now = self._touch()
        self.raise_(
            ItemAdded(
                order_id=str(self.id),
                product_id=str(item.product_id),
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price.amount,
                total_price=item.total_price.amount,
                currency=item.currency,
                merged=merged,
                occurred_at=now,
            )
        )
        return item

    def remove_item(self, product_id):
        self._assert_pending("remove items from")

        item = self._get_item(product_id)
        self.remove_items(item)

        now = self._touch()
        self.raise_(
            ItemRemoved(
                order_id=str(self.id),
                product_id=str(product_id),
                quantity=item.quantity,
                occurred_at=now,
            )
        )

    def change_item_quantity(self, product_id, new_quantity):
        """Set a line's quantity in place; the line keeps its position."""
        self._assert_pending("change items of")
        if not 1 <= new_quantity <= MAX_QUANTITY:
            raise InvalidAmountError(
                f"Quantity must be between 1 and {MAX_QUANTITY}, got {new_quantity}", field="quantity"
            )

        item = self._get_item(product_id)
        previous_quantity = item.quantity
        item.quantity = new_quantity

        now = self._touch()
        self.raise_(
            ItemQuantityChanged(
                order_id=str(self.id),
                product_id=str(product_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
                occurred_at=now,
            )
        )
        return item

    def add_notes(self, notes):
        self.notes = notes
        self._touch()

    # -------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    def change_status(self, new_status):
        """Move to ``new_status`` if the transition table allows it."""
        target = to_status(new_status)
        source = self.current_status
        if target not in valid_transitions(source):
            raise InvalidTransitionError(f"Cannot transition from {source.value} to {target.value}")

        self.status = target.value
        now = self._touch()

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=source.value,
                new_status=target.value,
                occurred_at=now,
            )
        )

        if target == OrderStatus.CONFIRMED:
            total = self.total()
            self.raise_(
                OrderConfirmed(
                    order_id=str(self.id),
                    customer_id=str(self.customer_id),
                    total=total.amount,
                    currency=total.currency,
                    items=json.dumps(
                        [{"product_id": str(item.product_id), "quantity": item.quantity} for item in self.items]
                    ),
                    occurred_at=now,
                )
            )
        elif target == OrderStatus.DELIVERED:
            self.raise_(
                OrderDelivered(
                    order_id=str(self.id),
                    customer_id=str(self.customer_id),
                    occurred_at=now,
                )
            )

    def can_be_canceled(self) -> bool:
        return self.current_status not in TERMINAL_STATUSES

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def currency(self) -> str:
        if not self.items:
            return BASE_CURRENCY
        return self.items[0].currency

    def total(self) -> Money:
        result = Money.zero(self.currency())
        for item in self.items:
            result = result.add(item.total_price)
        return result

    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def is_empty(self) -> bool:
        return not self.items

    def find_item(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    # -------------------------------------------------------------------
    # Event buffer
    # -------------------------------------------------------------------
    @property
    def domain_events(self) -> list:
        return list(self._events)

    def clear_events(self):
        self._events.clear()

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _assert_pending(self, action):
        if self.current_status != OrderStatus.PENDING:
            raise InvalidStateError(f"Cannot {action} an order in {self.status} status")

    def _get_item(self, product_id):
        item = self.find_item(product_id)
        if item is None:
            raise ItemNotFoundError(f"Item with product {product_id} not found in order")
        return item

    def _touch(self):
        now = datetime.now(UTC)
        self.updated_at = now
        return now
