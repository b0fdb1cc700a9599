"""LineItem entity: a quantity of one product at a unit price."""

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String, Text, ValueObject

from ordering.domain import ordering
from ordering.errors import InvalidAmountError
from ordering.shared.money import BASE_CURRENCY, Money

MAX_QUANTITY = 1000


@ordering.entity(part_of="Order")
class LineItem:
    """A line of an order.

    Merges and price changes produce a new ``LineItem`` through
    ``with_quantity()`` / ``with_unit_price()``. ``Order.change_item_quantity``
    is the one change made in place, so the line keeps its position.
    """

    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    product_description = Text()
    quantity = Integer(required=True, min_value=1, max_value=MAX_QUANTITY)
    unit_price = ValueObject(Money, required=True)

    @invariant.post
    def product_reference_must_not_be_blank(self):
        if self.product_id is not None and not str(self.product_id).strip():
            raise ValidationError({"product_id": ["Product id cannot be blank"]})
        if self.product_name is not None and not self.product_name.strip():
            raise ValidationError({"product_name": ["Product name cannot be blank"]})

    @invariant.post
    def unit_price_must_be_positive(self):
        if self.unit_price is not None and self.unit_price.is_zero():
            raise ValidationError({"unit_price": ["Unit price must be greater than zero"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, product_id, product_name, quantity, unit_price, currency=BASE_CURRENCY, product_description=None):
        if not isinstance(unit_price, Money):
            unit_price = Money.of(unit_price, currency)
        return cls(
            product_id=product_id,
            product_name=product_name,
            product_description=product_description,
            quantity=quantity,
            unit_price=unit_price,
        )

    # -------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------
    @property
    def total_price(self) -> Money:
        return self.unit_price.multiply(self.quantity)

    @property
    def currency(self) -> str:
        return self.unit_price.currency

    def is_same_product(self, other: "LineItem") -> bool:
        return str(self.product_id) == str(other.product_id)

    # -------------------------------------------------------------------
    # Copy-on-change
    # -------------------------------------------------------------------
    def with_quantity(self, quantity: int) -> "LineItem":
        return self._copy(quantity=quantity)

    def with_unit_price(self, unit_price: Money) -> "LineItem":
        return self._copy(unit_price=unit_price)

    def discount_for(self, percent) -> Money:
        """Amount taken off this line's total by a ``percent`` % discount."""
        if not 0 <= percent <= 100:
            raise InvalidAmountError(f"Discount percent must be between 0 and 100, got {percent}", field="percent")
        return self.total_price.percentage(percent)

    def apply_discount(self, percent) -> tuple["LineItem", Money]:
        """Return ``(discounted_item, discount)`` for a ``percent`` % discount.

        The copy's unit price is reduced by ``percent`` %; ``discount`` is the
        amount taken off the line total. A line cannot be priced at zero, so
        ``percent`` must be below 100.
        """
        if not 0 <= percent < 100:
            raise InvalidAmountError(
                f"Discount percent applied to a line must be at least 0 and below 100, got {percent}",
                field="percent",
            )
        discount = self.discount_for(percent)
        reduction = self.unit_price.percentage(percent)
        return self.with_unit_price(self.unit_price.subtract(reduction)), discount

    def _copy(self, **changes):
        values = {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_description": self.product_description,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
        }
        values.update(changes)
        return LineItem(**values)
