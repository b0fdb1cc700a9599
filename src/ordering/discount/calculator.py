"""Discount calculator: combines the quantity, order value and coupon strategies."""

from dataclasses import dataclass, replace

import structlog

from ordering.discount.strategies import (
    STRATEGIES,
    CouponDiscountParams,
    CouponRegistry,
    DiscountKind,
    DiscountStrategy,
    OrderValueDiscountParams,
    QuantityDiscountParams,
)
from ordering.order.order import Order
from ordering.shared.money import Money

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OrderTotal:
    order_id: str
    subtotal: Money
    discount: Money
    total: Money

    @property
    def currency(self) -> str:
        return self.total.currency


class DiscountCalculator:
    """Computes discounts for an order.

    The coupon registry is owned by the caller and shared by reference, so
    coupons added or deactivated through one handle are seen by every
    calculator built on the same registry.
    """

    def __init__(
        self,
        coupons: CouponRegistry | None = None,
        quantity_params: QuantityDiscountParams | None = None,
        value_params: OrderValueDiscountParams | None = None,
    ):
        self.coupons = coupons if coupons is not None else CouponRegistry()
        self.quantity_params = quantity_params or QuantityDiscountParams()
        self.value_params = value_params or OrderValueDiscountParams()
        self._strategies: dict[DiscountKind, DiscountStrategy] = dict(STRATEGIES)

    def register_strategy(self, kind: DiscountKind, strategy: DiscountStrategy) -> None:
        self._strategies[kind] = strategy

    # -------------------------------------------------------------------
    # Individual rules
    # -------------------------------------------------------------------
    def quantity_discount(self, total: Money, quantity: int) -> Money:
        params = replace(self.quantity_params, quantity=quantity)
        return self._strategies[DiscountKind.QUANTITY].calculate(total, params)

    def value_discount(self, total: Money) -> Money:
        return self._strategies[DiscountKind.ORDER_VALUE].calculate(total, self.value_params)

    def coupon_discount(self, total: Money, code: str | None) -> Money:
        params = CouponDiscountParams(code=code, registry=self.coupons)
        return self._strategies[DiscountKind.COUPON].calculate(total, params)

    def discount_for(self, order: Order, kind: DiscountKind, **params) -> Money:
        """Discount a single rule gives ``order``.

        Keyword params override the calculator's configured defaults, e.g.
        ``threshold=`` for quantity or ``code=`` for coupons.
        """
        total = order.total()
        kind = DiscountKind(kind)
        if kind == DiscountKind.QUANTITY:
            strategy_params = replace(self.quantity_params, quantity=order.item_count(), **params)
        elif kind == DiscountKind.ORDER_VALUE:
            strategy_params = replace(self.value_params, **params)
        else:
            strategy_params = CouponDiscountParams(code=params.get("code"), registry=self.coupons)
        return self._strategies[kind].calculate(total, strategy_params)

    # -------------------------------------------------------------------
    # Aggregate
    # -------------------------------------------------------------------
    def total_discount(self, order: Order, coupon_code: str | None = None) -> Money:
        """Sum of every rule's discount, never more than the order total."""
        total = order.total()
        if order.is_empty():
            return Money.zero(total.currency)

        discount = (
            self.quantity_discount(total, order.item_count())
            .add(self.value_discount(total))
            .add(self.coupon_discount(total, coupon_code))
        )

        if discount.is_greater_than(total):
            logger.debug(
                "Discount clamped to order total",
                order_id=str(order.id),
                discount=discount.amount,
                total=total.amount,
            )
            return total
        return discount

    def order_total(self, order: Order, coupon_code: str | None = None) -> OrderTotal:
        subtotal = order.total()
        discount = self.total_discount(order, coupon_code)
        return OrderTotal(
            order_id=str(order.id),
            subtotal=subtotal,
            discount=discount,
            total=subtotal.subtract(discount),
        )

    # -------------------------------------------------------------------
    # Coupon management
    # -------------------------------------------------------------------
    def add_coupon(self, code: str, percent: float, min_total: float | None = None) -> None:
        self.coupons.add(code, percent, min_total)

    def deactivate_coupon(self, code: str) -> None:
        self.coupons.deactivate(code)

    def active_coupons(self) -> list[str]:
        return self.coupons.active_codes()
