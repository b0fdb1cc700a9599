"""Discount strategies keyed by kind.

A strategy is a pair of plain functions over an order total and a params
object: ``calculate(total, params) -> Money`` and
``can_apply(total, params) -> bool``. Strategies hold no state; coupon data
lives in a ``CouponRegistry`` passed in through the params.
"""

from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from ordering.shared.money import Money


class DiscountKind(Enum):
    QUANTITY = "quantity"
    ORDER_VALUE = "order_value"
    COUPON = "coupon"


@dataclass
class Coupon:
    code: str
    percent: float
    min_total: float | None = None
    active: bool = True


class CouponRegistry:
    """Mutable coupon store owned by whoever builds the calculator."""

    DEFAULT_COUPONS = (
        Coupon("DESCONTO10", 10, 50),
        Coupon("DESCONTO15", 15, 100),
        Coupon("DESCONTO20", 20, 200),
        Coupon("FRETEGRATIS", 5, 100),
        Coupon("BLACKFRIDAY", 25, 150),
    )

    def __init__(self, coupons=None):
        self._coupons: dict[str, Coupon] = {}
        seed = self.DEFAULT_COUPONS if coupons is None else coupons
        for coupon in seed:
            self.add(coupon.code, coupon.percent, coupon.min_total, active=coupon.active)

    def add(self, code: str, percent: float, min_total: float | None = None, active: bool = True) -> Coupon:
        coupon = Coupon(code=code, percent=percent, min_total=min_total, active=active)
        self._coupons[code] = coupon
        return coupon

    def deactivate(self, code: str) -> None:
        """Deactivate a coupon. Unknown codes are ignored."""
        coupon = self._coupons.get(code)
        if coupon is not None:
            coupon.active = False

    def get(self, code: str) -> Coupon | None:
        return self._coupons.get(code)

    def active_codes(self) -> list[str]:
        return [code for code, coupon in self._coupons.items() if coupon.active]

    def __contains__(self, code):
        return code in self._coupons


# ---------------------------------------------------------------------------
# Params
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class QuantityDiscountParams:
    quantity: int = 0
    threshold: int = 10
    percent: float = 5


@dataclass(frozen=True)
class OrderValueDiscountParams:
    floor: float = 500
    percent: float = 10


@dataclass(frozen=True)
class CouponDiscountParams:
    code: str | None
    registry: CouponRegistry


# ---------------------------------------------------------------------------
# Quantity threshold
# ---------------------------------------------------------------------------
def _quantity_can_apply(total: Money, params: QuantityDiscountParams) -> bool:
    return params.quantity >= params.threshold and not total.is_zero()


def _quantity_calculate(total: Money, params: QuantityDiscountParams) -> Money:
    if params.quantity >= params.threshold:
        return total.percentage(params.percent)
    return Money.zero(total.currency)


# ---------------------------------------------------------------------------
# Order value threshold
# ---------------------------------------------------------------------------
def _order_value_can_apply(total: Money, params: OrderValueDiscountParams) -> bool:
    return total.to_decimal() >= Decimal(str(params.floor))


def _order_value_calculate(total: Money, params: OrderValueDiscountParams) -> Money:
    if _order_value_can_apply(total, params):
        return total.percentage(params.percent)
    return Money.zero(total.currency)


# ---------------------------------------------------------------------------
# Coupon
# ---------------------------------------------------------------------------
def _applicable_coupon(total: Money, params: CouponDiscountParams) -> Coupon | None:
    if not params.code:
        return None
    coupon = params.registry.get(params.code)
    if coupon is None or not coupon.active:
        return None
    if coupon.min_total is not None and total.to_decimal() < Decimal(str(coupon.min_total)):
        return None
    return coupon


def _coupon_can_apply(total: Money, params: CouponDiscountParams) -> bool:
    return _applicable_coupon(total, params) is not None


def _coupon_calculate(total: Money, params: CouponDiscountParams) -> Money:
    coupon = _applicable_coupon(total, params)
    if coupon is None:
        return Money.zero(total.currency)
    return total.percentage(coupon.percent)


@dataclass(frozen=True)
class DiscountStrategy:
    calculate: Callable[[Money, object], Money]
    can_apply: Callable[[Money, object], bool]


STRATEGIES: dict[DiscountKind, DiscountStrategy] = {
    DiscountKind.QUANTITY: DiscountStrategy(_quantity_calculate, _quantity_can_apply),
    DiscountKind.ORDER_VALUE: DiscountStrategy(_order_value_calculate, _order_value_can_apply),
    DiscountKind.COUPON: DiscountStrategy(_coupon_calculate, _coupon_can_apply),
}
