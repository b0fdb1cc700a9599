"""Order total with discounts applied, for a persisted order."""

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.discount import get_calculator
from ordering.discount.calculator import DiscountCalculator, OrderTotal
from ordering.order.order import Order


def calculate_order_total(order_id, coupon_code=None, calculator: DiscountCalculator | None = None) -> OrderTotal:
    """Subtotal, discount and final total of an order.

    Raises ``ObjectNotFoundError`` when the order does not exist and
    ``ValidationError`` for a blank coupon code.
    """
    if coupon_code is not None and not coupon_code.strip():
        raise ValidationError({"coupon_code": ["Coupon code cannot be blank"]})

    order = current_domain.repository_for(Order).get(order_id)
    calculator = calculator or get_calculator()
    return calculator.order_total(order, coupon_code=coupon_code.strip() if coupon_code else None)
