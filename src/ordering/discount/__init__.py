"""Discount calculator factory.

Provides get_calculator() / set_calculator() so the whole process shares one
calculator and, with it, one coupon registry.
"""

from ordering.discount.calculator import DiscountCalculator

_current_calculator: DiscountCalculator | None = None


def get_calculator() -> DiscountCalculator:
    """Return the process-wide calculator, creating it with default coupons."""
    global _current_calculator
    if _current_calculator is None:
        _current_calculator = DiscountCalculator()
    return _current_calculator


def set_calculator(calculator: DiscountCalculator) -> None:
    global _current_calculator
    _current_calculator = calculator


def reset_calculator() -> None:
    global _current_calculator
    _current_calculator = None
