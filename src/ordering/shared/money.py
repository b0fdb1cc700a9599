"""Money value object for monetary amounts with currency."""

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Float, String

from ordering.domain import ordering
from ordering.errors import CurrencyMismatchError, InvalidAmountError, InvalidCurrencyError

BASE_CURRENCY = "BRL"

VALID_CURRENCIES = frozenset({"BRL", "USD", "EUR"})

CURRENCY_SYMBOLS = {"BRL": "R$", "USD": "$", "EUR": "€"}

_CENTS = Decimal("0.01")

# Largest amount whose float form keeps every cent
MAX_AMOUNT = Decimal("999999999999.99")


def _to_decimal(value):
    try:
        number = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(f"Amount must be a number, got {value!r}") from None
    if not number.is_finite():
        raise InvalidAmountError(f"Amount must be finite, got {value!r}")
    return number


def _round_cents(value: Decimal) -> Decimal:
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


@ordering.value_object
class Money:
    """Non-negative amount in one of the supported currencies, kept to cents.

    Amounts are capped at ``MAX_AMOUNT`` so the stored float keeps every cent.

    Build values with ``Money.of()``, which validates and rounds half-up.
    Every arithmetic operation returns a new instance.
    """

    amount: Float(required=True, min_value=0.0, max_value=float(MAX_AMOUNT))
    currency: String(max_length=3, default=BASE_CURRENCY)

    @invariant.post
    def amount_must_be_finite(self):
        if self.amount is not None and not math.isfinite(self.amount):
            raise ValidationError({"amount": ["Amount must be finite"]})

    @invariant.post
    def amount_must_be_rounded_to_cents(self):
        if self.amount is not None and math.isfinite(self.amount):
            exact = Decimal(str(self.amount))
            if exact != _round_cents(exact):
                raise ValidationError({"amount": ["Amount must have at most two decimal places"]})

    @invariant.post
    def currency_must_be_supported(self):
        if self.currency not in VALID_CURRENCIES:
            raise ValidationError({"currency": [f"Unsupported currency: {self.currency}"]})

    # -------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------
    @classmethod
    def of(cls, amount, currency=BASE_CURRENCY):
        """Validate, round half-up to cents and build a Money value."""
        if currency not in VALID_CURRENCIES:
            raise InvalidCurrencyError(f"Unsupported currency: {currency}")

        value = _to_decimal(amount)
        if value < 0:
            raise InvalidAmountError(f"Amount cannot be negative, got {amount}")

        # float() of a negative zero would survive as -0.0
        rounded = _round_cents(value) + 0
        if rounded > MAX_AMOUNT:
            raise InvalidAmountError(f"Amount cannot exceed {MAX_AMOUNT}, got {amount}")
        return cls(amount=float(rounded), currency=currency)

    @classmethod
    def zero(cls, currency=BASE_CURRENCY):
        return cls.of(0, currency)

    # -------------------------------------------------------------------
    # Arithmetic
    # -------------------------------------------------------------------
    def to_decimal(self) -> Decimal:
        return Decimal(str(self.amount))

    def add(self, other: "Money") -> "Money":
        self._assert_same_currency(other)
        return Money.of(self.to_decimal() + other.to_decimal(), self.currency)

    def subtract(self, other: "Money") -> "Money":
        self._assert_same_currency(other)
        result = self.to_decimal() - other.to_decimal()
        if result < 0:
            raise InvalidAmountError(f"Subtraction would result in a negative amount: {self.format()} - {other.format()}")
        return Money.of(result, self.currency)

    def multiply(self, factor) -> "Money":
        multiplier = _to_decimal(factor)
        if multiplier < 0:
            raise InvalidAmountError(f"Multiplier cannot be negative, got {factor}")
        return Money.of(self.to_decimal() * multiplier, self.currency)

    def divide(self, divisor) -> "Money":
        value = _to_decimal(divisor)
        if value <= 0:
            raise InvalidAmountError(f"Divisor must be greater than zero, got {divisor}")
        return Money.of(self.to_decimal() / value, self.currency)

    def percentage(self, percent) -> "Money":
        """Return ``percent`` % of this amount."""
        return self.multiply(_to_decimal(percent) / 100)

    # -------------------------------------------------------------------
    # Comparison
    # -------------------------------------------------------------------
    def equals(self, other: "Money") -> bool:
        return self.currency == other.currency and self.to_decimal() == other.to_decimal()

    def is_greater_than(self, other: "Money") -> bool:
        self._assert_same_currency(other)
        return self.to_decimal() > other.to_decimal()

    def is_less_than(self, other: "Money") -> bool:
        self._assert_same_currency(other)
        return self.to_decimal() < other.to_decimal()

    def is_zero(self) -> bool:
        return self.to_decimal() == 0

    def format(self) -> str:
        return f"{CURRENCY_SYMBOLS[self.currency]} {self.to_decimal():.2f}"

    def _assert_same_currency(self, other):
        if self.currency != other.currency:
            raise CurrencyMismatchError(f"Currency mismatch: {self.currency} vs {other.currency}")
