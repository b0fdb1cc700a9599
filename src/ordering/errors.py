"""Error taxonomy for the ordering context.

Rule violations detected inside the domain are reported as protean
``ValidationError`` subclasses carrying the usual ``{field: [message]}``
payload, so callers can catch either the specific type or the generic
``ValidationError`` the rest of the domain raises.

Failures reported by external collaborators (stock, payments) derive from
``ServiceError`` instead: they are business or transport outcomes of a call,
not invalid input.
"""

from protean.exceptions import ValidationError


class OrderingError(ValidationError):
    """Base class for rule violations raised by the ordering core."""

    field = "_entity"

    def __init__(self, message, field=None):
        self.message = message
        super().__init__({field or self.field: [message]})


class InvalidAmountError(OrderingError):
    field = "amount"


class InvalidCurrencyError(OrderingError):
    field = "currency"


class CurrencyMismatchError(OrderingError):
    field = "currency"


class InvalidCustomerIdError(OrderingError):
    field = "customer_id"


class InvalidStateError(OrderingError):
    field = "status"


class InvalidTransitionError(OrderingError):
    field = "status"


class TransitionFailedError(InvalidTransitionError):
    """A transition was allowed but a hook or the aggregate rejected it."""


class UnreachableTargetError(InvalidTransitionError):
    pass


class NotFoundError(OrderingError):
    pass


class ItemNotFoundError(NotFoundError):
    field = "product_id"


class StepNotFoundError(NotFoundError):
    field = "step_id"


class SagaNotFoundError(NotFoundError):
    field = "saga"


class StepNotExecutableError(InvalidStateError):
    field = "step_id"


# ---------------------------------------------------------------------------
# External service failures
# ---------------------------------------------------------------------------
class ServiceError(Exception):
    """Failure reported by an external collaborator."""

    def __init__(self, message, **context):
        super().__init__(message)
        self.message = message
        self.context = context


class InsufficientStockError(ServiceError):
    pass


class ProductNotFoundError(ServiceError):
    pass


class PaymentRejectedError(ServiceError):
    pass


class ExternalServiceError(ServiceError):
    """Transient failure of a stock or payment call."""
