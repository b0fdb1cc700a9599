"""Payment gateway port (abstract interface)."""

from abc import ABC, abstractmethod


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    async def process_payment(self, order_id: str, amount: float, method: str) -> bool:
        """Charge an order. Returns False when the payment is declined."""
        ...

    @abstractmethod
    async def refund_payment(self, order_id: str) -> None:
        """Refund whatever was charged for an order."""
        ...
