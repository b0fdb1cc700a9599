"""Stock service port (abstract interface).

Defines the contract the fulfillment saga relies on to check, reserve,
release and commit stock for an order's items.
"""

from abc import ABC, abstractmethod


class StockService(ABC):
    """Abstract stock service interface."""

    @abstractmethod
    async def check_availability(self, product_id: str, quantity: int) -> bool:
        """Return True when ``quantity`` units are available to reserve."""
        ...

    @abstractmethod
    async def reserve(self, product_id: str, quantity: int, order_id: str) -> None:
        """Hold ``quantity`` units for an order."""
        ...

    @abstractmethod
    async def release(self, product_id: str, quantity: int, order_id: str) -> None:
        """Give back units previously reserved for an order."""
        ...

    @abstractmethod
    async def commit(self, product_id: str, quantity: int, order_id: str) -> None:
        """Deduct reserved units from stock once the order ships."""
        ...
