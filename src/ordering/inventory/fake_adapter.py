"""In-memory stock service for development and testing.

Seeds a small catalogue, tracks reservations per order, keeps a log of stock
movements and can simulate network latency and transient failures.
"""

import asyncio
import random
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

import structlog

from ordering.errors import ExternalServiceError, InsufficientStockError, ProductNotFoundError
from ordering.inventory.port import StockService

logger = structlog.get_logger(__name__)

MAX_MOVEMENTS = 1000
LOW_STOCK_THRESHOLD = 10


class MovementType(Enum):
    RESERVE = "Reserve"
    RELEASE = "Release"
    COMMIT = "Commit"
    RESTOCK = "Restock"


@dataclass
class StockItem:
    product_id: str
    name: str
    available: int
    unit_price: float
    reserved: int = 0
    active: bool = True

    @property
    def free(self) -> int:
        return self.available - self.reserved


@dataclass(frozen=True)
class StockMovement:
    product_id: str
    movement_type: MovementType
    quantity: int
    order_id: str | None = None
    notes: str | None = None
    id: str = field(default_factory=lambda: f"mov-{uuid4().hex[:12]}")
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))


def default_catalogue() -> list[StockItem]:
    return [
        StockItem("prod-1", "Product A", available=100, unit_price=50.0),
        StockItem("prod-2", "Product B", available=50, unit_price=75.0),
        StockItem("prod-3", "Product C", available=5, unit_price=200.0),
        StockItem("prod-erro", "Inactive Product", available=10, unit_price=100.0, active=False),
    ]


class FakeStockService(StockService):
    """Configurable fake stock service.

    Args:
        latency: ``(min, max)`` seconds to sleep before every call, or None.
        failure_rate: probability in [0, 1] that a call raises
            ``ExternalServiceError``.
    """

    def __init__(self, latency: tuple[float, float] | None = (0.05, 0.15), failure_rate: float = 0.0) -> None:
        self.latency = latency
        self.failure_rate = failure_rate
        self.calls: list[dict] = []
        self._stock: dict[str, StockItem] = {}
        self._movements: list[StockMovement] = []
        self._reservations: dict[tuple[str, str], int] = {}
        self.reset()

    def configure(self, latency: tuple[float, float] | None = None, failure_rate: float = 0.0) -> None:
        """Configure simulated latency and failure rate at runtime."""
        self.latency = latency
        self.failure_rate = failure_rate

    def reset(self) -> None:
        """Restore the seeded catalogue and drop reservations and the movement log."""
        self._stock = {item.product_id: item for item in default_catalogue()}
        self._movements = []
        self._reservations = {}
        self.calls = []

    # -------------------------------------------------------------------
    # Port implementation
    # -------------------------------------------------------------------
    async def check_availability(self, product_id: str, quantity: int) -> bool:
        await self._simulate("check_availability", product_id=product_id, quantity=quantity)

        item = self._stock.get(product_id)
        if item is None or not item.active:
            return False
        return item.free >= quantity

    async def reserve(self, product_id: str, quantity: int, order_id: str) -> None:
        await self._simulate("reserve", product_id=product_id, quantity=quantity, order_id=order_id)

        item = self._stock.get(product_id)
        if item is None or not item.active:
            raise ProductNotFoundError(f"Product {product_id} not found or inactive", product_id=product_id)
        if item.free < quantity:
            raise InsufficientStockError(
                f"Insufficient stock for product {product_id}: available {item.free}, requested {quantity}",
                product_id=product_id,
                available=item.free,
                requested=quantity,
            )

        item.reserved += quantity
        key = (order_id, product_id)
        self._reservations[key] = self._reservations.get(key, 0) + quantity
        self._record(product_id, MovementType.RESERVE, quantity, order_id)
        logger.info("Stock reserved", product_id=product_id, quantity=quantity, order_id=order_id)

    async def release(self, product_id: str, quantity: int, order_id: str) -> None:
        """Give back up to ``quantity`` units held by ``order_id``.

        Only the order's own reservation is released, so releasing twice or
        releasing for an order that holds nothing is a no-op.
        """
        await self._simulate("release", product_id=product_id, quantity=quantity, order_id=order_id)

        item = self._get(product_id)
        key = (order_id, product_id)
        held = self._reservations.get(key, 0)
        if held < quantity:
            logger.warning(
                "Releasing more stock than the order holds",
                product_id=product_id,
                held=held,
                requested=quantity,
                order_id=order_id,
            )
        released = min(held, quantity)
        if not released:
            return

        item.reserved -= released
        self._hold(key, held - released)
        self._record(product_id, MovementType.RELEASE, released, order_id)
        logger.info("Stock reservation released", product_id=product_id, quantity=released, order_id=order_id)

    async def commit(self, product_id: str, quantity: int, order_id: str) -> None:
        await self._simulate("commit", product_id=product_id, quantity=quantity, order_id=order_id)

        item = self._get(product_id)
        key = (order_id, product_id)
        held = self._reservations.get(key, 0)
        if held < quantity:
            raise InsufficientStockError(
                f"Not enough reserved stock to commit for product {product_id}: "
                f"order {order_id} holds {held}, requested {quantity}",
                product_id=product_id,
                reserved=held,
                requested=quantity,
            )

        item.available -= quantity
        item.reserved -= quantity
        self._hold(key, held - quantity)
        self._record(product_id, MovementType.COMMIT, quantity, order_id)
        logger.info("Stock committed", product_id=product_id, quantity=quantity, order_id=order_id)

    # -------------------------------------------------------------------
    # Catalogue management
    # -------------------------------------------------------------------
    async def restock(self, product_id: str, quantity: int, notes: str | None = None) -> None:
        await self._simulate("restock", product_id=product_id, quantity=quantity)

        item = self._get(product_id)
        item.available += quantity
        self._record(product_id, MovementType.RESTOCK, quantity, notes=notes or "Stock entry")

    def add_product(self, item: StockItem) -> None:
        self._stock[item.product_id] = item

    def remove_product(self, product_id: str) -> None:
        self._stock.pop(product_id, None)

    def get_product(self, product_id: str) -> StockItem | None:
        """Return a snapshot of a product's stock levels."""
        item = self._stock.get(product_id)
        return replace(item) if item is not None else None

    def reserved_for(self, order_id: str, product_id: str) -> int:
        """Units of ``product_id`` currently held by ``order_id``."""
        return self._reservations.get((order_id, product_id), 0)

    def movements(self, product_id: str | None = None) -> list[StockMovement]:
        if product_id is None:
            return list(self._movements)
        return [m for m in self._movements if m.product_id == product_id]

    def stats(self) -> dict:
        items = list(self._stock.values())
        return {
            "total_products": len(items),
            "total_movements": len(self._movements),
            "low_stock_products": sum(1 for i in items if i.available < LOW_STOCK_THRESHOLD),
            "stock_value": round(sum(i.available * i.unit_price for i in items), 2),
        }

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _get(self, product_id: str) -> StockItem:
        item = self._stock.get(product_id)
        if item is None:
            raise ProductNotFoundError(f"Product {product_id} not found", product_id=product_id)
        return item

    def _hold(self, key: tuple[str, str], quantity: int) -> None:
        if quantity:
            self._reservations[key] = quantity
        else:
            self._reservations.pop(key, None)

    def _record(self, product_id, movement_type, quantity, order_id=None, notes=None):
        self._movements.append(
            StockMovement(
                product_id=product_id,
                movement_type=movement_type,
                quantity=quantity,
                order_id=order_id,
                notes=notes,
            )
        )
        del self._movements[:-MAX_MOVEMENTS]

    async def _simulate(self, method: str, **kwargs) -> None:
        self.calls.append({"method": method, **kwargs})

        if self.latency is not None:
            await asyncio.sleep(random.uniform(*self.latency))

        if self.failure_rate and random.random() < self.failure_rate:
            raise ExternalServiceError(f"Stock service failed during {method}", method=method, **kwargs)
