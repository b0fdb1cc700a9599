"""Stock service adapter selection.

Provides get_stock_service() / set_stock_service() to swap implementations.
Uses FakeStockService by default; configure via the STOCK_ADAPTER
environment variable.
"""

import os

from ordering.inventory.port import StockService

_stock_service: StockService | None = None


def get_stock_service() -> StockService:
    """Return the configured stock service (singleton)."""
    global _stock_service
    if _stock_service is None:
        adapter = os.environ.get("STOCK_ADAPTER", "fake")
        if adapter == "fake":
            from ordering.inventory.fake_adapter import FakeStockService

            _stock_service = FakeStockService()
        else:
            raise ValueError(f"Unknown stock adapter: {adapter}")
    return _stock_service


def set_stock_service(service: StockService) -> None:
    """Override the active stock service (useful for tests)."""
    global _stock_service
    _stock_service = service


def reset_stock_service() -> None:
    global _stock_service
    _stock_service = None
