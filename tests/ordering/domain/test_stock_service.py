"""Tests for the fake stock service and the stock service factory."""

import pytest
from ordering.errors import ExternalServiceError, InsufficientStockError, ProductNotFoundError
from ordering.inventory import get_stock_service, reset_stock_service, set_stock_service
from ordering.inventory.fake_adapter import FakeStockService, MovementType, StockItem


class TestAvailability:
    @pytest.mark.asyncio
    async def test_available(self, stock):
        assert await stock.check_availability("prod-1", 100)

    @pytest.mark.asyncio
    async def test_not_enough(self, stock):
        assert not await stock.check_availability("prod-3", 6)

    @pytest.mark.asyncio
    async def test_unknown_or_inactive_product(self, stock):
        assert not await stock.check_availability("nope", 1)
        assert not await stock.check_availability("prod-erro", 1)

    @pytest.mark.asyncio
    async def test_reservations_reduce_availability(self, stock):
        await stock.reserve("prod-3", 4, "order-1")
        assert not await stock.check_availability("prod-3", 2)
        assert await stock.check_availability("prod-3", 1)


class TestReserveReleaseCommit:
    @pytest.mark.asyncio
    async def test_reserve(self, stock):
        await stock.reserve("prod-1", 10, "order-1")
        product = stock.get_product("prod-1")
        assert product.reserved == 10
        assert product.available == 100

    @pytest.mark.asyncio
    async def test_reserve_insufficient(self, stock):
        with pytest.raises(InsufficientStockError) as exc:
            await stock.reserve("prod-3", 6, "order-1")
        assert exc.value.context["product_id"] == "prod-3"

    @pytest.mark.asyncio
    async def test_reserve_inactive(self, stock):
        with pytest.raises(ProductNotFoundError):
            await stock.reserve("prod-erro", 1, "order-1")

    @pytest.mark.asyncio
    async def test_release(self, stock):
        await stock.reserve("prod-1", 10, "order-1")
        await stock.release("prod-1", 4, "order-1")
        assert stock.get_product("prod-1").reserved == 6

    @pytest.mark.asyncio
    async def test_release_more_than_reserved_clamps(self, stock):
        await stock.reserve("prod-1", 2, "order-1")
        await stock.release("prod-1", 5, "order-1")
        assert stock.get_product("prod-1").reserved == 0

    @pytest.mark.asyncio
    async def test_release_only_touches_the_orders_own_reservation(self, stock):
        await stock.reserve("prod-1", 2, "order-a")
        await stock.reserve("prod-1", 3, "order-b")

        await stock.release("prod-1", 3, "order-b")
        await stock.release("prod-1", 3, "order-b")
        await stock.release("prod-1", 2, "order-c")

        assert stock.get_product("prod-1").reserved == 2
        assert stock.reserved_for("order-a", "prod-1") == 2
        assert stock.reserved_for("order-b", "prod-1") == 0
        releases = [m for m in stock.movements("prod-1") if m.movement_type == MovementType.RELEASE]
        assert [m.order_id for m in releases] == ["order-b"]

    @pytest.mark.asyncio
    async def test_release_unknown(self, stock):
        with pytest.raises(ProductNotFoundError):
            await stock.release("nope", 1, "order-1")

    @pytest.mark.asyncio
    async def test_commit(self, stock):
        await stock.reserve("prod-2", 5, "order-1")
        await stock.commit("prod-2", 5, "order-1")
        product = stock.get_product("prod-2")
        assert product.available == 45
        assert product.reserved == 0

    @pytest.mark.asyncio
    async def test_commit_without_reservation(self, stock):
        with pytest.raises(InsufficientStockError):
            await stock.commit("prod-2", 1, "order-1")

    @pytest.mark.asyncio
    async def test_commit_needs_the_orders_own_reservation(self, stock):
        await stock.reserve("prod-2", 5, "order-a")
        with pytest.raises(InsufficientStockError):
            await stock.commit("prod-2", 5, "order-b")
        assert stock.reserved_for("order-a", "prod-2") == 5

    @pytest.mark.asyncio
    async def test_restock(self, stock):
        await stock.restock("prod-3", 10)
        assert stock.get_product("prod-3").available == 15


class TestMovementsAndCatalogue:
    @pytest.mark.asyncio
    async def test_movements_are_logged(self, stock):
        await stock.reserve("prod-1", 3, "order-1")
        await stock.release("prod-1", 3, "order-1")
        await stock.reserve("prod-2", 1, "order-2")

        assert [m.movement_type for m in stock.movements()] == [
            MovementType.RESERVE,
            MovementType.RELEASE,
            MovementType.RESERVE,
        ]
        assert [m.order_id for m in stock.movements("prod-1")] == ["order-1", "order-1"]

    def test_get_product_returns_snapshot(self, stock):
        snapshot = stock.get_product("prod-1")
        snapshot.reserved = 99
        assert stock.get_product("prod-1").reserved == 0

    def test_add_and_remove_product(self, stock):
        stock.add_product(StockItem("prod-9", "New", available=3, unit_price=1.0))
        assert stock.get_product("prod-9").available == 3
        stock.remove_product("prod-9")
        assert stock.get_product("prod-9") is None

    def test_stats(self, stock):
        stats = stock.stats()
        assert stats["total_products"] == 4
        assert stats["low_stock_products"] == 1
        assert stats["stock_value"] == 100 * 50.0 + 50 * 75.0 + 5 * 200.0 + 10 * 100.0

    @pytest.mark.asyncio
    async def test_reset(self, stock):
        await stock.reserve("prod-1", 3, "order-1")
        stock.reset()
        assert stock.get_product("prod-1").reserved == 0
        assert stock.movements() == []

    @pytest.mark.asyncio
    async def test_calls_are_recorded(self, stock):
        await stock.check_availability("prod-1", 1)
        assert stock.calls == [{"method": "check_availability", "product_id": "prod-1", "quantity": 1}]


class TestSimulatedFailures:
    @pytest.mark.asyncio
    async def test_failure_rate_one_always_fails(self):
        stock = FakeStockService(latency=None, failure_rate=1.0)
        with pytest.raises(ExternalServiceError):
            await stock.check_availability("prod-1", 1)

    @pytest.mark.asyncio
    async def test_configure(self, stock):
        stock.configure(latency=(0.0, 0.001), failure_rate=0.0)
        assert await stock.check_availability("prod-1", 1)


class TestFactory:
    def test_default_is_fake(self):
        assert isinstance(get_stock_service(), FakeStockService)
        assert get_stock_service() is get_stock_service()

    def test_set_and_reset(self, stock):
        set_stock_service(stock)
        assert get_stock_service() is stock
        reset_stock_service()
        assert get_stock_service() is not stock

    def test_unknown_adapter(self, monkeypatch):
        monkeypatch.setenv("STOCK_ADAPTER", "warehouse")
        reset_stock_service()
        with pytest.raises(ValueError):
            get_stock_service()
