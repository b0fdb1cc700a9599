"""Tests for the order state machine: guards, hooks, path finding and auto-advance."""

import pytest
from ordering.errors import InvalidTransitionError, TransitionFailedError, UnreachableTargetError
from ordering.order.line_item import LineItem
from ordering.order.order import Order
from ordering.order.state_machine import OrderStateMachine, Transition
from ordering.order.status import OrderStatus


def _order(with_items=True):
    order = Order.create(customer_id="c1")
    if with_items:
        order.add_item(LineItem.create(product_id="prod-1", product_name="Product A", quantity=2, unit_price=50))
    order.clear_events()
    return order


def _order_at(status):
    order = _order()
    machine = OrderStateMachine()
    for step in machine.find_path(OrderStatus.PENDING, status):
        order.change_status(step)
    order.clear_events()
    return order


@pytest.fixture
def machine():
    return OrderStateMachine()


class TestCanTransition:
    def test_pending_order_with_items_can_be_confirmed(self, machine):
        assert machine.can_transition(_order(), OrderStatus.CONFIRMED)

    def test_empty_order_cannot_be_confirmed(self, machine):
        assert not machine.can_transition(_order(with_items=False), OrderStatus.CONFIRMED)

    def test_empty_order_can_still_be_canceled(self, machine):
        assert machine.can_transition(_order(with_items=False), OrderStatus.CANCELED)

    def test_missing_edge(self, machine):
        assert not machine.can_transition(_order(), OrderStatus.SHIPPED)

    @pytest.mark.parametrize("terminal", [OrderStatus.DELIVERED, OrderStatus.CANCELED])
    def test_terminal_status_allows_nothing(self, machine, terminal):
        order = _order_at(terminal)
        assert machine.available_transitions(order) == []
        for status in OrderStatus:
            assert not machine.can_transition(order, status)


class TestExecuteTransition:
    def test_executes_allowed_transition(self, machine):
        order = _order()
        machine.execute_transition(order, OrderStatus.CONFIRMED)
        assert order.current_status == OrderStatus.CONFIRMED

    def test_empty_order_confirm_has_specific_message(self, machine):
        order = _order(with_items=False)
        with pytest.raises(InvalidTransitionError) as exc:
            machine.execute_transition(order, OrderStatus.CONFIRMED)
        assert exc.value.message == "Cannot confirm an empty order"
        assert order.current_status == OrderStatus.PENDING

    def test_missing_edge_names_source_and_target(self, machine):
        order = _order()
        with pytest.raises(InvalidTransitionError) as exc:
            machine.execute_transition(order, OrderStatus.DELIVERED)
        assert "Pending" in exc.value.message
        assert "Delivered" in exc.value.message

    def test_failed_guard_names_source_and_target(self):
        machine = OrderStateMachine()
        machine.add_transition(Transition(OrderStatus.READY, OrderStatus.SHIPPED, guard=lambda order: False))
        order = _order_at(OrderStatus.READY)
        with pytest.raises(InvalidTransitionError) as exc:
            machine.execute_transition(order, OrderStatus.SHIPPED)
        assert "Ready" in exc.value.message
        assert "Shipped" in exc.value.message

    def test_unknown_target_is_an_invalid_transition(self, machine):
        with pytest.raises(InvalidTransitionError, match="Unknown order status"):
            machine.execute_transition(_order(), "Lost")

    def test_hooks_run_around_the_change(self):
        seen = []
        machine = OrderStateMachine()
        machine.add_transition(
            Transition(
                OrderStatus.PENDING,
                OrderStatus.CANCELED,
                before=lambda order: seen.append(("before", order.current_status)),
                after=lambda order: seen.append(("after", order.current_status)),
            )
        )
        machine.execute_transition(_order(), OrderStatus.CANCELED)
        assert seen == [("before", OrderStatus.PENDING), ("after", OrderStatus.CANCELED)]

    def test_hook_failure_is_wrapped(self):
        def explode(order):
            raise RuntimeError("printer on fire")

        machine = OrderStateMachine()
        machine.add_transition(Transition(OrderStatus.PENDING, OrderStatus.CANCELED, before=explode))
        order = _order()

        with pytest.raises(TransitionFailedError) as exc:
            machine.execute_transition(order, OrderStatus.CANCELED)

        assert "printer on fire" in exc.value.message
        assert isinstance(exc.value.__cause__, RuntimeError)
        assert order.current_status == OrderStatus.PENDING

    def test_guard_errors_propagate(self):
        def broken(order):
            raise RuntimeError("guard broke")

        machine = OrderStateMachine()
        machine.add_transition(Transition(OrderStatus.PENDING, OrderStatus.CANCELED, guard=broken))
        with pytest.raises(RuntimeError):
            machine.execute_transition(_order(), OrderStatus.CANCELED)


class TestAvailableTransitions:
    def test_pending_with_items(self, machine):
        assert set(machine.available_transitions(_order())) == {OrderStatus.CONFIRMED, OrderStatus.CANCELED}

    def test_empty_pending_order(self, machine):
        assert machine.available_transitions(_order(with_items=False)) == [OrderStatus.CANCELED]

    def test_ready_order(self, machine):
        assert machine.available_transitions(_order_at(OrderStatus.READY)) == [OrderStatus.SHIPPED]

    def test_guard_errors_are_swallowed(self):
        def broken(order):
            raise RuntimeError("guard broke")

        machine = OrderStateMachine()
        machine.add_transition(Transition(OrderStatus.PENDING, OrderStatus.CANCELED, guard=broken))
        assert machine.available_transitions(_order()) == [OrderStatus.CONFIRMED]


class TestFindPath:
    def test_pending_to_delivered(self, machine):
        assert machine.find_path(OrderStatus.PENDING, OrderStatus.DELIVERED) == [
            OrderStatus.CONFIRMED,
            OrderStatus.PREPARING,
            OrderStatus.READY,
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
        ]

    def test_shortest_path_to_canceled(self, machine):
        assert machine.find_path(OrderStatus.PENDING, OrderStatus.CANCELED) == [OrderStatus.CANCELED]

    def test_unreachable(self, machine):
        assert machine.find_path(OrderStatus.SHIPPED, OrderStatus.CANCELED) == []
        assert machine.find_path(OrderStatus.DELIVERED, OrderStatus.PENDING) == []

    def test_unknown_status(self, machine):
        with pytest.raises(InvalidTransitionError):
            machine.find_path(OrderStatus.PENDING, "Lost")

    def test_same_status(self, machine):
        assert machine.find_path(OrderStatus.READY, OrderStatus.READY) == []


class TestRunAutoAdvance:
    @pytest.mark.asyncio
    async def test_advances_to_target(self, machine):
        order = _order()
        hops = await machine.run_auto_advance(order, OrderStatus.READY)
        assert hops == [OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY]
        assert order.current_status == OrderStatus.READY

    @pytest.mark.asyncio
    async def test_callback_runs_before_each_hop(self, machine):
        order = _order()
        calls = []

        async def on_transition(from_status, to_status):
            calls.append((from_status, to_status, order.current_status))

        await machine.run_auto_advance(order, OrderStatus.READY, on_transition)

        assert calls == [
            (OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PENDING),
            (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.CONFIRMED),
            (OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.PREPARING),
        ]

    @pytest.mark.asyncio
    async def test_callback_count_matches_hops(self, machine):
        order = _order_at(OrderStatus.CONFIRMED)
        calls = []

        async def on_transition(from_status, to_status):
            calls.append(to_status)

        await machine.run_auto_advance(order, OrderStatus.DELIVERED, on_transition)

        assert len(calls) == 4
        assert order.current_status == OrderStatus.DELIVERED

    @pytest.mark.asyncio
    async def test_sync_callback_is_accepted(self, machine):
        order = _order()
        calls = []
        await machine.run_auto_advance(order, OrderStatus.CONFIRMED, lambda a, b: calls.append(b))
        assert calls == [OrderStatus.CONFIRMED]

    @pytest.mark.asyncio
    async def test_noop_when_already_at_target(self, machine):
        order = _order_at(OrderStatus.PREPARING)
        calls = []

        async def on_transition(from_status, to_status):
            calls.append(to_status)

        assert await machine.run_auto_advance(order, OrderStatus.PREPARING, on_transition) == []
        assert calls == []
        assert order.domain_events == []

    @pytest.mark.asyncio
    async def test_unknown_target(self, machine):
        with pytest.raises(InvalidTransitionError):
            await machine.run_auto_advance(_order(), "Lost")

    @pytest.mark.asyncio
    async def test_unreachable_target(self, machine):
        order = _order_at(OrderStatus.SHIPPED)
        with pytest.raises(UnreachableTargetError) as exc:
            await machine.run_auto_advance(order, OrderStatus.CANCELED)
        assert exc.value.message == "Cannot reach Canceled from Shipped"

    @pytest.mark.asyncio
    async def test_guard_failure_surfaces_mid_walk(self, machine):
        order = _order(with_items=False)
        with pytest.raises(InvalidTransitionError, match="empty order"):
            await machine.run_auto_advance(order, OrderStatus.DELIVERED)
        assert order.current_status == OrderStatus.PENDING


class TestFlowReport:
    def test_valid_order(self, machine):
        report = machine.validate_flow(_order())
        assert report.valid
        assert report.blockers == []
        assert OrderStatus.CONFIRMED in report.next_statuses

    def test_empty_order(self, machine):
        report = machine.validate_flow(_order(with_items=False))
        assert not report.valid
        assert report.blockers == ["Order has no items", "Order total is zero"]

    def test_final_order(self, machine):
        report = machine.validate_flow(_order_at(OrderStatus.DELIVERED))
        assert not report.valid
        assert report.blockers == ["Order is already in a final status"]
        assert report.next_statuses == []


class TestStatusHelpers:
    def test_is_final_status(self):
        assert OrderStateMachine.is_final_status(OrderStatus.DELIVERED)
        assert OrderStateMachine.is_final_status(OrderStatus.CANCELED)
        assert not OrderStateMachine.is_final_status(OrderStatus.SHIPPED)

    def test_is_cancellable_status(self):
        assert OrderStateMachine.is_cancellable_status(OrderStatus.PREPARING)
        assert not OrderStateMachine.is_cancellable_status(OrderStatus.READY)

    def test_all_statuses(self):
        assert len(OrderStateMachine.all_statuses()) == 7
