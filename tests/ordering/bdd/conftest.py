"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from ordering.errors import InvalidTransitionError
from ordering.order.events import (
    ItemAdded,
    ItemQuantityChanged,
    ItemRemoved,
    OrderConfirmed,
    OrderCreated,
    OrderDelivered,
    OrderStatusChanged,
)
from ordering.order.line_item import LineItem
from ordering.order.order import Order
from ordering.order.state_machine import OrderStateMachine
from ordering.order.status import OrderStatus
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

# Map event name strings to classes for dynamic lookup in Then steps
_ORDER_EVENT_CLASSES = {
    "OrderCreated": OrderCreated,
    "ItemAdded": ItemAdded,
    "ItemRemoved": ItemRemoved,
    "ItemQuantityChanged": ItemQuantityChanged,
    "OrderStatusChanged": OrderStatusChanged,
    "OrderConfirmed": OrderConfirmed,
    "OrderDelivered": OrderDelivered,
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def customer_id():
    return "cust-001"


@pytest.fixture()
def machine():
    return OrderStateMachine()


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a pending order", target_fixture="order")
def pending_order(customer_id):
    order = Order.create(customer_id=customer_id)
    order.clear_events()
    return order


@given(
    parsers.cfparse('the order has {quantity:d} units of "{product_id}" at {price:f}'),
    target_fixture="order",
)
def order_with_item(order, quantity, product_id, price):
    order.add_item(
        LineItem.create(
            product_id=product_id,
            product_name=f"Product {product_id}",
            quantity=quantity,
            unit_price=price,
        )
    )
    order.clear_events()
    return order


@given("the order was confirmed", target_fixture="order")
def confirmed_order(order, machine):
    machine.execute_transition(order, OrderStatus.CONFIRMED)
    order.clear_events()
    return order


@given(parsers.cfparse('the order was advanced to "{status}"'), target_fixture="order")
def advanced_order(order, machine, status):
    for step in machine.find_path(order.current_status, OrderStatus(status)):
        machine.execute_transition(order, step)
    order.clear_events()
    return order


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.status == status


@then(parsers.cfparse("the order total is {amount:f}"))
def order_total_is(order, amount):
    assert order.total().amount == amount


@then("the order action fails with a validation error")
def order_action_fails(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then("the order action fails with an invalid transition error")
def order_transition_fails(error):
    assert isinstance(error["exc"], InvalidTransitionError)


@then(parsers.cfparse("an {event_type} order event is raised"))
@then(parsers.cfparse("a {event_type} order event is raised"))
def order_event_raised(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in order.domain_events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in order.domain_events]}"
