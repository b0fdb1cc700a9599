"""Order state machine: guarded transitions, path finding and auto-advance.

Edges mirror ``ordering.order.status.TRANSITIONS``. Each edge may carry a
guard (a predicate on the order) and before/after hooks. The aggregate
still enforces the raw transition table; the state machine layers the
business guards and hooks on top of it.
"""

import inspect
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import structlog

from ordering.errors import InvalidTransitionError, TransitionFailedError, UnreachableTargetError
from ordering.order.order import Order
from ordering.order.status import CANCELLABLE_STATUSES, TERMINAL_STATUSES, OrderStatus, to_status

logger = structlog.get_logger(__name__)

Guard = Callable[[Order], bool]
Hook = Callable[[Order], None]
TransitionCallback = Callable[[OrderStatus, OrderStatus], Awaitable[None] | None]


@dataclass(frozen=True)
class Transition:
    source: OrderStatus
    target: OrderStatus
    guard: Guard | None = None
    before: Hook | None = None
    after: Hook | None = None


@dataclass(frozen=True)
class FlowReport:
    """Snapshot of where an order can go next and what blocks it."""

    valid: bool
    next_statuses: list[OrderStatus] = field(default_factory=list)
    blockers: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Default guards and hooks
# ---------------------------------------------------------------------------
def _has_items_and_value(order: Order) -> bool:
    return not order.is_empty() and not order.total().is_zero()


def _has_items(order: Order) -> bool:
    return not order.is_empty()


def _log_preparation_started(order: Order) -> None:
    logger.info("Order preparation started", order_id=str(order.id))


def _log_ready(order: Order) -> None:
    logger.info("Order ready for shipment", order_id=str(order.id))


def _log_canceled_in_preparation(order: Order) -> None:
    logger.info("Order canceled during preparation", order_id=str(order.id))


def _log_shipping(order: Order) -> None:
    logger.info("Generating shipment for order", order_id=str(order.id))


def _log_delivered(order: Order) -> None:
    logger.info("Order delivered", order_id=str(order.id))


def default_transitions() -> list[Transition]:
    return [
        Transition(OrderStatus.PENDING, OrderStatus.CONFIRMED, guard=_has_items_and_value),
        Transition(OrderStatus.PENDING, OrderStatus.CANCELED),
        Transition(OrderStatus.CONFIRMED, OrderStatus.PREPARING, guard=_has_items, before=_log_preparation_started),
        Transition(OrderStatus.CONFIRMED, OrderStatus.CANCELED),
        Transition(OrderStatus.PREPARING, OrderStatus.READY, after=_log_ready),
        Transition(OrderStatus.PREPARING, OrderStatus.CANCELED, after=_log_canceled_in_preparation),
        Transition(OrderStatus.READY, OrderStatus.SHIPPED, before=_log_shipping),
        Transition(OrderStatus.SHIPPED, OrderStatus.DELIVERED, after=_log_delivered),
    ]


class OrderStateMachine:
    def __init__(self, transitions: list[Transition] | None = None):
        self._transitions: dict[OrderStatus, list[Transition]] = {status: [] for status in OrderStatus}
        for transition in default_transitions() if transitions is None else transitions:
            self.add_transition(transition)

    def add_transition(self, transition: Transition) -> None:
        edges = self._transitions[transition.source]
        edges[:] = [t for t in edges if t.target != transition.target]
        edges.append(transition)

    def _edge(self, source: OrderStatus, target: OrderStatus) -> Transition | None:
        return next((t for t in self._transitions[source] if t.target == target), None)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def can_transition(self, order: Order, target: OrderStatus) -> bool:
        transition = self._edge(order.current_status, to_status(target))
        if transition is None:
            return False
        if transition.guard is not None:
            return bool(transition.guard(order))
        return True

    def available_transitions(self, order: Order) -> list[OrderStatus]:
        """Targets reachable in one hop whose guards currently pass.

        A guard that raises counts as "not available".
        """
        available = []
        for transition in self._transitions[order.current_status]:
            if transition.guard is not None:
                try:
                    allowed = transition.guard(order)
                except Exception:
                    logger.debug(
                        "Guard raised while listing transitions",
                        order_id=str(order.id),
                        target=transition.target.value,
                        exc_info=True,
                    )
                    allowed = False
                if not allowed:
                    continue
            available.append(transition.target)
        return available

    def find_path(self, source: OrderStatus, target: OrderStatus) -> list[OrderStatus]:
        """Shortest sequence of statuses leading from ``source`` to ``target``.

        Guards are not evaluated. The source itself is not part of the path;
        an unreachable target (or ``source == target``) yields ``[]``.
        """
        source, target = to_status(source), to_status(target)
        visited = {source}
        queue = deque([(source, [])])

        while queue:
            status, path = queue.popleft()
            if status == target:
                return path
            for transition in self._transitions[status]:
                if transition.target not in visited:
                    visited.add(transition.target)
                    queue.append((transition.target, [*path, transition.target]))

        return []

    def validate_flow(self, order: Order) -> FlowReport:
        blockers = []
        if order.is_empty():
            blockers.append("Order has no items")
        if order.total().is_zero():
            blockers.append("Order total is zero")
        if self.is_final_status(order.current_status):
            blockers.append("Order is already in a final status")

        return FlowReport(
            valid=not blockers,
            next_statuses=self.available_transitions(order),
            blockers=blockers,
        )

    # -------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------
    def execute_transition(self, order: Order, target: OrderStatus) -> None:
        source, target = order.current_status, to_status(target)
        transition = self._edge(source, target)
        if transition is None:
            raise InvalidTransitionError(
                f"Invalid transition from {source.value} to {target.value} for order {order.id}"
            )

        if transition.guard is not None and not transition.guard(order):
            if source == OrderStatus.PENDING and target == OrderStatus.CONFIRMED and order.is_empty():
                raise InvalidTransitionError("Cannot confirm an empty order")
            raise InvalidTransitionError(
                f"Invalid transition from {source.value} to {target.value} for order {order.id}"
            )

        try:
            if transition.before is not None:
                transition.before(order)
            order.change_status(target)
            if transition.after is not None:
                transition.after(order)
        except Exception as exc:
            raise TransitionFailedError(
                f"Failed to execute transition from {source.value} to {target.value}: {exc}"
            ) from exc

        logger.info(
            "Order status changed",
            order_id=str(order.id),
            from_status=source.value,
            to_status=target.value,
        )

    async def run_auto_advance(
        self,
        order: Order,
        target: OrderStatus,
        on_transition: TransitionCallback | None = None,
    ) -> list[OrderStatus]:
        """Walk the shortest path to ``target``, executing each hop in turn.

        ``on_transition(from_status, to_status)`` runs before every hop and
        may be a coroutine function. Guards are checked hop by hop, so a
        guard failure surfaces part way through the walk. Returns the hops
        taken.
        """
        target = to_status(target)
        if order.current_status == target:
            return []

        path = self.find_path(order.current_status, target)
        if not path:
            raise UnreachableTargetError(f"Cannot reach {target.value} from {order.status}")

        for next_status in path:
            if on_transition is not None:
                result = on_transition(order.current_status, next_status)
                if inspect.isawaitable(result):
                    await result
            self.execute_transition(order, next_status)

        return path

    # -------------------------------------------------------------------
    # Status helpers
    # -------------------------------------------------------------------
    @staticmethod
    def is_final_status(status: OrderStatus) -> bool:
        return to_status(status) in TERMINAL_STATUSES

    @staticmethod
    def is_cancellable_status(status: OrderStatus) -> bool:
        return to_status(status) in CANCELLABLE_STATUSES

    @staticmethod
    def all_statuses() -> list[OrderStatus]:
        return list(OrderStatus)
