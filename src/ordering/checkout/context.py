"""Saga building blocks: step descriptors, the per-run context and state snapshots."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from ordering.order.order import Order


@dataclass
class SagaContext:
    """Mutable state shared by the steps of one saga run.

    ``executed_steps`` only ever grows: compensation walks it backwards but
    never removes entries.
    """

    order: Order
    parameters: dict[str, Any] = field(default_factory=dict)
    executed_steps: list[str] = field(default_factory=list)
    events: list = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)


StepAction = Callable[[SagaContext], Awaitable[None]]


@dataclass(frozen=True)
class SagaStep:
    id: str
    name: str
    execute: StepAction
    compensate: StepAction
    can_execute: Callable[[SagaContext], bool] | None = None


@dataclass(frozen=True)
class SagaState:
    executed_steps: list[str]
    available_steps: list[str]
    errors: list[Exception]

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)
