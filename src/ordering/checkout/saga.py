"""Order fulfillment saga: runs ordered steps against one order and compensates on failure.

Steps run strictly in sequence. When one raises, every step already executed
in the run is compensated in reverse order, best effort: a compensation that
raises is recorded in ``context.errors`` and the rollback carries on. The
original error is always what the caller sees. Nothing is retried.

Named sagas:
    order-processing   confirm-order, verify-stock, process-payment, reserve-stock
    order-shipping     start-preparation, prepare-shipment, ship-order
    full-fulfillment   all of the above, in that order
"""

import structlog

from ordering.checkout.context import SagaContext, SagaState, SagaStep
from ordering.checkout.steps import default_steps
from ordering.errors import SagaNotFoundError, StepNotExecutableError, StepNotFoundError
from ordering.inventory import get_stock_service
from ordering.inventory.port import StockService
from ordering.order.order import Order
from ordering.order.state_machine import OrderStateMachine
from ordering.payment import get_payment_gateway
from ordering.payment.port import PaymentGateway

logger = structlog.get_logger(__name__)

ORDER_PROCESSING = ("confirm-order", "verify-stock", "process-payment", "reserve-stock")
ORDER_SHIPPING = ("start-preparation", "prepare-shipment", "ship-order")

SAGAS = {
    "order-processing": ORDER_PROCESSING,
    "order-shipping": ORDER_SHIPPING,
    "full-fulfillment": ORDER_PROCESSING + ORDER_SHIPPING,
}


class SagaOrchestrator:
    def __init__(
        self,
        stock: StockService | None = None,
        payments: PaymentGateway | None = None,
        state_machine: OrderStateMachine | None = None,
    ):
        self.stock = stock if stock is not None else get_stock_service()
        self.payments = payments if payments is not None else get_payment_gateway()
        self.state_machine = state_machine if state_machine is not None else OrderStateMachine()

        self._steps: dict[str, SagaStep] = {}
        self._sagas: dict[str, tuple[str, ...]] = dict(SAGAS)
        for step in default_steps(self.stock, self.payments, self.state_machine):
            self.add_step(step)

    # -------------------------------------------------------------------
    # Registry
    # -------------------------------------------------------------------
    def add_step(self, step: SagaStep) -> None:
        """Register a step, replacing any step with the same id."""
        self._steps[step.id] = step

    def list_steps(self) -> list[str]:
        return list(self._steps)

    def register_saga(self, name: str, step_ids) -> None:
        self._sagas[name] = tuple(step_ids)

    def can_run_step(self, step_id: str, context: SagaContext) -> bool:
        step = self._steps.get(step_id)
        if step is None:
            return False
        if step.can_execute is not None:
            return bool(step.can_execute(context))
        return True

    def next_steps(self, context: SagaContext) -> list[str]:
        """Registered steps not yet executed whose preconditions hold."""
        return [
            step_id
            for step_id in self._steps
            if step_id not in context.executed_steps and self.can_run_step(step_id, context)
        ]

    def state(self, context: SagaContext) -> SagaState:
        return SagaState(
            executed_steps=list(context.executed_steps),
            available_steps=self.next_steps(context),
            errors=list(context.errors),
        )

    # -------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------
    async def run_step(self, step_id: str, context: SagaContext) -> None:
        step = self._steps.get(step_id)
        if step is None:
            raise StepNotFoundError(f"Step not found: {step_id}")

        if step.can_execute is not None and not step.can_execute(context):
            raise StepNotExecutableError(f"Step {step_id} cannot be executed in the current context")

        order_id = str(context.order.id)
        events_before = len(context.order.domain_events)
        logger.info("Running saga step", step_id=step_id, order_id=order_id)

        try:
            await step.execute(context)
        except Exception as exc:
            logger.error("Saga step failed", step_id=step_id, order_id=order_id, error=str(exc))
            context.errors.append(exc)
            raise

        context.executed_steps.append(step_id)
        context.events.extend(context.order.domain_events[events_before:])

    async def execute(self, context: SagaContext, step_ids) -> SagaContext:
        """Run ``step_ids`` in order, rolling back executed steps on the first failure."""
        step_ids = list(step_ids)
        order_id = str(context.order.id)
        logger.info("Saga started", order_id=order_id, steps=step_ids)

        try:
            for step_id in step_ids:
                await self.run_step(step_id, context)
        except Exception as exc:
            if exc not in context.errors:
                context.errors.append(exc)
            logger.warning("Saga failed, compensating", order_id=order_id, error=str(exc))
            await self._compensate_steps(context, list(reversed(context.executed_steps)))
            raise

        logger.info("Saga completed", order_id=order_id)
        return context

    async def run_steps(self, order: Order, step_ids, parameters: dict | None = None) -> SagaContext:
        context = SagaContext(order=order, parameters=dict(parameters or {}))
        return await self.execute(context, step_ids)

    async def run_saga(self, name: str, order: Order, parameters: dict | None = None) -> SagaContext:
        step_ids = self._sagas.get(name)
        if step_ids is None:
            raise SagaNotFoundError(f"Saga not found: {name}")
        return await self.run_steps(order, step_ids, parameters)

    # -------------------------------------------------------------------
    # Compensation
    # -------------------------------------------------------------------
    async def rollback(self, context: SagaContext) -> None:
        """Compensate every executed step, most recent first."""
        logger.info("Rolling back saga", order_id=str(context.order.id))
        await self._compensate_steps(context, list(reversed(context.executed_steps)))

    async def compensate(self, context: SagaContext, through_step_id: str | None = None) -> None:
        """Compensate the steps executed after ``through_step_id``.

        ``through_step_id`` itself and everything before it stay in effect.
        With no id every executed step is compensated; an id that is not in
        the executed history compensates nothing.
        """
        executed = context.executed_steps
        if through_step_id is None:
            to_compensate = list(reversed(executed))
        elif through_step_id in executed:
            to_compensate = list(reversed(executed[executed.index(through_step_id) + 1 :]))
        else:
            logger.info(
                "Step not in saga history, nothing to compensate",
                order_id=str(context.order.id),
                step_id=through_step_id,
            )
            to_compensate = []

        await self._compensate_steps(context, to_compensate)

    async def _compensate_steps(self, context: SagaContext, step_ids: list[str]) -> None:
        order_id = str(context.order.id)
        for step_id in step_ids:
            step = self._steps.get(step_id)
            if step is None:
                continue
            try:
                logger.info("Compensating saga step", step_id=step_id, order_id=order_id)
                await step.compensate(context)
            except Exception as exc:
                logger.error("Compensation failed", step_id=step_id, order_id=order_id, error=str(exc))
                context.errors.append(exc)

        logger.info("Compensation finished", order_id=order_id, steps=step_ids)
