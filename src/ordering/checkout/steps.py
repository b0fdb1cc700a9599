"""Built-in fulfillment saga steps.

Each step pairs an action with its compensation:

    confirm-order      Pending -> Confirmed        cancel while still Confirmed
    verify-stock       check every item in stock   none (nothing was reserved)
    process-payment    charge the order total      refund the order
    reserve-stock      reserve every item          release each item's quantity
    start-preparation  Confirmed -> Preparing      cancel while still Preparing
    prepare-shipment   Preparing -> Ready,         discard the tracking code
                       issue a tracking code
    ship-order         commit stock, -> Shipped    none (a shipped order stays shipped)
"""

from uuid import uuid4

import structlog

from ordering.checkout.context import SagaContext, SagaStep
from ordering.errors import InsufficientStockError, PaymentRejectedError
from ordering.inventory.port import StockService
from ordering.order.state_machine import OrderStateMachine
from ordering.order.status import OrderStatus
from ordering.payment.port import PaymentGateway

logger = structlog.get_logger(__name__)

DEFAULT_PAYMENT_METHOD = "card"


def _generate_tracking_code() -> str:
    return f"TRK-{uuid4().hex[:10].upper()}"


def default_steps(
    stock: StockService,
    payments: PaymentGateway,
    state_machine: OrderStateMachine,
) -> list[SagaStep]:
    """Build the fulfillment steps bound to the given collaborators."""

    # ---------------------------------------------------------------
    # confirm-order
    # ---------------------------------------------------------------
    async def confirm_order(context: SagaContext) -> None:
        state_machine.execute_transition(context.order, OrderStatus.CONFIRMED)
        logger.info("Order confirmed", order_id=str(context.order.id))

    async def cancel_confirmed_order(context: SagaContext) -> None:
        if context.order.current_status == OrderStatus.CONFIRMED:
            state_machine.execute_transition(context.order, OrderStatus.CANCELED)
            logger.info("Compensation: order canceled", order_id=str(context.order.id))

    # ---------------------------------------------------------------
    # verify-stock
    # ---------------------------------------------------------------
    async def verify_stock(context: SagaContext) -> None:
        for item in context.order.items:
            if not await stock.check_availability(str(item.product_id), item.quantity):
                raise InsufficientStockError(
                    f"Insufficient stock for product {item.product_name}",
                    product_id=str(item.product_id),
                    requested=item.quantity,
                )
        logger.info("Stock verified", order_id=str(context.order.id))

    async def keep_verified(context: SagaContext) -> None:
        logger.info("Compensation: stock check has nothing to undo", order_id=str(context.order.id))

    # ---------------------------------------------------------------
    # process-payment
    # ---------------------------------------------------------------
    async def process_payment(context: SagaContext) -> None:
        order_id = str(context.order.id)
        total = context.order.total()
        method = context.parameters.get("payment_method") or DEFAULT_PAYMENT_METHOD

        approved = await payments.process_payment(order_id, total.amount, method)
        if not approved:
            raise PaymentRejectedError("Payment was rejected", order_id=order_id, amount=total.amount)
        logger.info("Payment processed", order_id=order_id, amount=total.amount, payment_method=method)

    async def refund_payment(context: SagaContext) -> None:
        await payments.refund_payment(str(context.order.id))
        logger.info("Compensation: payment refunded", order_id=str(context.order.id))

    # ---------------------------------------------------------------
    # reserve-stock
    # ---------------------------------------------------------------
    async def reserve_stock(context: SagaContext) -> None:
        order_id = str(context.order.id)
        for item in context.order.items:
            await stock.reserve(str(item.product_id), item.quantity, order_id)
        logger.info("Stock reserved", order_id=order_id)

    async def release_stock(context: SagaContext) -> None:
        order_id = str(context.order.id)
        for item in context.order.items:
            await stock.release(str(item.product_id), item.quantity, order_id)
        logger.info("Compensation: stock released", order_id=order_id)

    # ---------------------------------------------------------------
    # start-preparation
    # ---------------------------------------------------------------
    async def start_preparation(context: SagaContext) -> None:
        state_machine.execute_transition(context.order, OrderStatus.PREPARING)
        logger.info("Preparation started", order_id=str(context.order.id))

    async def cancel_preparation(context: SagaContext) -> None:
        if context.order.current_status == OrderStatus.PREPARING:
            state_machine.execute_transition(context.order, OrderStatus.CANCELED)
            logger.info("Compensation: preparation canceled", order_id=str(context.order.id))

    # ---------------------------------------------------------------
    # prepare-shipment
    # ---------------------------------------------------------------
    async def prepare_shipment(context: SagaContext) -> None:
        state_machine.execute_transition(context.order, OrderStatus.READY)
        tracking_code = _generate_tracking_code()
        context.parameters["tracking_code"] = tracking_code
        logger.info("Shipment prepared", order_id=str(context.order.id), tracking_code=tracking_code)

    async def discard_shipment(context: SagaContext) -> None:
        tracking_code = context.parameters.pop("tracking_code", None)
        logger.warning(
            "Compensation: tracking code discarded, order stays in its current status",
            order_id=str(context.order.id),
            tracking_code=tracking_code,
            status=context.order.status,
        )

    # ---------------------------------------------------------------
    # ship-order
    # ---------------------------------------------------------------
    async def ship_order(context: SagaContext) -> None:
        order_id = str(context.order.id)
        for item in context.order.items:
            await stock.commit(str(item.product_id), item.quantity, order_id)
        state_machine.execute_transition(context.order, OrderStatus.SHIPPED)
        logger.info("Order shipped", order_id=order_id, tracking_code=context.parameters["tracking_code"])

    async def keep_shipped(context: SagaContext) -> None:
        logger.warning("Compensation: shipped order cannot be recalled", order_id=str(context.order.id))

    def has_tracking_code(context: SagaContext) -> bool:
        return bool(context.parameters.get("tracking_code"))

    return [
        SagaStep("confirm-order", "Confirm order", confirm_order, cancel_confirmed_order),
        SagaStep("verify-stock", "Verify stock", verify_stock, keep_verified),
        SagaStep("process-payment", "Process payment", process_payment, refund_payment),
        SagaStep("reserve-stock", "Reserve stock", reserve_stock, release_stock),
        SagaStep("start-preparation", "Start preparation", start_preparation, cancel_preparation),
        SagaStep("prepare-shipment", "Prepare shipment", prepare_shipment, discard_shipment),
        SagaStep("ship-order", "Ship order", ship_order, keep_shipped, can_execute=has_tracking_code),
    ]
