"""Configurable fake payment gateway for development and testing.

Approves or declines every charge according to its configuration, and can
be told to fail outright to simulate an unreachable provider.
"""

import asyncio
from uuid import uuid4

import structlog

from ordering.errors import ExternalServiceError
from ordering.payment.port import PaymentGateway

logger = structlog.get_logger(__name__)


class FakePaymentGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, latency: float = 0.0) -> None:
        self.latency = latency
        self.should_succeed: bool = True
        self.should_error: bool = False
        self.failure_reason: str = "Card declined"
        self.calls: list[dict] = []
        self.charges: dict[str, dict] = {}

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Card declined",
        should_error: bool = False,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.should_error = should_error

    async def process_payment(self, order_id: str, amount: float, method: str) -> bool:
        self.calls.append({"method": "process_payment", "order_id": order_id, "amount": amount, "payment_method": method})
        await self._simulate("process_payment")

        if not self.should_succeed:
            logger.info("Payment declined", order_id=order_id, reason=self.failure_reason)
            return False

        self.charges[order_id] = {
            "transaction_id": f"fake_txn_{uuid4().hex[:12]}",
            "amount": amount,
            "method": method,
        }
        logger.info("Payment approved", order_id=order_id, amount=amount, payment_method=method)
        return True

    async def refund_payment(self, order_id: str) -> None:
        self.calls.append({"method": "refund_payment", "order_id": order_id})
        await self._simulate("refund_payment")

        charge = self.charges.pop(order_id, None)
        logger.info("Payment refunded", order_id=order_id, refunded=charge is not None)

    async def _simulate(self, method: str) -> None:
        if self.latency:
            await asyncio.sleep(self.latency)
        if self.should_error:
            raise ExternalServiceError(f"Payment gateway unavailable during {method}", method=method)
