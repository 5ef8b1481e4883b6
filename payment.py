"""
Payment Terminal (Simulated)
============================
Walks a fixed sequence of status messages, each held for a fixed delay,
then reports success. There is no decline path: every payment succeeds.

The terminal is injected into the checkout session, so the delay can be
shortened (tests use 0) without touching the checkout flow.
"""

import asyncio
import logging
import time
import uuid
from typing import Callable, Optional, Tuple
from dataclasses import dataclass
from enum import Enum

from prometheus_client import Histogram


logger = logging.getLogger(__name__)


PROCESSING_STEPS: Tuple[str, ...] = (
    "Connecting...",
    "Authenticating...",
    "Verifying...",
    "Finalizing...",
)

DEFAULT_STEP_DELAY_SECONDS = 0.8


payment_duration = Histogram(
    'payment_processing_seconds',
    'Simulated payment processing duration',
    ['method']
)


class PaymentMethod(Enum):
    CASH = "CASH"
    CARD = "CARD"
    QRIS = "QRIS"


@dataclass(frozen=True)
class PaymentResult:
    reference: str
    method: PaymentMethod
    amount: int
    status: str = "succeeded"


class SimulatedPaymentTerminal:
    """Deterministic payment terminal."""

    def __init__(
        self,
        step_delay: float = DEFAULT_STEP_DELAY_SECONDS,
        steps: Tuple[str, ...] = PROCESSING_STEPS
    ):
        if step_delay < 0:
            raise ValueError(f"step_delay must not be negative: {step_delay}")

        self.step_delay = step_delay
        self.steps = steps

    async def process(
        self,
        method: PaymentMethod,
        amount: int,
        on_status: Optional[Callable[[str], None]] = None
    ) -> PaymentResult:
        """
        Run the status sequence strictly in order.

        Args:
            method: Payment method chosen by the cashier
            amount: Amount charged (currency units)
            on_status: Called with each status message as it starts

        Returns:
            PaymentResult (always succeeded)
        """
        start_time = time.time()

        for status in self.steps:
            if on_status:
                on_status(status)
            logger.debug(f"Payment {method.value}: {status}")
            await asyncio.sleep(self.step_delay)

        result = PaymentResult(
            reference=f"pay_{uuid.uuid4().hex[:8]}",
            method=method,
            amount=amount
        )

        duration = time.time() - start_time
        payment_duration.labels(method=method.value).observe(duration)

        logger.info(
            f"Payment {result.reference} succeeded: {method.value} {amount} "
            f"in {duration:.3f}s"
        )

        return result
