"""Payment reconciliation poller.

Bridges "payment initiated" and "payment confirmed" when the only signal the
client has is a pull-based status check. One poller runs per in-flight
payment as an ``asyncio.Task``: it checks immediately, then once per
interval, until the payment reaches a terminal status or ``max_polls`` checks
have been made. Transport errors on a single check are logged and retried at
the next interval.

The poller reports exactly one outcome through ``on_outcome``, tagged with
the payment id it was started for. After ``cancel()`` it issues no further
checks and reports nothing.
"""

import asyncio
from collections.abc import Callable

import structlog

from ordering.checkout.collaborators import PaymentService, PaymentStatusReport
from ordering.checkout.state import (
    PaymentEnded,
    PaymentOrphaned,
    PaymentOutcome,
    PaymentSettled,
    PaymentTimedOut,
)
from shared.config import get_settings
from shared.exceptions import CollaboratorUnavailable

logger = structlog.get_logger(__name__)

ENDED_STATUSES = frozenset({"failed", "cancelled", "expired"})


class PaymentReconciliationPoller:
    def __init__(
        self,
        payments: PaymentService,
        payment_id: str,
        on_outcome: Callable[[str, PaymentOutcome], None],
        *,
        interval: float | None = None,
        max_polls: int | None = None,
    ) -> None:
        settings = get_settings()
        self.payments = payments
        self.payment_id = payment_id
        self.on_outcome = on_outcome
        self.interval = settings.payment_poll_interval if interval is None else interval
        self.max_polls = settings.payment_max_polls if max_polls is None else max_polls
        self.polls_made = 0
        self.outcome: PaymentOutcome | None = None
        self._cancelled = False
        self._task: asyncio.Task | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    def start(self) -> asyncio.Task:
        if self._task is not None:
            raise RuntimeError(f"Poller for payment {self.payment_id} already started")
        self._task = asyncio.get_running_loop().create_task(
            self.run(), name=f"payment-reconciliation-{self.payment_id}"
        )
        return self._task

    def cancel(self) -> None:
        """Stop polling. No check is issued and no outcome reported after this call."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.info("Payment polling cancelled", payment_id=self.payment_id, polls_made=self.polls_made)

    async def wait(self) -> PaymentOutcome | None:
        """Wait for the polling task to finish; returns None when it was cancelled."""
        if self._task is None:
            return None
        try:
            return await self._task
        except asyncio.CancelledError:
            if not self._cancelled:
                raise
            return None

    async def run(self) -> PaymentOutcome | None:
        while self.polls_made < self.max_polls:
            if self._cancelled:
                return None

            self.polls_made += 1
            outcome = await self._check()
            if self._cancelled:
                return None
            if outcome is not None:
                return self._report(outcome)

            if self.polls_made < self.max_polls:
                await asyncio.sleep(self.interval)

        logger.warning("Payment polling timed out", payment_id=self.payment_id, polls_made=self.polls_made)
        return self._report(PaymentTimedOut(payment_id=self.payment_id, polls=self.polls_made))

    async def _check(self) -> PaymentOutcome | None:
        """One status check. Any failure counts as a used poll and is retried."""
        try:
            report = await self.payments.check_payment_status(self.payment_id)
            if not report.success:
                logger.warning(
                    "Payment status check unsuccessful, retrying",
                    payment_id=self.payment_id,
                    poll=self.polls_made,
                )
                return None
            return self._interpret(report)
        except CollaboratorUnavailable as exc:
            logger.warning(
                "Payment status check failed, retrying",
                payment_id=self.payment_id,
                poll=self.polls_made,
                error=str(exc),
            )
            return None
        except Exception:
            logger.exception("Payment status check raised, retrying", payment_id=self.payment_id, poll=self.polls_made)
            return None

    def _interpret(self, report: PaymentStatusReport) -> PaymentOutcome | None:
        if report.status == "paid":
            if report.order_id and report.order_number:
                return PaymentSettled(
                    payment_id=self.payment_id,
                    order_id=report.order_id,
                    order_number=report.order_number,
                )
            logger.error(
                "Payment confirmed but no order was created",
                payment_id=self.payment_id,
                poll=self.polls_made,
            )
            return PaymentOrphaned(payment_id=self.payment_id)

        if report.status in ENDED_STATUSES:
            return PaymentEnded(payment_id=self.payment_id, status=report.status)
        return None

    def _report(self, outcome: PaymentOutcome) -> PaymentOutcome:
        self.outcome = outcome
        logger.info(
            "Payment polling finished",
            payment_id=self.payment_id,
            outcome=type(outcome).__name__,
            polls_made=self.polls_made,
        )
        self.on_outcome(self.payment_id, outcome)
        return outcome
