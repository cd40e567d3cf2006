"""Payment status check: command and handler.

Answers "what is the status of payment P" for the client's reconciliation
poller. A pending intent is refreshed from the provider first, which may
settle it, so the check is processed as a command. A paid intent reports its
order reference once order creation has finished.
"""

from dataclasses import dataclass

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from payments.domain import payments
from payments.payment.intent import PaymentIntent, PaymentIntentStatus
from payments.payment.settlement import PaymentSettlement
from payments.provider import get_provider
from payments.provider.port import ProviderError

logger = structlog.get_logger(__name__)


@payments.command(part_of="PaymentIntent")
class CheckPaymentStatus:
    """Report a payment's status, refreshing it from the provider while pending."""

    payment_id = Identifier(required=True)


@dataclass(frozen=True)
class PaymentStatusResult:
    success: bool
    status: str
    order_id: str | None = None
    order_number: str | None = None


@payments.command_handler(part_of=PaymentIntent)
class CheckPaymentStatusHandler:
    @handle(CheckPaymentStatus)
    def check_payment_status(self, command):
        payment_id = str(command.payment_id)
        intent = current_domain.repository_for(PaymentIntent).get(payment_id)

        if intent.current_status == PaymentIntentStatus.PENDING and intent.provider_reference:
            try:
                provider_status = get_provider().fetch_status(intent.provider_reference)
            except ProviderError as exc:
                logger.warning("Could not refresh payment status", payment_id=payment_id, error=str(exc))
                return PaymentStatusResult(success=False, status=intent.status)
            PaymentSettlement().apply_provider_status(intent, PaymentIntentStatus(provider_status))

        if intent.awaiting_order:
            # Paid, order still being written by a concurrent settlement
            return PaymentStatusResult(success=True, status=PaymentIntentStatus.PENDING.value)

        return PaymentStatusResult(
            success=True,
            status=intent.status,
            order_id=str(intent.order_id) if intent.order_id else None,
            order_number=intent.order_number,
        )
