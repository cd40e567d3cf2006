"""Payment webhook processing: command and handler.

Handles provider callbacks for settled payments. The signature header is
checked at the API edge; by the time the command is processed the payload is
trusted.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from payments.domain import payments
from payments.payment.intent import PaymentIntent, PaymentIntentStatus
from payments.payment.settlement import PaymentSettlement

logger = structlog.get_logger(__name__)


@payments.command(part_of="PaymentIntent")
class ProcessPaymentWebhook:
    """Process a provider webhook callback."""

    payment_id = Identifier()
    provider_reference = String(max_length=255)
    status = String(required=True, max_length=20, choices=PaymentIntentStatus)
    failure_reason = String(max_length=500)


@payments.command_handler(part_of=PaymentIntent)
class ProcessWebhookHandler:
    @handle(ProcessPaymentWebhook)
    def process_webhook(self, command):
        repo = current_domain.repository_for(PaymentIntent)

        if command.payment_id:
            intent = repo.get(str(command.payment_id))
        elif command.provider_reference:
            matches = repo._dao.query.filter(provider_reference=command.provider_reference).all().items
            if not matches:
                raise ObjectNotFoundError(f"No payment for provider reference {command.provider_reference}")
            intent = matches[0]
        else:
            raise ValidationError({"payment_id": ["payment_id or provider_reference is required"]})

        logger.info("Payment webhook received", payment_id=str(intent.id), status=command.status)
        return PaymentSettlement().apply_provider_status(
            intent,
            PaymentIntentStatus(command.status),
            failure_reason=command.failure_reason,
        )
