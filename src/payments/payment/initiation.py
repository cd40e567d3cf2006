"""Payment initiation: command and handler.

Creates a PaymentIntent for a mobile-money checkout and opens a session with
the provider. The order draft travels with the intent; the order itself is
created only once the provider reports the payment as paid.
"""

from dataclasses import dataclass

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Integer, String, Text
from protean.utils.globals import current_domain
from pydantic import ValidationError as DraftValidationError

from ordering.order.creation import CreateOrder
from ordering.order.order import PaymentMethod
from payments.domain import payments
from payments.payment.intent import PaymentIntent, PaymentIntentStatus
from payments.payment.settlement import PaymentSettlement
from payments.provider import get_provider
from payments.provider.port import ProviderError
from shared.phone import normalize_phone

logger = structlog.get_logger(__name__)


@payments.command(part_of="PaymentIntent")
class InitiatePayment:
    """Initiate a mobile-money payment for an order draft."""

    amount = Integer(required=True, min_value=1)
    method = String(required=True, max_length=20, choices=PaymentMethod)
    customer_phone = String(required=True, max_length=30)
    order_draft = Text(required=True)  # JSON of the CreateOrder draft


@dataclass(frozen=True)
class InstantOrder:
    order_id: str
    order_number: str


@dataclass(frozen=True)
class PaymentInitiationResult:
    success: bool
    payment_id: str | None = None
    redirect_url: str | None = None
    instant_order: InstantOrder | None = None
    error: str | None = None


@payments.command_handler(part_of=PaymentIntent)
class InitiatePaymentHandler:
    @handle(InitiatePayment)
    def initiate_payment(self, command):
        provider = get_provider()
        repo = current_domain.repository_for(PaymentIntent)

        try:
            intent = _build_intent(command)
        except ValidationError as exc:
            logger.warning("Rejected payment initiation", errors=exc.messages)
            return PaymentInitiationResult(success=False, error=_first_message(exc))

        payment_id = str(intent.id)
        try:
            session = provider.create_payment_session(
                amount=intent.amount,
                method=intent.method,
                customer_phone=intent.customer_phone,
                idempotency_key=payment_id,
            )
        except ProviderError as exc:
            logger.warning("Provider unavailable for payment initiation", payment_id=payment_id, error=str(exc))
            return PaymentInitiationResult(success=False, error="Payment provider unavailable, please try again")

        if not session.success:
            intent.apply_status(PaymentIntentStatus.FAILED, failure_reason=session.failure_reason)
            repo.add(intent)
            logger.info("Provider refused payment session", payment_id=payment_id, reason=session.failure_reason)
            return PaymentInitiationResult(success=False, error=session.failure_reason or "Payment refused")

        intent.provider_reference = session.provider_reference
        intent.redirect_url = session.redirect_url
        repo.add(intent)
        logger.info(
            "Payment initiated",
            payment_id=payment_id,
            method=intent.method,
            amount=intent.amount,
            settled=session.settled,
        )

        if session.settled:
            PaymentSettlement().apply_provider_status(intent, PaymentIntentStatus.PAID)
            if intent.order_id is not None:
                return PaymentInitiationResult(
                    success=True,
                    payment_id=payment_id,
                    instant_order=InstantOrder(order_id=str(intent.order_id), order_number=intent.order_number),
                )

        return PaymentInitiationResult(success=True, payment_id=payment_id, redirect_url=intent.redirect_url)


def _build_intent(command: InitiatePayment) -> PaymentIntent:
    method = PaymentMethod(command.method)
    if not method.is_mobile_money:
        raise ValidationError({"method": ["Cash orders do not go through payment"]})

    try:
        phone = normalize_phone(command.customer_phone)
    except ValueError:
        raise ValidationError({"customer_phone": ["Invalid phone number"]}) from None

    try:
        draft = CreateOrder.model_validate_json(command.order_draft)
    except DraftValidationError:
        raise ValidationError({"order_draft": ["Invalid order draft"]}) from None

    if command.amount != draft.total:
        raise ValidationError({"amount": ["Amount must equal the order total"]})

    draft = draft.model_copy(update={"payment_method": method, "payment_id": None})
    return PaymentIntent.create(amount=command.amount, method=method, customer_phone=phone, draft=draft)


def _first_message(exc: ValidationError) -> str:
    for messages in exc.messages.values():
        if messages:
            return messages[0]
    return "Invalid payment request"
