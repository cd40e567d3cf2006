"""PaymentIntent aggregate: one attempted mobile-money charge for a checkout.

State Machine:
    PENDING → PAID | FAILED | CANCELLED | EXPIRED

Terminal statuses never change again; late or duplicate provider signals are
ignored. Once PAID, the intent also tracks the outcome of order creation:
``order_id``/``order_number`` when the order exists, ``order_error`` when it
could not be created (a paid order without an order is an operational alert).
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text

from ordering.order.creation import CreateOrder
from ordering.order.order import PaymentMethod
from payments.domain import payments
from payments.payment.events import (
    PaymentInitiated,
    PaymentOrderFailed,
    PaymentOrderRecorded,
    PaymentStatusChanged,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class PaymentIntentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentIntentStatus.PENDING


def _now() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@payments.aggregate
class PaymentIntent:
    amount = Integer(required=True, min_value=1)  # FCFA
    method = String(required=True, max_length=20, choices=PaymentMethod)
    customer_phone = String(required=True, max_length=20)
    order_draft = Text(required=True)  # JSON of the CreateOrder draft
    status = String(
        max_length=20,
        choices=PaymentIntentStatus,
        default=PaymentIntentStatus.PENDING.value,
    )
    provider_reference = String(max_length=255)
    redirect_url = String(max_length=1024)
    failure_reason = String(max_length=500)
    order_id = Identifier()
    order_number = String(max_length=50)
    order_error = String(max_length=1000)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, amount: int, method: PaymentMethod, customer_phone: str, draft: CreateOrder) -> "PaymentIntent":
        now = _now()
        intent = cls(
            amount=amount,
            method=method.value,
            customer_phone=customer_phone,
            order_draft=draft.model_dump_json(),
            created_at=now,
            updated_at=now,
        )
        intent.raise_(
            PaymentInitiated(
                payment_id=str(intent.id),
                amount=amount,
                method=method.value,
                customer_phone=customer_phone,
                initiated_at=now,
            )
        )
        return intent

    @invariant.post
    def mobile_money_only(self):
        if not PaymentMethod(self.method).is_mobile_money:
            raise ValidationError({"method": ["Payment intents are only created for mobile money"]})

    @invariant.post
    def amount_matches_draft(self):
        if self.amount != self.draft.total:
            raise ValidationError({"amount": ["Amount must equal the order total"]})

    @invariant.post
    def order_only_when_paid(self):
        if self.order_id is not None and self.status != PaymentIntentStatus.PAID.value:
            raise ValidationError({"order_id": ["Only a paid intent can carry an order"]})

    @property
    def draft(self) -> CreateOrder:
        return CreateOrder.model_validate_json(self.order_draft)

    @property
    def current_status(self) -> PaymentIntentStatus:
        return PaymentIntentStatus(self.status)

    @property
    def awaiting_order(self) -> bool:
        """Paid, and order creation has neither succeeded nor failed yet."""
        return self.status == PaymentIntentStatus.PAID.value and self.order_id is None and self.order_error is None

    def apply_status(self, status: PaymentIntentStatus, failure_reason: str | None = None) -> bool:
        """Move to ``status``. Returns False when the signal changes nothing."""
        previous = self.current_status
        if status == previous or previous.is_terminal:
            return False

        self.status = status.value
        if failure_reason:
            self.failure_reason = failure_reason
        self.updated_at = _now()

        self.raise_(
            PaymentStatusChanged(
                payment_id=str(self.id),
                previous_status=previous.value,
                status=status.value,
                failure_reason=failure_reason,
                changed_at=self.updated_at,
            )
        )
        return True

    def record_order(self, order_id: str, order_number: str) -> None:
        self.order_id = order_id
        self.order_number = order_number
        self.order_error = None
        self.updated_at = _now()

        self.raise_(PaymentOrderRecorded(payment_id=str(self.id), order_id=order_id, order_number=order_number))

    def record_order_failure(self, error: str) -> None:
        self.order_error = error
        self.updated_at = _now()

        self.raise_(PaymentOrderFailed(payment_id=str(self.id), amount=self.amount, reason=error))
