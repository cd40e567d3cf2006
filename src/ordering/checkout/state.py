"""Checkout state machine.

State Machine:
    IDLE → LOADING → PAYMENT_PENDING | SUCCESS | OUT_OF_STOCK | ERROR
    PAYMENT_PENDING → SUCCESS | ERROR | IDLE (abandoned)
    ERROR | OUT_OF_STOCK → IDLE (dismissed)

``transition(state, event)`` is a pure function over frozen values. Results
that belong to an attempt or payment other than the active one are stale:
they leave the state untouched. Any other event the current state does not
accept raises ``InvalidTransitionError``.
"""

from dataclasses import dataclass, field, replace
from enum import Enum

from shared.exceptions import InvalidTransitionError


class CheckoutStatus(Enum):
    IDLE = "idle"
    LOADING = "loading"
    PAYMENT_PENDING = "payment_pending"
    SUCCESS = "success"
    OUT_OF_STOCK = "out_of_stock"
    ERROR = "error"


class ErrorKind(Enum):
    VALIDATION = "validation"
    ORDER_FAILED = "order_failed"
    INITIATION_FAILED = "initiation_failed"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_CANCELLED = "payment_cancelled"
    PAYMENT_EXPIRED = "payment_expired"
    PAYMENT_ORPHANED = "payment_orphaned"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"


ORPHANED_PAYMENT_MESSAGE = (
    "Your payment was received but we could not create your order. "
    "Our support team has been notified and will contact you shortly."
)
TIMEOUT_MESSAGE = (
    "We have not received confirmation of your payment yet. If you completed it, "
    "your order may still be confirmed in a few minutes. Check your orders before paying again."
)
PAYMENT_END_MESSAGES = {
    "failed": (ErrorKind.PAYMENT_FAILED, "The payment failed. You can try again."),
    "cancelled": (ErrorKind.PAYMENT_CANCELLED, "The payment was cancelled."),
    "expired": (ErrorKind.PAYMENT_EXPIRED, "The payment request expired. Please try again."),
}


@dataclass(frozen=True)
class OutOfStockItem:
    item_name: str
    available_stock: int


@dataclass(frozen=True)
class CheckoutState:
    status: CheckoutStatus = CheckoutStatus.IDLE
    attempt_id: str | None = None
    payment_id: str | None = None
    redirect_url: str | None = None
    order_id: str | None = None
    order_number: str | None = None
    out_of_stock: OutOfStockItem | None = None
    error_kind: ErrorKind | None = None
    error_message: str | None = None
    validation_errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def is_busy(self) -> bool:
        return self.status in (CheckoutStatus.LOADING, CheckoutStatus.PAYMENT_PENDING)

    @property
    def is_terminal(self) -> bool:
        return self.status in (CheckoutStatus.SUCCESS, CheckoutStatus.OUT_OF_STOCK, CheckoutStatus.ERROR)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ValidationFailed:
    errors: dict[str, list[str]]


@dataclass(frozen=True)
class Submitted:
    attempt_id: str


@dataclass(frozen=True)
class OrderPlaced:
    attempt_id: str
    order_id: str
    order_number: str


@dataclass(frozen=True)
class OutOfStockReported:
    attempt_id: str
    item_name: str
    available_stock: int


@dataclass(frozen=True)
class CheckoutFailed:
    attempt_id: str
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class PaymentStarted:
    attempt_id: str
    payment_id: str
    redirect_url: str | None = None


@dataclass(frozen=True)
class PaymentSettled:
    payment_id: str
    order_id: str
    order_number: str


@dataclass(frozen=True)
class PaymentOrphaned:
    payment_id: str


@dataclass(frozen=True)
class PaymentEnded:
    payment_id: str
    status: str  # failed | cancelled | expired


@dataclass(frozen=True)
class PaymentTimedOut:
    payment_id: str
    polls: int


@dataclass(frozen=True)
class PaymentAbandoned:
    payment_id: str


@dataclass(frozen=True)
class Dismissed:
    pass


AttemptResult = OrderPlaced | OutOfStockReported | CheckoutFailed | PaymentStarted
PaymentOutcome = PaymentSettled | PaymentOrphaned | PaymentEnded | PaymentTimedOut
CheckoutEvent = ValidationFailed | Submitted | AttemptResult | PaymentOutcome | PaymentAbandoned | Dismissed


def is_stale(state: CheckoutState, event: CheckoutEvent) -> bool:
    """True for a result addressed to an attempt or payment that is no longer active."""
    if isinstance(event, AttemptResult):
        return event.attempt_id != state.attempt_id or state.status != CheckoutStatus.LOADING
    if isinstance(event, PaymentOutcome):
        return event.payment_id != state.payment_id or state.status != CheckoutStatus.PAYMENT_PENDING
    return False


def transition(state: CheckoutState, event: CheckoutEvent) -> CheckoutState:
    if is_stale(state, event):
        return state

    status = state.status

    if isinstance(event, ValidationFailed) and status == CheckoutStatus.IDLE:
        return replace(state, validation_errors=dict(event.errors))

    if isinstance(event, Submitted) and status == CheckoutStatus.IDLE:
        return CheckoutState(status=CheckoutStatus.LOADING, attempt_id=event.attempt_id)

    if isinstance(event, (OrderPlaced, PaymentSettled)):
        return replace(
            state,
            status=CheckoutStatus.SUCCESS,
            order_id=event.order_id,
            order_number=event.order_number,
        )

    if isinstance(event, OutOfStockReported):
        return replace(
            state,
            status=CheckoutStatus.OUT_OF_STOCK,
            out_of_stock=OutOfStockItem(item_name=event.item_name, available_stock=event.available_stock),
        )

    if isinstance(event, CheckoutFailed):
        return _error(state, event.kind, event.message)

    if isinstance(event, PaymentStarted):
        return replace(
            state,
            status=CheckoutStatus.PAYMENT_PENDING,
            payment_id=event.payment_id,
            redirect_url=event.redirect_url,
        )

    if isinstance(event, PaymentOrphaned):
        return _error(state, ErrorKind.PAYMENT_ORPHANED, ORPHANED_PAYMENT_MESSAGE)

    if isinstance(event, PaymentEnded):
        kind, message = PAYMENT_END_MESSAGES.get(event.status, (ErrorKind.PAYMENT_FAILED, f"Payment {event.status}."))
        return _error(state, kind, message)

    if isinstance(event, PaymentTimedOut):
        return _error(state, ErrorKind.TIMEOUT, TIMEOUT_MESSAGE)

    if (
        isinstance(event, PaymentAbandoned)
        and status == CheckoutStatus.PAYMENT_PENDING
        and event.payment_id == state.payment_id
    ):
        return CheckoutState()

    if isinstance(event, Dismissed) and status in _DISMISSABLE:
        return CheckoutState()

    raise InvalidTransitionError({"checkout": [f"{type(event).__name__} is not allowed while {status.value}"]})


_DISMISSABLE = {CheckoutStatus.IDLE, CheckoutStatus.ERROR, CheckoutStatus.OUT_OF_STOCK}


def _error(state: CheckoutState, kind: ErrorKind, message: str) -> CheckoutState:
    return replace(state, status=CheckoutStatus.ERROR, error_kind=kind, error_message=message)
