"""Checkout orchestrator: drives one storefront session through checkout.

The orchestrator reads the cart and the delivery address gate at submit time,
calls the order and payment services, and owns the only mutable
``CheckoutState``. Every change goes through ``transition()``. The
reconciliation poller feeds results back exclusively through
``report_payment_result()``, which discards anything addressed to a payment
other than the active one.

The cart is cleared only after the state has become ``success``. Every other
ending leaves it exactly as it was.
"""

from collections.abc import Callable
from dataclasses import dataclass
from uuid import uuid4

import structlog

from delivery.address.gate import DeliveryAddressGate
from ordering.cart.session import CartSession
from ordering.checkout.collaborators import OrderService, PaymentRequest, PaymentService
from ordering.checkout.guards import validate_checkout
from ordering.checkout.state import (
    CheckoutEvent,
    CheckoutFailed,
    CheckoutState,
    CheckoutStatus,
    Dismissed,
    ErrorKind,
    OrderPlaced,
    OutOfStockReported,
    PaymentAbandoned,
    PaymentOutcome,
    PaymentStarted,
    Submitted,
    ValidationFailed,
    is_stale,
    transition,
)
from ordering.order.creation import CreateOrder, OrderCreationResult, expected_total
from ordering.order.order import OrderAddress, OrderLine, PaymentMethod
from payments.reconciliation.poller import PaymentReconciliationPoller
from shared.exceptions import CollaboratorUnavailable, InvalidTransitionError
from shared.logging import bound_context
from shared.phone import normalize_phone

logger = structlog.get_logger(__name__)

TRANSPORT_MESSAGE = "We could not reach the server. Check your connection and try again."
UNEXPECTED_MESSAGE = "Something went wrong on our side. Please try again."


@dataclass(frozen=True)
class CheckoutRequest:
    payment_method: PaymentMethod
    customer_phone: str | None = None
    promo_code: str | None = None
    promo_discount: int = 0


class CheckoutOrchestrator:
    def __init__(
        self,
        cart: CartSession,
        address_gate: DeliveryAddressGate,
        orders: OrderService,
        payments: PaymentService,
        *,
        redirect_opener: Callable[[str], None] | None = None,
        poll_interval: float | None = None,
        max_polls: int | None = None,
    ) -> None:
        self.cart = cart
        self.address_gate = address_gate
        self.orders = orders
        self.payments = payments
        self.redirect_opener = redirect_opener
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self._state = CheckoutState()
        self._poller: PaymentReconciliationPoller | None = None
        self._listeners: list[Callable[[CheckoutState], None]] = []

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def poller(self) -> PaymentReconciliationPoller | None:
        return self._poller

    def subscribe(self, listener: Callable[[CheckoutState], None]) -> None:
        """Call ``listener`` with every new state, before any follow-up side effect."""
        self._listeners.append(listener)

    # -------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------
    async def submit(self, request: CheckoutRequest) -> CheckoutState:
        if self._state.status != CheckoutStatus.IDLE:
            raise InvalidTransitionError({"checkout": ["A checkout is already in progress"]})

        errors = validate_checkout(self.cart, self.address_gate, request.payment_method, request.customer_phone)
        if errors:
            logger.info("Checkout blocked by validation", fields=sorted(errors))
            self._apply(ValidationFailed(errors=errors))
            return self._state

        attempt_id = uuid4().hex
        with bound_context(attempt_id=attempt_id):
            self._apply(Submitted(attempt_id=attempt_id))
            try:
                draft = self._build_draft(request)
                logger.info(
                    "Checkout submitted",
                    payment_method=request.payment_method.value,
                    vendor_id=draft.vendor_id,
                    total=draft.total,
                )
                if request.payment_method.is_mobile_money:
                    await self._start_payment(attempt_id, request, draft)
                else:
                    result = await self.orders.create_order(draft)
                    self._apply_order_result(attempt_id, result)
            except CollaboratorUnavailable as exc:
                logger.warning("Checkout submission failed in transport", error=str(exc))
                self._apply(CheckoutFailed(attempt_id=attempt_id, kind=ErrorKind.TRANSPORT, message=TRANSPORT_MESSAGE))
            except Exception:
                if not self._is_loading(attempt_id):
                    raise
                logger.exception("Checkout submission failed unexpectedly")
                kind = ErrorKind.INITIATION_FAILED if request.payment_method.is_mobile_money else ErrorKind.ORDER_FAILED
                self._apply(CheckoutFailed(attempt_id=attempt_id, kind=kind, message=UNEXPECTED_MESSAGE))
        return self._state

    async def _start_payment(self, attempt_id: str, request: CheckoutRequest, draft: CreateOrder) -> None:
        initiation = await self.payments.initiate_payment(
            PaymentRequest(
                amount=draft.total,
                method=request.payment_method,
                customer_phone=normalize_phone(request.customer_phone),
                order_draft=draft,
            )
        )

        if initiation.success and initiation.instant_order is not None:
            self._apply(
                OrderPlaced(
                    attempt_id=attempt_id,
                    order_id=initiation.instant_order.order_id,
                    order_number=initiation.instant_order.order_number,
                )
            )
            return

        if not initiation.success or not initiation.payment_id:
            self._apply(
                CheckoutFailed(
                    attempt_id=attempt_id,
                    kind=ErrorKind.INITIATION_FAILED,
                    message=initiation.error or "We could not start the payment. Please try again.",
                )
            )
            return

        payment_id = initiation.payment_id
        with bound_context(payment_id=payment_id):
            self._apply(
                PaymentStarted(attempt_id=attempt_id, payment_id=payment_id, redirect_url=initiation.redirect_url)
            )

            if initiation.redirect_url and self.redirect_opener is not None:
                self.redirect_opener(initiation.redirect_url)

            # The poller task keeps its own copy of the attempt and payment context
            self._poller = PaymentReconciliationPoller(
                self.payments,
                payment_id,
                self.report_payment_result,
                interval=self.poll_interval,
                max_polls=self.max_polls,
            )
            self._poller.start()

    def _apply_order_result(self, attempt_id: str, result: OrderCreationResult) -> None:
        if result.success and result.order_id:
            self._apply(OrderPlaced(attempt_id=attempt_id, order_id=result.order_id, order_number=result.order_number))
        elif result.out_of_stock is not None:
            self._apply(
                OutOfStockReported(
                    attempt_id=attempt_id,
                    item_name=result.out_of_stock.item_name,
                    available_stock=result.out_of_stock.available_stock,
                )
            )
        else:
            self._apply(
                CheckoutFailed(
                    attempt_id=attempt_id,
                    kind=ErrorKind.ORDER_FAILED,
                    message=result.error or "We could not create your order. Please try again.",
                )
            )

    # -------------------------------------------------------------------
    # Payment results
    # -------------------------------------------------------------------
    def report_payment_result(self, payment_id: str, outcome: PaymentOutcome) -> CheckoutState:
        """Apply a reconciliation outcome, if it belongs to the active payment."""
        if payment_id != outcome.payment_id or is_stale(self._state, outcome):
            logger.info(
                "Discarding stale payment result",
                payment_id=payment_id,
                active_payment_id=self._state.payment_id,
                outcome=type(outcome).__name__,
            )
            return self._state

        self._apply(outcome)
        if self._poller is not None and self._poller.payment_id == payment_id:
            self._poller = None
        return self._state

    def abandon_payment(self) -> CheckoutState:
        """Stop waiting for the payment. The intent is left to expire at the provider."""
        if self._state.status != CheckoutStatus.PAYMENT_PENDING:
            raise InvalidTransitionError({"checkout": ["No payment is pending"]})

        payment_id = self._state.payment_id
        self._stop_poller()
        self._apply(PaymentAbandoned(payment_id=payment_id))
        logger.info("Payment abandoned", payment_id=payment_id)
        return self._state

    def dismiss(self) -> CheckoutState:
        self._apply(Dismissed())
        return self._state

    async def wait_for_payment(self) -> CheckoutState:
        """Wait until the running poller (if any) has finished."""
        poller = self._poller
        if poller is not None:
            await poller.wait()
        return self._state

    async def close(self) -> None:
        """Tear down the session: the running poller is cancelled and awaited."""
        poller = self._poller
        self._stop_poller()
        if poller is not None:
            await poller.wait()

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _apply(self, event: CheckoutEvent) -> None:
        previous = self._state
        self._state = transition(previous, event)
        if self._state is previous:
            return

        logger.debug("Checkout state changed", previous=previous.status.value, status=self._state.status.value)
        for listener in self._listeners:
            listener(self._state)

        if self._state.status == CheckoutStatus.SUCCESS and previous.status != CheckoutStatus.SUCCESS:
            logger.info("Order confirmed", order_id=self._state.order_id, order_number=self._state.order_number)
            self.cart.clear()

    def _is_loading(self, attempt_id: str) -> bool:
        return self._state.status == CheckoutStatus.LOADING and self._state.attempt_id == attempt_id

    def _stop_poller(self) -> None:
        if self._poller is not None:
            self._poller.cancel()
            self._poller = None

    def _build_draft(self, request: CheckoutRequest) -> CreateOrder:
        address = self.address_gate.address
        subtotal = self.cart.subtotal
        delivery_fee = self.cart.delivery_fee
        discount = max(request.promo_discount, 0)
        return CreateOrder(
            vendor_id=self.cart.vendor_id,
            items=[
                OrderLine(
                    id=item.item_id,
                    type=item.item_type,
                    name=item.name,
                    unit_price=item.unit_price,
                    quantity=item.quantity,
                )
                for item in self.cart.items
            ],
            delivery_address=OrderAddress(
                address=self.address_gate.full_address(),
                city=address.city,
                neighborhood=address.neighborhood,
                latitude=address.latitude,
                longitude=address.longitude,
                note=address.additional_info,
            ),
            payment_method=request.payment_method,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            discount=discount,
            total=expected_total(subtotal, delivery_fee, discount),
            promo_code=request.promo_code,
        )
