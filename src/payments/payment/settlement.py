"""Settlement: turning a provider status into intent state, and a paid intent into an order.

Every path that learns a payment's status (instant settlement at initiation,
a status check, a provider webhook) goes through ``PaymentSettlement``. Each
observer of ``paid`` asks the order creation service for the order; the
service returns the existing order to all but the first caller, so a webhook
and a client poll racing each other still produce a single order.
"""

import structlog
from protean.utils.globals import current_domain

from ordering.order.creation import CreateOrderHandler, OrderCreationResult
from payments.payment.intent import PaymentIntent, PaymentIntentStatus

logger = structlog.get_logger(__name__)


class PaymentSettlement:
    def __init__(self, orders: CreateOrderHandler | None = None):
        self.orders = orders or CreateOrderHandler()

    def apply_provider_status(
        self,
        intent: PaymentIntent,
        status: PaymentIntentStatus,
        failure_reason: str | None = None,
    ) -> PaymentIntent:
        """Record ``status`` on the intent and create the order when it is paid."""
        repo = current_domain.repository_for(PaymentIntent)

        changed = intent.apply_status(status, failure_reason=failure_reason)
        if not changed and intent.current_status != status:
            logger.warning(
                "Ignoring status for settled payment",
                payment_id=str(intent.id),
                current_status=intent.status,
                reported_status=status.value,
            )
            return intent

        if changed:
            logger.info("Payment status changed", payment_id=str(intent.id), status=status.value)
            repo.add(intent)

        if status == PaymentIntentStatus.PAID and intent.order_id is None:
            self._create_order(intent)
        return intent

    def _create_order(self, intent: PaymentIntent) -> OrderCreationResult:
        repo = current_domain.repository_for(PaymentIntent)
        draft = intent.draft.model_copy(update={"payment_id": str(intent.id)})
        try:
            result = self.orders.create_order(draft)
        except Exception as exc:
            logger.exception("Order creation raised for paid payment", payment_id=str(intent.id))
            intent.record_order_failure(f"{type(exc).__name__}: {exc}")
            repo.add(intent)
            raise

        if result.success:
            intent.record_order(result.order_id, result.order_number)
        else:
            reason = result.error
            if result.out_of_stock is not None:
                reason = f"Out of stock: {result.out_of_stock.item_name}"
            # Payment taken, no order: support has to follow up by hand
            logger.error(
                "Payment received but order creation failed",
                payment_id=str(intent.id),
                amount=intent.amount,
                customer_phone=intent.customer_phone,
                reason=reason,
            )
            intent.record_order_failure(reason or "Order creation failed")

        repo.add(intent)
        return result
