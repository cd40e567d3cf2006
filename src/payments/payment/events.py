"""Domain events for the PaymentIntent aggregate.

Raised by the intent and written to the event store by the repository's unit
of work. They form the audit trail support uses to follow up a payment that
was taken without an order.
"""

from protean.fields import DateTime, Identifier, Integer, String

from payments.domain import payments


@payments.event(part_of="PaymentIntent")
class PaymentInitiated:
    """A payment intent was opened for a mobile-money checkout."""

    __version__ = 1

    payment_id = Identifier(required=True)
    amount = Integer(required=True)
    method = String(required=True, max_length=20)
    customer_phone = String(required=True, max_length=20)
    initiated_at = DateTime(required=True)


@payments.event(part_of="PaymentIntent")
class PaymentStatusChanged:
    """The provider reported a new status for the payment."""

    __version__ = 1

    payment_id = Identifier(required=True)
    previous_status = String(required=True, max_length=20)
    status = String(required=True, max_length=20)
    failure_reason = String(max_length=500)
    changed_at = DateTime(required=True)


@payments.event(part_of="PaymentIntent")
class PaymentOrderRecorded:
    """The order for a paid intent exists."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=50)


@payments.event(part_of="PaymentIntent")
class PaymentOrderFailed:
    """The payment was taken but its order could not be created."""

    __version__ = 1

    payment_id = Identifier(required=True)
    amount = Integer(required=True)
    reason = String(required=True, max_length=1000)
