"""Application tests for provider webhooks via domain.process()."""

import pytest

from factories import make_order_command
from ordering.order.order import PaymentMethod
from ordering.order.repository import OrderRepository
from payments.payment.initiation import InitiatePayment
from payments.payment.intent import PaymentIntent, PaymentIntentStatus
from payments.payment.status import CheckPaymentStatus
from payments.payment.webhook import ProcessPaymentWebhook
from payments.provider import set_provider
from payments.provider.fake_adapter import FakeMobileMoneyProvider
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


@pytest.fixture
def provider() -> FakeMobileMoneyProvider:
    provider = FakeMobileMoneyProvider()
    set_provider(provider)
    return provider


def _initiate() -> PaymentIntent:
    draft = make_order_command()
    command = InitiatePayment(
        amount=draft.total,
        method=PaymentMethod.WAVE.value,
        customer_phone="771234567",
        order_draft=draft.model_dump_json(),
    )
    result = current_domain.process(command, asynchronous=False)
    return current_domain.repository_for(PaymentIntent).get(result.payment_id)


def _webhook(**kwargs) -> PaymentIntent:
    return current_domain.process(ProcessPaymentWebhook(**kwargs), asynchronous=False)


def _stored(payment_id) -> PaymentIntent:
    return current_domain.repository_for(PaymentIntent).get(str(payment_id))


class TestWebhookCommand:
    def test_requires_an_identifier(self, provider):
        with pytest.raises(ValidationError):
            _webhook(status="paid")

    def test_rejects_unknown_status(self):
        with pytest.raises(ValidationError):
            ProcessPaymentWebhook(payment_id="PAY-1", status="refunded")


class TestProcessWebhook:
    def test_paid_by_payment_id_creates_order(self, provider):
        intent = _initiate()

        settled = _webhook(payment_id=str(intent.id), status="paid")

        assert settled.status == PaymentIntentStatus.PAID.value
        assert settled.order_id
        assert OrderRepository().count_for_payment(str(intent.id)) == 1

    def test_paid_by_provider_reference(self, provider):
        intent = _initiate()

        settled = _webhook(provider_reference=intent.provider_reference, status="paid")

        assert settled.id == intent.id
        assert settled.order_id

    def test_failed(self, provider):
        intent = _initiate()

        _webhook(payment_id=str(intent.id), status="failed", failure_reason="Declined")

        stored = _stored(intent.id)
        assert stored.status == PaymentIntentStatus.FAILED.value
        assert stored.failure_reason == "Declined"

    def test_duplicate_delivery_creates_one_order(self, provider):
        intent = _initiate()

        first = _webhook(payment_id=str(intent.id), status="paid")
        second = _webhook(payment_id=str(intent.id), status="paid")

        assert first.order_id == second.order_id
        assert OrderRepository().count_for_payment(str(intent.id)) == 1

    def test_late_failure_does_not_override_paid(self, provider):
        intent = _initiate()

        _webhook(payment_id=str(intent.id), status="paid")
        _webhook(payment_id=str(intent.id), status="failed")

        assert _stored(intent.id).status == PaymentIntentStatus.PAID.value

    def test_unknown_reference(self, provider):
        with pytest.raises(ObjectNotFoundError):
            _webhook(provider_reference="missing", status="paid")

    def test_redelivery_retries_failed_order_creation(self, provider):
        intent = _initiate()
        repository = OrderRepository()
        repository.set_stock("p1", "Riz 5kg", available=0)

        orphaned = _webhook(payment_id=str(intent.id), status="paid")
        assert orphaned.order_id is None
        assert orphaned.order_error

        repository.set_stock("p1", "Riz 5kg", available=10)
        recovered = _webhook(payment_id=str(intent.id), status="paid")
        assert recovered.order_id
        assert _stored(intent.id).order_error is None

    def test_orphaned_payment_is_on_the_audit_trail(self, provider):
        intent = _initiate()
        OrderRepository().set_stock("p1", "Riz 5kg", available=0)

        _webhook(payment_id=str(intent.id), status="paid")

        messages = current_domain.event_store.store.read("payments::payment_intent")
        failed = [
            m
            for m in messages
            if m.metadata and m.metadata.headers and m.metadata.headers.type == "Payments.PaymentOrderFailed.v1"
        ]
        assert len(failed) == 1


class TestWebhookAndPollRace:
    def test_webhook_then_poll_share_one_order(self, provider):
        intent = _initiate()
        provider.set_status(intent.provider_reference, "paid")

        webhook = _webhook(payment_id=str(intent.id), status="paid")
        poll = current_domain.process(CheckPaymentStatus(payment_id=str(intent.id)), asynchronous=False)

        assert poll.order_id == webhook.order_id
        assert OrderRepository().count_for_payment(str(intent.id)) == 1

    def test_poll_then_webhook_share_one_order(self, provider):
        intent = _initiate()
        provider.set_status(intent.provider_reference, "paid")

        poll = current_domain.process(CheckPaymentStatus(payment_id=str(intent.id)), asynchronous=False)
        webhook = _webhook(payment_id=str(intent.id), status="paid")

        assert webhook.order_id == poll.order_id
        assert OrderRepository().count_for_payment(str(intent.id)) == 1
