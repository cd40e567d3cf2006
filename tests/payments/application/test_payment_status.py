"""Application tests for the payment status check via domain.process()."""

import pytest

from factories import make_order_command
from ordering.order.order import PaymentMethod
from ordering.order.repository import OrderRepository
from payments.payment.initiation import InitiatePayment
from payments.payment.intent import PaymentIntent, PaymentIntentStatus
from payments.payment.status import CheckPaymentStatus
from payments.provider import set_provider
from payments.provider.fake_adapter import FakeMobileMoneyProvider
from protean import current_domain
from protean.exceptions import ObjectNotFoundError


@pytest.fixture
def provider() -> FakeMobileMoneyProvider:
    provider = FakeMobileMoneyProvider()
    set_provider(provider)
    return provider


def _initiate() -> tuple[str, str]:
    draft = make_order_command()
    command = InitiatePayment(
        amount=draft.total,
        method=PaymentMethod.WAVE.value,
        customer_phone="771234567",
        order_draft=draft.model_dump_json(),
    )
    result = current_domain.process(command, asynchronous=False)
    intent = current_domain.repository_for(PaymentIntent).get(result.payment_id)
    return str(intent.id), intent.provider_reference


def _check(payment_id: str):
    return current_domain.process(CheckPaymentStatus(payment_id=payment_id), asynchronous=False)


class TestPendingPayment:
    def test_pending(self, provider):
        payment_id, _ = _initiate()
        result = _check(payment_id)
        assert result.success
        assert result.status == "pending"
        assert result.order_id is None

    def test_scripted_statuses(self, provider):
        payment_id, reference = _initiate()
        provider.script_statuses(reference, ["pending", "pending", "paid"])

        statuses = [_check(payment_id).status for _ in range(4)]
        assert statuses == ["pending", "pending", "paid", "paid"]

    def test_unknown_payment(self, provider):
        with pytest.raises(ObjectNotFoundError):
            _check("nope")

    def test_provider_unavailable(self, provider):
        payment_id, _ = _initiate()
        provider.unavailable = True
        result = _check(payment_id)
        assert not result.success
        assert result.status == "pending"


class TestPaidPayment:
    def test_paid_creates_order(self, provider):
        payment_id, reference = _initiate()
        provider.set_status(reference, "paid")

        result = _check(payment_id)

        assert result.status == "paid"
        assert result.order_number.startswith("YON-")
        order = OrderRepository().get(result.order_id)
        assert order.payment_id == payment_id

    def test_repeated_checks_return_same_order(self, provider):
        payment_id, reference = _initiate()
        provider.set_status(reference, "paid")

        first = _check(payment_id)
        second = _check(payment_id)

        assert first.order_id == second.order_id
        assert OrderRepository().count_for_payment(payment_id) == 1

    def test_settled_intent_is_not_refreshed(self, provider):
        payment_id, reference = _initiate()
        provider.set_status(reference, "paid")
        _check(payment_id)
        provider.calls.clear()
        provider.set_status(reference, "failed")

        assert _check(payment_id).status == "paid"
        assert provider.calls == []

    def test_paid_while_order_is_being_written_reports_pending(self, provider):
        payment_id, _ = _initiate()
        repo = current_domain.repository_for(PaymentIntent)
        intent = repo.get(payment_id)
        intent.apply_status(PaymentIntentStatus.PAID)
        repo.add(intent)

        assert _check(payment_id).status == "pending"

    def test_paid_without_order_is_reported_as_orphan(self, provider):
        payment_id, reference = _initiate()
        OrderRepository().set_stock("p1", "Riz 5kg", available=0)
        provider.set_status(reference, "paid")

        result = _check(payment_id)

        assert result.success
        assert result.status == "paid"
        assert result.order_id is None
        intent = current_domain.repository_for(PaymentIntent).get(payment_id)
        assert intent.order_error == "Out of stock: Riz 5kg"
        assert OrderRepository().count_for_payment(payment_id) == 0


class TestEndedPayment:
    @pytest.mark.parametrize("status", ["failed", "cancelled", "expired"])
    def test_ended_without_order(self, provider, status):
        payment_id, reference = _initiate()
        provider.set_status(reference, status)

        result = _check(payment_id)

        assert result.status == status
        assert result.order_id is None
        assert OrderRepository().count_for_payment(payment_id) == 0
