"""Application tests for order creation against the test database."""

import pytest

from factories import make_order_command
from ordering.order.creation import CreateOrderHandler
from ordering.order.order import OrderLine, OrderStatus, PaymentMethod
from ordering.order.repository import OrderRepository
from protean.exceptions import ObjectNotFoundError


@pytest.fixture
def handler() -> CreateOrderHandler:
    return CreateOrderHandler(OrderRepository())


class TestCashOrder:
    def test_creates_order(self, handler):
        result = handler.create_order(make_order_command())

        assert result.success
        assert result.order_id
        assert result.order_number.startswith("YON-")
        assert not result.duplicate

    def test_order_is_persisted(self, handler):
        result = handler.create_order(make_order_command(promo_code="TABASKI"))
        order = OrderRepository().get(result.order_id)

        assert order.order_number == result.order_number
        assert order.status == OrderStatus.PENDING
        assert order.payment_method == PaymentMethod.CASH
        assert order.total == 6000
        assert order.promo_code == "TABASKI"
        assert order.delivery_address.note == "Blue gate behind the pharmacy"
        assert [(line.id, line.quantity) for line in order.items] == [("p1", 2)]

    def test_order_numbers_are_sequential(self, handler):
        first = handler.create_order(make_order_command())
        second = handler.create_order(make_order_command())
        assert int(second.order_number.split("-")[1]) == int(first.order_number.split("-")[1]) + 1

    def test_order_number_prefix_from_settings(self, monkeypatch):
        from shared.config import reset_settings

        monkeypatch.setenv("ORDER_NUMBER_PREFIX", "DKR")
        reset_settings()
        result = CreateOrderHandler(OrderRepository()).create_order(make_order_command())
        assert result.order_number.startswith("DKR-")

    def test_cash_orders_without_payment_id_are_independent(self, handler):
        first = handler.create_order(make_order_command())
        second = handler.create_order(make_order_command())
        assert first.order_id != second.order_id

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            OrderRepository().get("does-not-exist")


class TestPricingValidation:
    def test_subtotal_must_match_items(self, handler):
        result = handler.create_order(make_order_command(subtotal=100, total=1100))
        assert not result.success
        assert "Subtotal" in result.error

    def test_total_must_match_pricing(self, handler):
        result = handler.create_order(make_order_command(total=1))
        assert not result.success
        assert "Total" in result.error

    def test_discount_applied(self, handler):
        result = handler.create_order(make_order_command(discount=500))
        assert result.success
        assert OrderRepository().get(result.order_id).total == 5500

    def test_mobile_money_requires_payment(self, handler):
        result = handler.create_order(make_order_command(payment_method=PaymentMethod.WAVE))
        assert not result.success
        assert "payment" in result.error.lower()


class TestStock:
    def test_out_of_stock_reported(self, handler):
        repository = OrderRepository()
        repository.set_stock("p1", "Riz 5kg", available=1)

        result = handler.create_order(make_order_command())

        assert not result.success
        assert result.out_of_stock.item_name == "Riz 5kg"
        assert result.out_of_stock.available_stock == 1

    def test_out_of_stock_creates_nothing_and_keeps_stock(self, handler):
        repository = OrderRepository()
        repository.set_stock("p1", "Riz 5kg", available=5)
        repository.set_stock("p2", "Huile 1L", available=0)
        items = [
            OrderLine(id="p1", name="Riz 5kg", unit_price=2500, quantity=2),
            OrderLine(id="p2", name="Huile 1L", unit_price=1500, quantity=1),
        ]

        result = handler.create_order(make_order_command(items=items))

        assert result.out_of_stock.item_name == "Huile 1L"
        assert repository.available_stock("p1") == 5

    def test_stock_is_decremented(self, handler):
        repository = OrderRepository()
        repository.set_stock("p1", "Riz 5kg", available=5)
        handler.create_order(make_order_command())
        assert repository.available_stock("p1") == 3

    def test_items_without_stock_row_are_unlimited(self, handler):
        assert OrderRepository().available_stock("p1") is None
        assert handler.create_order(make_order_command()).success
