"""Order creation: command, result and handler.

This is the only writer of orders. Creation is at-most-once per payment: a
command that carries a ``payment_id`` which already produced an order gets
that order back instead of a new one, including when two requests race.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ValidationError
from pydantic import BaseModel, Field

from ordering.order.order import Order, OrderAddress, OrderLine, PaymentMethod

logger = structlog.get_logger(__name__)


class CreateOrder(BaseModel):
    vendor_id: str
    items: list[OrderLine] = Field(min_length=1)
    delivery_address: OrderAddress
    payment_method: PaymentMethod
    subtotal: int = Field(ge=0)
    delivery_fee: int = Field(ge=0)
    discount: int = Field(default=0, ge=0)
    total: int = Field(ge=0)
    promo_code: str | None = None
    payment_id: str | None = None


@dataclass(frozen=True)
class OutOfStock:
    item_name: str
    available_stock: int


@dataclass(frozen=True)
class OrderCreationResult:
    success: bool
    order_id: str | None = None
    order_number: str | None = None
    out_of_stock: OutOfStock | None = None
    error: str | None = None
    duplicate: bool = False

    @classmethod
    def created(cls, order: Order) -> "OrderCreationResult":
        return cls(success=True, order_id=order.id, order_number=order.order_number)

    @classmethod
    def existing(cls, order: Order) -> "OrderCreationResult":
        return cls(success=True, order_id=order.id, order_number=order.order_number, duplicate=True)


def expected_total(subtotal: int, delivery_fee: int, discount: int) -> int:
    return max(subtotal + delivery_fee - discount, 0)


class CreateOrderHandler:
    def __init__(self, repository=None) -> None:
        if repository is None:
            from ordering.order.repository import OrderRepository

            repository = OrderRepository()
        self.repository = repository

    def create_order(self, command: CreateOrder) -> OrderCreationResult:
        try:
            self._validate_pricing(command)
        except ValidationError as exc:
            logger.warning("Rejected order with inconsistent pricing", errors=exc.messages)
            return OrderCreationResult(success=False, error="; ".join(m for ms in exc.messages.values() for m in ms))

        result = self.repository.create(command)

        if result.out_of_stock is not None:
            logger.info(
                "Order rejected, item out of stock",
                vendor_id=command.vendor_id,
                item_name=result.out_of_stock.item_name,
                available_stock=result.out_of_stock.available_stock,
            )
        elif result.duplicate:
            logger.info(
                "Order already exists for payment",
                payment_id=command.payment_id,
                order_id=result.order_id,
            )
        else:
            logger.info(
                "Order created",
                order_id=result.order_id,
                order_number=result.order_number,
                payment_method=command.payment_method.value,
                payment_id=command.payment_id,
            )
        return result

    @staticmethod
    def _validate_pricing(command: CreateOrder) -> None:
        subtotal = sum(line.line_total for line in command.items)
        if subtotal != command.subtotal:
            raise ValidationError({"subtotal": [f"Subtotal {command.subtotal} does not match items ({subtotal})"]})

        total = expected_total(command.subtotal, command.delivery_fee, command.discount)
        if total != command.total:
            raise ValidationError({"total": [f"Total {command.total} does not match pricing ({total})"]})

        if command.payment_method.is_mobile_money and not command.payment_id:
            raise ValidationError({"payment_id": ["Mobile money orders require a confirmed payment"]})
