"""Order model: the record written once a checkout is paid for (or paid in cash).

Orders are immutable from the storefront's point of view: the checkout flow
only ever creates them. The delivery lifecycle after creation belongs to the
back office.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DRIVER_ASSIGNED = "driver_assigned"
    DRIVER_ON_THE_WAY = "driver_on_the_way"
    DELIVERING = "delivering"
    ARRIVED = "arrived"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    CASH = "cash"
    WAVE = "wave"
    ORANGE_MONEY = "orange_money"

    @property
    def is_mobile_money(self) -> bool:
        return self is not PaymentMethod.CASH


class OrderLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: str = "product"  # product | pack
    name: str
    unit_price: int = Field(ge=0)
    quantity: int = Field(ge=1)

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


class OrderAddress(BaseModel):
    """Delivery address as captured on the order."""

    model_config = ConfigDict(frozen=True)

    address: str
    city: str = ""
    neighborhood: str = ""
    latitude: float | None = None
    longitude: float | None = None
    note: str = ""  # landmark


class Order(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    order_number: str
    vendor_id: str
    items: list[OrderLine]
    delivery_address: OrderAddress
    payment_method: PaymentMethod
    payment_id: str | None = None
    subtotal: int
    delivery_fee: int
    discount: int = 0
    total: int
    promo_code: str | None = None
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime
