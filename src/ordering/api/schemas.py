"""Pydantic request/response schemas for the Ordering API.

These are external contracts, separate from the internal commands.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class OrderItemSchema(BaseModel):
    id: str
    type: Literal["product", "pack"] = "product"
    name: str
    unit_price: int = Field(ge=0)
    quantity: int = Field(ge=1)


class DeliveryAddressSchema(BaseModel):
    address: str
    city: str = ""
    neighborhood: str = ""
    latitude: float | None = None
    longitude: float | None = None
    note: str = ""


class OutOfStockSchema(BaseModel):
    item_name: str
    available_stock: int


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    vendor_id: str
    items: list[OrderItemSchema] = Field(min_length=1)
    delivery_address: DeliveryAddressSchema
    payment_method: Literal["cash", "wave", "orange_money"]
    subtotal: int = Field(ge=0)
    delivery_fee: int = Field(ge=0)
    discount: int = Field(default=0, ge=0)
    total: int = Field(ge=0)
    promo_code: str | None = None
    payment_id: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "vendor_id": "vendor-001",
                    "items": [{"id": "p1", "type": "product", "name": "Riz 5kg", "unit_price": 4500, "quantity": 1}],
                    "delivery_address": {
                        "address": "Ouakam, Dakar",
                        "city": "Dakar",
                        "neighborhood": "Ouakam",
                        "note": "Blue gate next to the mosque",
                    },
                    "payment_method": "cash",
                    "subtotal": 4500,
                    "delivery_fee": 1000,
                    "total": 5500,
                }
            ]
        }
    }


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderCreationResponse(BaseModel):
    success: bool
    order_id: str | None = None
    order_number: str | None = None
    out_of_stock: OutOfStockSchema | None = None
    error: str | None = None
    duplicate: bool = False


class OrderResponse(BaseModel):
    id: str
    order_number: str
    vendor_id: str
    items: list[OrderItemSchema]
    delivery_address: DeliveryAddressSchema
    payment_method: str
    payment_id: str | None = None
    subtotal: int
    delivery_fee: int
    discount: int
    total: int
    promo_code: str | None = None
    status: str
    created_at: datetime
