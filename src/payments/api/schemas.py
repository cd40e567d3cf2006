"""Pydantic request/response schemas for the Payments API.

These are external contracts, separate from the internal commands.
"""

from typing import Literal

from pydantic import BaseModel, Field

from ordering.api.schemas import CreateOrderRequest


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class InitiatePaymentRequest(BaseModel):
    amount: int = Field(gt=0)
    method: Literal["wave", "orange_money"]
    customer_phone: str
    order_draft: CreateOrderRequest

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "amount": 6000,
                    "method": "wave",
                    "customer_phone": "+221 77 123 45 67",
                    "order_draft": {
                        "vendor_id": "vendor-001",
                        "items": [{"id": "p1", "type": "product", "name": "Thieb", "unit_price": 2500, "quantity": 2}],
                        "delivery_address": {
                            "address": "Mermoz, Dakar",
                            "city": "Dakar",
                            "neighborhood": "Mermoz",
                            "note": "Behind the pharmacy",
                        },
                        "payment_method": "wave",
                        "subtotal": 5000,
                        "delivery_fee": 1000,
                        "total": 6000,
                    },
                }
            ]
        }
    }


class ProcessWebhookRequest(BaseModel):
    payment_id: str | None = None
    provider_reference: str | None = None
    status: Literal["pending", "paid", "failed", "cancelled", "expired"]
    failure_reason: str | None = None


class ConfigureProviderRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Payment refused by provider"
    settle_instantly: bool = False
    default_status: Literal["pending", "paid", "failed", "cancelled", "expired"] = "pending"


class SetProviderStatusRequest(BaseModel):
    status: Literal["pending", "paid", "failed", "cancelled", "expired"]


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class InstantOrderResponse(BaseModel):
    order_id: str
    order_number: str


class PaymentInitiationResponse(BaseModel):
    success: bool
    payment_id: str | None = None
    redirect_url: str | None = None
    instant_order: InstantOrderResponse | None = None
    error: str | None = None


class PaymentStatusResponse(BaseModel):
    success: bool
    status: str
    order_id: str | None = None
    order_number: str | None = None


class StatusResponse(BaseModel):
    status: str


class ProviderConfigResponse(BaseModel):
    provider: str
    should_succeed: bool
    failure_reason: str
    settle_instantly: bool
    default_status: str
