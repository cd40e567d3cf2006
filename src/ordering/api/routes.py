"""FastAPI routes for the Ordering domain: order creation and lookup."""

from dataclasses import asdict

from fastapi import APIRouter, Response

from ordering.api.schemas import CreateOrderRequest, OrderCreationResponse, OrderResponse
from ordering.order.creation import CreateOrder, CreateOrderHandler
from ordering.order.repository import OrderRepository

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", status_code=201, response_model=OrderCreationResponse)
async def create_order(body: CreateOrderRequest, response: Response) -> OrderCreationResponse:
    """Create an order. Idempotent on ``payment_id``: a repeat returns the existing order."""
    command = CreateOrder.model_validate(body.model_dump())
    result = CreateOrderHandler().create_order(command)

    if result.out_of_stock is not None:
        response.status_code = 409
    elif not result.success:
        response.status_code = 400
    elif result.duplicate:
        response.status_code = 200
    return OrderCreationResponse.model_validate(asdict(result))


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    order = OrderRepository().get(order_id)
    return OrderResponse.model_validate(order.model_dump(mode="json"))
