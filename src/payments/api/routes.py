"""FastAPI routes for the Payments domain: mobile-money payments."""

import json
from dataclasses import asdict

from fastapi import APIRouter, Header, HTTPException, Response
from protean.utils.globals import current_domain

from payments.api.schemas import (
    ConfigureProviderRequest,
    InitiatePaymentRequest,
    PaymentInitiationResponse,
    PaymentStatusResponse,
    ProcessWebhookRequest,
    ProviderConfigResponse,
    SetProviderStatusRequest,
    StatusResponse,
)
from payments.payment.initiation import InitiatePayment
from payments.payment.status import CheckPaymentStatus
from payments.payment.webhook import ProcessPaymentWebhook
from payments.provider import get_provider
from payments.provider.fake_adapter import FakeMobileMoneyProvider
from shared.config import get_settings

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("", status_code=201, response_model=PaymentInitiationResponse)
async def initiate_payment(body: InitiatePaymentRequest, response: Response) -> PaymentInitiationResponse:
    """Initiate a mobile-money payment carrying the order draft."""
    command = InitiatePayment(
        amount=body.amount,
        method=body.method,
        customer_phone=body.customer_phone,
        order_draft=body.order_draft.model_dump_json(),
    )
    result = current_domain.process(command, asynchronous=False)
    if not result.success:
        response.status_code = 400
    return PaymentInitiationResponse.model_validate(asdict(result))


@router.get("/{payment_id}/status", response_model=PaymentStatusResponse)
async def check_payment_status(payment_id: str) -> PaymentStatusResponse:
    """Report the status of a payment, refreshing it from the provider while pending."""
    result = current_domain.process(CheckPaymentStatus(payment_id=payment_id), asynchronous=False)
    return PaymentStatusResponse.model_validate(asdict(result))


@router.post("/webhook", response_model=StatusResponse)
async def process_webhook(
    body: ProcessWebhookRequest,
    x_provider_signature: str = Header(default=""),
) -> StatusResponse:
    """Process a mobile-money provider webhook callback."""
    provider = get_provider()
    if not provider.verify_webhook_signature(json.dumps(body.model_dump()), x_provider_signature):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    command = ProcessPaymentWebhook(
        payment_id=body.payment_id,
        provider_reference=body.provider_reference,
        status=body.status,
        failure_reason=body.failure_reason,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="processed")


# ---------------------------------------------------------------------------
# Sandbox provider controls
# ---------------------------------------------------------------------------
def _sandbox_provider() -> FakeMobileMoneyProvider:
    if get_settings().is_production:
        raise HTTPException(status_code=403, detail="Provider configuration not available in production")

    provider = get_provider()
    if not isinstance(provider, FakeMobileMoneyProvider):
        raise HTTPException(status_code=400, detail="Provider configuration only available for the sandbox provider")
    return provider


@router.post("/provider/configure", response_model=ProviderConfigResponse)
async def configure_provider(body: ConfigureProviderRequest) -> ProviderConfigResponse:
    """Configure the sandbox provider behavior (non-production only)."""
    provider = _sandbox_provider()
    provider.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        settle_instantly=body.settle_instantly,
        default_status=body.default_status,
    )
    return ProviderConfigResponse(
        provider=type(provider).__name__,
        should_succeed=provider.should_succeed,
        failure_reason=provider.failure_reason,
        settle_instantly=provider.settle_instantly,
        default_status=provider.default_status,
    )


@router.post("/provider/sessions/{provider_reference}/status", response_model=StatusResponse)
async def set_provider_status(provider_reference: str, body: SetProviderStatusRequest) -> StatusResponse:
    """Simulate the customer completing (or abandoning) a sandbox payment."""
    provider = _sandbox_provider()
    provider.set_status(provider_reference, body.status)
    return StatusResponse(status=body.status)
