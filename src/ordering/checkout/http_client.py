"""httpx adapter implementing the checkout ports against the storefront API."""

import httpx
import structlog

from delivery.zone.coverage import NearestZone, ZoneCoverage, ZoneCoverageService
from ordering.checkout.collaborators import (
    InstantOrder,
    OrderService,
    PaymentInitiation,
    PaymentRequest,
    PaymentService,
    PaymentStatusReport,
)
from ordering.order.creation import CreateOrder, OrderCreationResult, OutOfStock
from shared.config import get_settings
from shared.exceptions import CollaboratorUnavailable

logger = structlog.get_logger(__name__)


class HttpCheckoutClient(OrderService, PaymentService, ZoneCoverageService):
    def __init__(
        self,
        base_url: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ) -> None:
        settings = get_settings()
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            transport=transport,
            timeout=timeout or settings.http_timeout,
        )

    async def __aenter__(self) -> "HttpCheckoutClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # -------------------------------------------------------------------
    # Zones
    # -------------------------------------------------------------------
    async def check_zone_coverage(self, latitude: float, longitude: float) -> ZoneCoverage:
        body = await self._request("GET", "/zones/coverage", params={"latitude": latitude, "longitude": longitude})
        nearest = body.get("nearest_zone")
        return ZoneCoverage(
            is_covered=bool(body.get("is_covered")),
            nearest_zone=NearestZone(name=nearest["name"], city=nearest["city"]) if nearest else None,
        )

    # -------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------
    async def create_order(self, draft: CreateOrder) -> OrderCreationResult:
        body = await self._request("POST", "/orders", json=draft.model_dump(mode="json"))
        out_of_stock = body.get("out_of_stock")
        return OrderCreationResult(
            success=bool(body.get("success")),
            order_id=body.get("order_id"),
            order_number=body.get("order_number"),
            out_of_stock=OutOfStock(**out_of_stock) if out_of_stock else None,
            error=body.get("error") or _detail(body),
            duplicate=bool(body.get("duplicate")),
        )

    # -------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------
    async def initiate_payment(self, request: PaymentRequest) -> PaymentInitiation:
        payload = {
            "amount": request.amount,
            "method": request.method.value,
            "customer_phone": request.customer_phone,
            "order_draft": request.order_draft.model_dump(mode="json"),
        }
        body = await self._request("POST", "/payments", json=payload)
        instant = body.get("instant_order")
        return PaymentInitiation(
            success=bool(body.get("success")),
            payment_id=body.get("payment_id"),
            redirect_url=body.get("redirect_url"),
            instant_order=InstantOrder(**instant) if instant else None,
            error=body.get("error") or _detail(body),
        )

    async def check_payment_status(self, payment_id: str) -> PaymentStatusReport:
        body = await self._request("GET", f"/payments/{payment_id}/status")
        return PaymentStatusReport(
            success=bool(body.get("success")),
            status=body.get("status") or "pending",
            order_id=body.get("order_id"),
            order_number=body.get("order_number"),
        )

    async def _request(self, method: str, url: str, **kwargs) -> dict:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Request failed", method=method, url=url, error=str(exc))
            raise CollaboratorUnavailable(f"{method} {url}: {exc}") from exc

        if response.status_code >= 500:
            logger.warning("Server error", method=method, url=url, status_code=response.status_code)
            raise CollaboratorUnavailable(f"{method} {url}: HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise CollaboratorUnavailable(f"{method} {url}: invalid JSON response") from exc

        if not isinstance(body, dict):
            raise CollaboratorUnavailable(f"{method} {url}: unexpected response shape")
        return body


def _detail(body: dict) -> str | None:
    """Error text from a FastAPI error body (``{"detail": ...}``)."""
    detail = body.get("detail")
    if detail is None:
        return None
    if isinstance(detail, str):
        return detail
    return str(detail)
