"""Configurable sandbox mobile-money provider for development and testing.

This adapter simulates Wave / Orange Money without any external calls. It can
be configured at runtime to refuse sessions, settle them instantly, or report
a scripted sequence of statuses, making it useful for:
- Manual API testing via /payments/provider/configure
- Automated tests with predictable outcomes
- Development without provider credentials
"""

import hmac
from collections import deque
from uuid import uuid4

from payments.provider.port import PROVIDER_STATUSES, MobileMoneyProvider, PaymentSession, ProviderError
from shared.config import get_settings


class FakeMobileMoneyProvider(MobileMoneyProvider):
    """Configurable sandbox provider."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Payment refused by provider"
        self.settle_instantly: bool = False
        self.default_status: str = "pending"
        self.unavailable: bool = False
        self.calls: list[dict] = []
        self._statuses: dict[str, str] = {}
        self._scripts: dict[str, deque[str]] = {}

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Payment refused by provider",
        settle_instantly: bool = False,
        default_status: str = "pending",
    ) -> None:
        """Configure provider behavior at runtime."""
        if default_status not in PROVIDER_STATUSES:
            raise ValueError(f"Unknown provider status: {default_status}")
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.settle_instantly = settle_instantly
        self.default_status = default_status

    def set_status(self, provider_reference: str, status: str) -> None:
        if status not in PROVIDER_STATUSES:
            raise ValueError(f"Unknown provider status: {status}")
        self._statuses[provider_reference] = status

    def script_statuses(self, provider_reference: str, statuses: list[str]) -> None:
        """Queue statuses returned by successive ``fetch_status`` calls.

        The last scripted status sticks once the queue is drained.
        """
        for status in statuses:
            if status not in PROVIDER_STATUSES:
                raise ValueError(f"Unknown provider status: {status}")
        self._scripts[provider_reference] = deque(statuses)

    def create_payment_session(
        self,
        amount: int,
        method: str,
        customer_phone: str,
        idempotency_key: str,
    ) -> PaymentSession:
        self.calls.append(
            {
                "method": "create_payment_session",
                "amount": amount,
                "payment_method": method,
                "customer_phone": customer_phone,
                "idempotency_key": idempotency_key,
            }
        )
        if self.unavailable:
            raise ProviderError("Provider unavailable")

        if not self.should_succeed:
            return PaymentSession(success=False, failure_reason=self.failure_reason)

        reference = f"fake_{method}_{uuid4().hex[:12]}"
        if self.settle_instantly:
            self._statuses[reference] = "paid"
            return PaymentSession(success=True, provider_reference=reference, settled=True)

        self._statuses.setdefault(reference, self.default_status)
        return PaymentSession(
            success=True,
            provider_reference=reference,
            redirect_url=f"https://sandbox.pay.local/{method}/checkout/{reference}",
        )

    def fetch_status(self, provider_reference: str) -> str:
        self.calls.append({"method": "fetch_status", "provider_reference": provider_reference})
        if self.unavailable:
            raise ProviderError("Provider unavailable")

        script = self._scripts.get(provider_reference)
        if script:
            status = script.popleft() if len(script) > 1 else script[0]
            self._statuses[provider_reference] = status
            return status
        return self._statuses.get(provider_reference, self.default_status)

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:  # noqa: ARG002
        return hmac.compare_digest(signature, get_settings().webhook_secret)
