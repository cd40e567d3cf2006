"""Mobile-money provider port (abstract interface).

Defines the contract that mobile-money adapters implement. The sandbox
adapter is used in development and tests; a Wave or Orange Money adapter
plugs in behind the same interface without touching the payment handlers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

PROVIDER_STATUSES = frozenset({"pending", "paid", "failed", "cancelled", "expired"})


class ProviderError(Exception):
    """The provider could not be reached or rejected the request outright."""


@dataclass(frozen=True)
class PaymentSession:
    """Result of opening a payment session with the provider."""

    success: bool
    provider_reference: str | None = None
    redirect_url: str | None = None
    settled: bool = False  # paid on the spot, no redirect needed
    failure_reason: str | None = None


class MobileMoneyProvider(ABC):
    """Abstract mobile-money provider interface."""

    @abstractmethod
    def create_payment_session(
        self,
        amount: int,
        method: str,
        customer_phone: str,
        idempotency_key: str,
    ) -> PaymentSession:
        """Open a payment session the customer completes out-of-band."""
        ...

    @abstractmethod
    def fetch_status(self, provider_reference: str) -> str:
        """Return one of ``PROVIDER_STATUSES`` for a session."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        """Verify that a webhook callback came from the provider."""
        ...
