"""Ports for the services the checkout flow talks to.

The orchestrator and the reconciliation poller depend only on these
interfaces. ``HttpCheckoutClient`` implements them against the storefront
API; tests substitute in-memory fakes. Adapters raise
``CollaboratorUnavailable`` for transport failures and server errors, and
return a result with ``success=False`` for business refusals.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from delivery.zone.coverage import ZoneCoverage, ZoneCoverageService
from ordering.order.creation import CreateOrder, OrderCreationResult, OutOfStock
from ordering.order.order import PaymentMethod

__all__ = [
    "InstantOrder",
    "OrderCreationResult",
    "OrderService",
    "OutOfStock",
    "PaymentInitiation",
    "PaymentRequest",
    "PaymentService",
    "PaymentStatusReport",
    "ZoneCoverage",
    "ZoneCoverageService",
]


@dataclass(frozen=True)
class PaymentRequest:
    amount: int
    method: PaymentMethod
    customer_phone: str
    order_draft: CreateOrder


@dataclass(frozen=True)
class InstantOrder:
    order_id: str
    order_number: str


@dataclass(frozen=True)
class PaymentInitiation:
    success: bool
    payment_id: str | None = None
    redirect_url: str | None = None
    instant_order: InstantOrder | None = None
    error: str | None = None


@dataclass(frozen=True)
class PaymentStatusReport:
    success: bool
    status: str = "pending"  # pending | paid | failed | cancelled | expired
    order_id: str | None = None
    order_number: str | None = None


class OrderService(ABC):
    @abstractmethod
    async def create_order(self, draft: CreateOrder) -> OrderCreationResult: ...


class PaymentService(ABC):
    @abstractmethod
    async def initiate_payment(self, request: PaymentRequest) -> PaymentInitiation: ...

    @abstractmethod
    async def check_payment_status(self, payment_id: str) -> PaymentStatusReport: ...
