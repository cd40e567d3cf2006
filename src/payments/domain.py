"""Payments bounded context: mobile-money payment intents and reconciliation.

A payment intent carries the order draft until the provider reports the
payment as paid; settlement then asks the ordering context for the order.
"""

from protean.domain import Domain

payments = Domain(name="payments")
