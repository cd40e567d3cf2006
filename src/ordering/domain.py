"""Ordering bounded context: the storefront cart, checkout and orders.

The cart is a client-side aggregate that raises its events through the
domain; orders are written once per checkout by the order creation service.
"""

from protean.domain import Domain

ordering = Domain(name="ordering")
