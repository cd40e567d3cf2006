"""Delivery domain API package."""

from delivery.api.routes import router

__all__ = ["router"]
