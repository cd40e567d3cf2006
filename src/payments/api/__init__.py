"""Payments domain API package."""

from payments.api.routes import router

__all__ = ["router"]
