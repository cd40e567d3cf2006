"""Environment-driven settings for the storefront services.

Every value can be overridden through an environment variable. Settings are
read once and cached; tests call ``reset_settings()`` after patching the
environment.
"""

import os
from functools import lru_cache

from pydantic import BaseModel, Field

DEFAULT_DELIVERY_FEE = 1000  # FCFA
PAYMENT_POLL_INTERVAL_SECONDS = 3.0
PAYMENT_MAX_POLLS = 60


class Settings(BaseModel):
    env: str = "development"
    database_uri: str = "sqlite:///dakarcart.db"
    api_base_url: str = "http://localhost:8000"
    http_timeout: float = Field(default=10.0, gt=0)
    payment_poll_interval: float = Field(default=PAYMENT_POLL_INTERVAL_SECONDS, ge=0)
    payment_max_polls: int = Field(default=PAYMENT_MAX_POLLS, ge=1)
    default_delivery_fee: int = Field(default=DEFAULT_DELIVERY_FEE, ge=0)
    order_number_prefix: str = "YON"
    webhook_secret: str = "test-signature"

    @property
    def is_production(self) -> bool:
        return self.env == "production"


_ENV_VARS = {
    "env": "DAKARCART_ENV",
    "database_uri": "DATABASE_URI",
    "api_base_url": "API_BASE_URL",
    "http_timeout": "HTTP_TIMEOUT",
    "payment_poll_interval": "PAYMENT_POLL_INTERVAL",
    "payment_max_polls": "PAYMENT_MAX_POLLS",
    "default_delivery_fee": "DEFAULT_DELIVERY_FEE",
    "order_number_prefix": "ORDER_NUMBER_PREFIX",
    "webhook_secret": "WEBHOOK_SECRET",
}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings from the environment (pydantic coerces the raw strings)."""
    overrides = {field: os.environ[var] for field, var in _ENV_VARS.items() if var in os.environ}
    return Settings(**overrides)


def reset_settings() -> None:
    get_settings.cache_clear()
