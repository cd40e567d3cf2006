"""Cart persistence hooks.

The cart aggregate knows nothing about client-side storage. A session is
given a ``CartStore`` to load the cart when it starts and to save it after
every change, so a reloaded client finds the same basket.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path

import structlog
from protean.exceptions import ValidationError

from ordering.cart.cart import Cart

logger = structlog.get_logger(__name__)


class CartStore(ABC):
    @abstractmethod
    def load(self) -> Cart:
        """Return the persisted cart, or a new empty cart."""
        ...

    @abstractmethod
    def save(self, cart: Cart) -> None:
        """Persist the cart's current state."""
        ...


class InMemoryCartStore(CartStore):
    def __init__(self) -> None:
        self._payload: str | None = None
        self.saves = 0

    def load(self) -> Cart:
        if self._payload is None:
            return Cart()
        return Cart.restore(json.loads(self._payload))

    def save(self, cart: Cart) -> None:
        self._payload = json.dumps(cart.snapshot())
        self.saves += 1


class JsonFileCartStore(CartStore):
    """Keeps the cart in a JSON file, one file per client session."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> Cart:
        if not self.path.exists():
            return Cart()
        try:
            return Cart.restore(json.loads(self.path.read_text(encoding="utf-8")))
        except (ValueError, TypeError, ValidationError):
            # Malformed JSON or a cart breaking its invariants starts a new cart
            logger.warning("Discarding unreadable cart file", path=str(self.path))
            return Cart()

    def save(self, cart: Cart) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(cart.snapshot()), encoding="utf-8")
        tmp_path.replace(self.path)
