"""Client-side cart session: the cart surface the storefront UI talks to.

Every mutation goes through the aggregate. Once it succeeds the cart is added
to the ordering repository, whose unit of work hands the raised events to the
event store, and then saved through the injected client-side store.

A session must run inside the ordering domain context.
"""

import structlog
from protean.utils.globals import current_domain

from ordering.cart.cart import AddItemOutcome, Cart, CartItem, CartItemType, PendingAdd, VendorInfo
from ordering.cart.store import CartStore, InMemoryCartStore

logger = structlog.get_logger(__name__)


class CartSession:
    def __init__(self, store: CartStore | None = None) -> None:
        self.store = store or InMemoryCartStore()
        self.cart: Cart = self.store.load()
        current_domain.repository_for(Cart).add(self.cart)

    def _persist(self) -> None:
        current_domain.repository_for(Cart).add(self.cart)
        self.store.save(self.cart)

    # -------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------
    @property
    def items(self) -> list[CartItem]:
        return list(self.cart.items)

    @property
    def vendor_id(self) -> str | None:
        return self.cart.vendor_id

    @property
    def vendor(self) -> VendorInfo | None:
        return self.cart.vendor

    @property
    def pending_add(self) -> PendingAdd | None:
        return self.cart.pending_add

    @property
    def subtotal(self) -> int:
        return self.cart.subtotal

    @property
    def delivery_fee(self) -> int:
        return self.cart.delivery_fee

    @property
    def total(self) -> int:
        return self.cart.total

    @property
    def total_items(self) -> int:
        return self.cart.total_items

    @property
    def minimum_order(self) -> int:
        return self.cart.minimum_order

    @property
    def is_empty(self) -> bool:
        return self.cart.is_empty

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def add_item(self, item: CartItem, vendor: VendorInfo | None = None) -> AddItemOutcome:
        outcome = self.cart.add_item(item, vendor)
        if outcome is AddItemOutcome.VENDOR_SWITCH_REQUIRED:
            logger.info(
                "Vendor switch awaiting confirmation",
                current_vendor_id=self.cart.vendor_id,
                requested_vendor_id=item.vendor_id,
            )
        self._persist()
        return outcome

    def confirm_vendor_switch(self) -> None:
        self.cart.confirm_vendor_switch()
        self._persist()

    def cancel_vendor_switch(self) -> None:
        self.cart.cancel_vendor_switch()
        self._persist()

    def update_quantity(self, item_id: str, quantity: int, item_type: CartItemType | str | None = None) -> None:
        self.cart.update_quantity(item_id, quantity, item_type)
        self._persist()

    def increment_quantity(self, item_id: str, item_type: CartItemType | str | None = None) -> None:
        self.cart.increment_quantity(item_id, item_type)
        self._persist()

    def decrement_quantity(self, item_id: str, item_type: CartItemType | str | None = None) -> None:
        self.cart.decrement_quantity(item_id, item_type)
        self._persist()

    def remove_item(self, item_id: str, item_type: CartItemType | str | None = None) -> None:
        self.cart.remove_item(item_id, item_type)
        self._persist()

    def clear(self) -> None:
        self.cart.clear()
        self._persist()
