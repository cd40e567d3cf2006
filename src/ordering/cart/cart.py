"""Cart aggregate: a single-vendor basket owned by one client session.

A cart only ever holds items from one vendor. Adding an item from another
vendor does not touch the cart; it parks the item as a pending add until the
user confirms the switch, at which point the cart is emptied and re-bound in
a single atomic change.
"""

from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import HasMany, Identifier, Integer, String, ValueObject

from ordering.cart.events import (
    CartCleared,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
    VendorSwitched,
    VendorSwitchRequested,
)
from ordering.domain import ordering
from shared.config import get_settings


class CartItemType(Enum):
    PRODUCT = "product"
    PACK = "pack"


class AddItemOutcome(Enum):
    ADDED = "added"
    VENDOR_SWITCH_REQUIRED = "vendor_switch_required"


_ITEM_FIELDS = ("item_id", "item_type", "name", "unit_price", "quantity", "vendor_id", "image_url")
_VENDOR_FIELDS = ("vendor_id", "name", "delivery_fee", "min_order", "vendor_type", "slug")


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Cart")
class VendorInfo:
    """Vendor metadata the cart needs for pricing and display."""

    vendor_id = String(required=True, max_length=64)
    name = String(required=True, max_length=255)
    delivery_fee = Integer(min_value=0)  # FCFA, falls back to the default fee
    min_order = Integer(default=0, min_value=0)
    vendor_type = String(max_length=50)
    slug = String(max_length=255)


@ordering.value_object(part_of="Cart")
class PendingAdd:
    """An add request from another vendor, waiting for confirmation."""

    item_id = String(required=True, max_length=64)
    item_type = String(choices=CartItemType, default=CartItemType.PRODUCT.value)
    name = String(required=True, max_length=255)
    unit_price = Integer(required=True, min_value=0)
    quantity = Integer(required=True, min_value=1)
    vendor_id = String(required=True, max_length=64)
    image_url = String(max_length=1024)
    vendor = ValueObject(VendorInfo)

    def to_item(self) -> "CartItem":
        return CartItem(**{field: getattr(self, field) for field in _ITEM_FIELDS})


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Cart")
class CartItem:
    """One line of the cart: a product or a pack, priced in FCFA."""

    item_id = Identifier(required=True)
    item_type = String(choices=CartItemType, default=CartItemType.PRODUCT.value)
    name = String(required=True, max_length=255)
    unit_price = Integer(required=True, min_value=0)
    quantity = Integer(required=True, min_value=1)
    vendor_id = Identifier(required=True)
    image_url = String(max_length=1024)

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Cart:
    items = HasMany(CartItem)
    vendor_id = Identifier()
    vendor = ValueObject(VendorInfo)
    pending_add = ValueObject(PendingAdd)

    @invariant.post
    def vendor_is_bound_exactly_when_items_exist(self):
        if (self.vendor_id is None) != (not self.items):
            raise ValidationError({"vendor_id": ["A cart is bound to a vendor exactly when it holds items"]})

    @invariant.post
    def items_belong_to_one_vendor(self):
        if any(str(item.vendor_id) != str(self.vendor_id) for item in self.items):
            raise ValidationError({"items": ["All items in a cart must come from the same vendor"]})

    @invariant.post
    def vendor_metadata_matches_binding(self):
        if self.vendor is not None and self.vendor.vendor_id != str(self.vendor_id):
            raise ValidationError({"vendor": ["Vendor metadata does not match the cart's vendor"]})

    # -------------------------------------------------------------------
    # Client-side storage
    # -------------------------------------------------------------------
    def snapshot(self) -> dict:
        """Plain-data copy of the cart, as kept by a ``CartStore``."""
        pending = None
        if self.pending_add is not None:
            pending = {field: getattr(self.pending_add, field) for field in _ITEM_FIELDS}
            pending["vendor"] = _vendor_dict(self.pending_add.vendor)

        return {
            "id": str(self.id),
            "vendor_id": self.vendor_id,
            "vendor": _vendor_dict(self.vendor),
            "pending_add": pending,
            "items": [{"id": str(line.id), **{field: getattr(line, field) for field in _ITEM_FIELDS}} for line in self.items],
        }

    @classmethod
    def restore(cls, data: dict) -> "Cart":
        """Rebuild a cart from ``snapshot()`` output. Invariants apply as on any construction."""
        if not isinstance(data, dict):
            raise ValidationError({"cart": ["Stored cart must be an object"]})

        pending = data.get("pending_add")
        if pending:
            pending = PendingAdd(**_pick(pending, _ITEM_FIELDS), vendor=_vendor_from(pending.get("vendor")))

        return cls(
            id=data.get("id"),
            vendor_id=data.get("vendor_id"),
            vendor=_vendor_from(data.get("vendor")),
            pending_add=pending or None,
            items=[CartItem(**_pick(line, ("id", *_ITEM_FIELDS))) for line in data.get("items") or []],
        )

    # -------------------------------------------------------------------
    # Derived amounts
    # -------------------------------------------------------------------
    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def subtotal(self) -> int:
        return sum(item.line_total for item in self.items)

    @property
    def delivery_fee(self) -> int:
        if self.vendor is not None and self.vendor.delivery_fee is not None:
            return self.vendor.delivery_fee
        return get_settings().default_delivery_fee

    @property
    def total(self) -> int:
        return self.subtotal + self.delivery_fee

    @property
    def minimum_order(self) -> int:
        if self.vendor is not None and self.vendor.min_order:
            return self.vendor.min_order
        return 0

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, item: CartItem, vendor: VendorInfo | None = None) -> AddItemOutcome:
        """Add an item, merging quantities for the same id and type.

        An item from another vendor is parked in ``pending_add`` and the cart
        is left untouched until ``confirm_vendor_switch()``.
        """
        if vendor is not None and vendor.vendor_id != str(item.vendor_id):
            raise ValidationError({"vendor": ["Vendor metadata does not match the item's vendor"]})

        if self.items and str(item.vendor_id) != str(self.vendor_id):
            self.pending_add = PendingAdd(**{field: getattr(item, field) for field in _ITEM_FIELDS}, vendor=vendor)
            self.raise_(
                VendorSwitchRequested(
                    cart_id=str(self.id),
                    current_vendor_id=str(self.vendor_id),
                    requested_vendor_id=str(item.vendor_id),
                    item_id=str(item.item_id),
                )
            )
            return AddItemOutcome.VENDOR_SWITCH_REQUIRED

        existing = self._find_line(item.item_id, item.item_type)
        with atomic_change(self):
            if existing is not None:
                existing.quantity += item.quantity
            else:
                self.add_items(item)
            self.vendor_id = item.vendor_id
            if vendor is not None:
                self.vendor = vendor
            self.pending_add = None

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=str(item.item_id),
                item_type=item.item_type,
                vendor_id=str(item.vendor_id),
                quantity=item.quantity,
            )
        )
        return AddItemOutcome.ADDED

    def confirm_vendor_switch(self) -> None:
        """Replace the whole cart with the pending item from the other vendor."""
        if self.pending_add is None:
            raise ValidationError({"pending_add": ["No vendor switch is awaiting confirmation"]})

        pending = self.pending_add
        previous_vendor_id = self.vendor_id
        discarded = len(self.items)
        item = pending.to_item()

        with atomic_change(self):
            for line in list(self.items):
                self.remove_items(line)
            self.add_items(item)
            self.vendor_id = pending.vendor_id
            self.vendor = pending.vendor
            self.pending_add = None

        self.raise_(
            VendorSwitched(
                cart_id=str(self.id),
                previous_vendor_id=str(previous_vendor_id) if previous_vendor_id else None,
                vendor_id=pending.vendor_id,
                discarded_items_count=discarded,
            )
        )
        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=pending.item_id,
                item_type=pending.item_type,
                vendor_id=pending.vendor_id,
                quantity=pending.quantity,
            )
        )

    def cancel_vendor_switch(self) -> None:
        """Keep the current cart and drop the pending add."""
        self.pending_add = None

    def update_quantity(self, item_id: str, quantity: int, item_type: CartItemType | str | None = None) -> None:
        """Set a line's quantity; zero or less removes the line."""
        line = self._get_line(item_id, item_type)
        if quantity <= 0:
            self.remove_item(item_id, item_type)
            return

        previous_quantity = line.quantity
        line.quantity = quantity
        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item_id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    def increment_quantity(self, item_id: str, item_type: CartItemType | str | None = None) -> None:
        line = self._get_line(item_id, item_type)
        self.update_quantity(item_id, line.quantity + 1, item_type)

    def decrement_quantity(self, item_id: str, item_type: CartItemType | str | None = None) -> None:
        line = self._get_line(item_id, item_type)
        self.update_quantity(item_id, line.quantity - 1, item_type)

    def remove_item(self, item_id: str, item_type: CartItemType | str | None = None) -> None:
        """Remove a line; removing the last one unbinds the vendor."""
        line = self._get_line(item_id, item_type)

        with atomic_change(self):
            self.remove_items(line)
            if not self.items:
                self.vendor_id = None
                self.vendor = None

        self.raise_(CartItemRemoved(cart_id=str(self.id), item_id=str(item_id)))

    def clear(self) -> None:
        vendor_id = self.vendor_id
        with atomic_change(self):
            for line in list(self.items):
                self.remove_items(line)
            self.vendor_id = None
            self.vendor = None
            self.pending_add = None

        self.raise_(CartCleared(cart_id=str(self.id), vendor_id=str(vendor_id) if vendor_id else None))

    # -------------------------------------------------------------------
    # Lookup helpers
    # -------------------------------------------------------------------
    def _find_line(self, item_id: str, item_type: CartItemType | str | None = None) -> CartItem | None:
        return next((line for line in self.items if _matches(line, item_id, item_type)), None)

    def _get_line(self, item_id: str, item_type: CartItemType | str | None = None) -> CartItem:
        line = self._find_line(item_id, item_type)
        if line is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})
        return line


def _matches(line: CartItem, item_id: str, item_type: CartItemType | str | None) -> bool:
    if str(line.item_id) != str(item_id):
        return False
    return item_type is None or line.item_type == CartItemType(item_type).value


def _pick(data: dict, fields: tuple[str, ...]) -> dict:
    return {field: data[field] for field in fields if data.get(field) is not None}


def _vendor_dict(vendor: VendorInfo | None) -> dict | None:
    if vendor is None:
        return None
    return {field: getattr(vendor, field) for field in _VENDOR_FIELDS}


def _vendor_from(data: dict | None) -> VendorInfo | None:
    return VendorInfo(**_pick(data, _VENDOR_FIELDS)) if data else None
