"""Domain events for the Cart aggregate."""

from protean.fields import Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Cart")
class CartItemAdded:
    """An item was added to the cart (or its quantity merged)."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    item_type = String(required=True, max_length=16)
    vendor_id = Identifier(required=True)
    quantity = Integer(required=True)


@ordering.event(part_of="Cart")
class CartQuantityUpdated:
    """The quantity of a cart line was changed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="Cart")
class CartItemRemoved:
    """A line was removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)


@ordering.event(part_of="Cart")
class VendorSwitchRequested:
    """An item from another vendor is waiting for the user's confirmation."""

    __version__ = 1

    cart_id = Identifier(required=True)
    current_vendor_id = Identifier(required=True)
    requested_vendor_id = Identifier(required=True)
    item_id = Identifier(required=True)


@ordering.event(part_of="Cart")
class VendorSwitched:
    """The cart was emptied and re-bound to another vendor."""

    __version__ = 1

    cart_id = Identifier(required=True)
    previous_vendor_id = Identifier()
    vendor_id = Identifier(required=True)
    discarded_items_count = Integer(required=True)


@ordering.event(part_of="Cart")
class CartCleared:
    """Every line was removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    vendor_id = Identifier()
