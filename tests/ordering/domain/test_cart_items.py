"""Tests for adding, updating and removing cart items."""

import pytest

from factories import make_item, make_vendor
from ordering.cart.cart import AddItemOutcome, Cart, CartItemType
from ordering.cart.events import CartCleared, CartItemAdded, CartItemRemoved, CartQuantityUpdated
from protean.exceptions import ValidationError


def _cart_with(*items, vendor=None) -> Cart:
    cart = Cart()
    for item in items:
        cart.add_item(item, vendor)
    return cart


class TestAddItem:
    def test_add_to_empty_cart_binds_vendor(self):
        cart = Cart()
        outcome = cart.add_item(make_item(item_id="p1", vendor_id="V1", unit_price=1000, quantity=1))

        assert outcome is AddItemOutcome.ADDED
        assert [(i.item_id, i.quantity) for i in cart.items] == [("p1", 1)]
        assert cart.vendor_id == "V1"

    def test_add_stores_vendor_metadata(self):
        vendor = make_vendor(vendor_id="V1", delivery_fee=1500)
        cart = _cart_with(make_item(), vendor=vendor)
        assert cart.vendor == vendor
        assert cart.delivery_fee == 1500

    def test_same_item_merges_quantity(self):
        cart = _cart_with(make_item(quantity=1), make_item(quantity=2))
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 3

    def test_same_id_different_type_is_a_separate_line(self):
        cart = _cart_with(make_item(item_id="x1"), make_item(item_id="x1", item_type=CartItemType.PACK.value))
        assert len(cart.items) == 2

    def test_same_vendor_different_item_appends(self):
        cart = _cart_with(make_item(item_id="p1"), make_item(item_id="p2"))
        assert [i.item_id for i in cart.items] == ["p1", "p2"]

    def test_zero_quantity_rejected(self):
        cart = Cart()
        with pytest.raises(ValidationError) as exc:
            cart.add_item(make_item(quantity=0))
        assert "quantity" in exc.value.messages
        assert cart.is_empty

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValidationError):
            Cart().add_item(make_item(quantity=-2))

    def test_vendor_metadata_must_match_item(self):
        with pytest.raises(ValidationError) as exc:
            Cart().add_item(make_item(vendor_id="V1"), make_vendor(vendor_id="V2"))
        assert "vendor" in exc.value.messages

    def test_add_raises_event(self):
        cart = _cart_with(make_item(item_id="p1", quantity=2))
        assert len(cart._events) == 1
        event = cart._events[0]
        assert isinstance(event, CartItemAdded)
        assert event.item_id == "p1"
        assert event.quantity == 2
        assert event.vendor_id == "V1"


class TestDerivedAmounts:
    def test_subtotal_and_total_items(self):
        cart = _cart_with(
            make_item(item_id="p1", unit_price=1000, quantity=2),
            make_item(item_id="p2", unit_price=2500, quantity=1),
        )
        assert cart.subtotal == 4500
        assert cart.total_items == 3

    def test_total_includes_vendor_delivery_fee(self):
        cart = _cart_with(make_item(unit_price=3000), vendor=make_vendor(delivery_fee=500))
        assert cart.total == 3500

    def test_default_delivery_fee_without_vendor_fee(self):
        cart = _cart_with(make_item(unit_price=3000), vendor=make_vendor(delivery_fee=None))
        assert cart.delivery_fee == 1000
        assert cart.total == 4000

    def test_default_delivery_fee_follows_settings(self, monkeypatch):
        from shared.config import reset_settings

        monkeypatch.setenv("DEFAULT_DELIVERY_FEE", "750")
        reset_settings()
        cart = _cart_with(make_item(unit_price=3000))
        assert cart.delivery_fee == 750

    def test_empty_cart_amounts(self):
        cart = Cart()
        assert cart.subtotal == 0
        assert cart.total_items == 0
        assert cart.is_empty

    def test_minimum_order_comes_from_vendor(self):
        cart = _cart_with(make_item(), vendor=make_vendor(min_order=2000))
        assert cart.minimum_order == 2000
        assert Cart().minimum_order == 0


class TestUpdateQuantity:
    def test_set_quantity(self):
        cart = _cart_with(make_item(quantity=1))
        cart.update_quantity("p1", 4)
        assert cart.items[0].quantity == 4

    def test_update_raises_event(self):
        cart = _cart_with(make_item(quantity=1))
        cart.update_quantity("p1", 3)
        event = cart._events[-1]
        assert isinstance(event, CartQuantityUpdated)
        assert (event.previous_quantity, event.new_quantity) == (1, 3)

    def test_zero_removes_line(self):
        cart = _cart_with(make_item(item_id="p1"), make_item(item_id="p2"))
        cart.update_quantity("p1", 0)
        assert [i.item_id for i in cart.items] == ["p2"]
        assert cart.vendor_id == "V1"

    def test_negative_removes_line(self):
        cart = _cart_with(make_item(item_id="p1"), make_item(item_id="p2"))
        cart.update_quantity("p2", -1)
        assert [i.item_id for i in cart.items] == ["p1"]

    def test_zero_on_last_line_unbinds_vendor(self):
        cart = _cart_with(make_item(), vendor=make_vendor())
        cart.update_quantity("p1", 0)
        assert cart.is_empty
        assert cart.vendor_id is None
        assert cart.vendor is None

    def test_unknown_item_rejected(self):
        cart = _cart_with(make_item())
        with pytest.raises(ValidationError) as exc:
            cart.update_quantity("missing", 2)
        assert exc.value.messages == {"item_id": ["Item not found in cart"]}

    def test_increment_and_decrement(self):
        cart = _cart_with(make_item(quantity=2))
        cart.increment_quantity("p1")
        assert cart.items[0].quantity == 3
        cart.decrement_quantity("p1")
        cart.decrement_quantity("p1")
        assert cart.items[0].quantity == 1

    def test_decrement_from_one_removes_line(self):
        cart = _cart_with(make_item(quantity=1))
        cart.decrement_quantity("p1")
        assert cart.is_empty
        assert cart.vendor_id is None

    def test_update_targets_item_type(self):
        cart = _cart_with(make_item(item_id="x1"), make_item(item_id="x1", item_type=CartItemType.PACK.value))
        cart.update_quantity("x1", 5, CartItemType.PACK)
        quantities = {i.item_type: i.quantity for i in cart.items}
        assert quantities == {"product": 1, "pack": 5}


class TestRemoveAndClear:
    def test_remove_item(self):
        cart = _cart_with(make_item(item_id="p1"), make_item(item_id="p2"))
        cart.remove_item("p1")
        assert [i.item_id for i in cart.items] == ["p2"]
        assert isinstance(cart._events[-1], CartItemRemoved)

    def test_remove_last_item_unbinds_vendor(self):
        cart = _cart_with(make_item(), vendor=make_vendor())
        cart.remove_item("p1")
        assert cart.vendor_id is None
        assert cart.vendor is None

    def test_remove_unknown_item_rejected(self):
        with pytest.raises(ValidationError):
            _cart_with(make_item()).remove_item("nope")

    def test_clear(self):
        cart = _cart_with(make_item(item_id="p1"), make_item(item_id="p2"), vendor=make_vendor())
        cart.clear()
        assert cart.is_empty
        assert cart.vendor_id is None
        assert cart.vendor is None
        event = cart._events[-1]
        assert isinstance(event, CartCleared)
        assert event.vendor_id == "V1"

    def test_clear_drops_pending_switch(self):
        cart = _cart_with(make_item(vendor_id="V1"))
        cart.add_item(make_item(item_id="p2", vendor_id="V2"))
        cart.clear()
        assert cart.pending_add is None


class TestCartInvariants:
    def test_cannot_construct_mixed_vendor_cart(self):
        with pytest.raises(ValidationError):
            Cart(items=[make_item(item_id="p1", vendor_id="V1"), make_item(item_id="p2", vendor_id="V2")], vendor_id="V1")

    def test_cannot_have_items_without_vendor(self):
        with pytest.raises(ValidationError):
            Cart(items=[make_item()])

    def test_cannot_bind_vendor_to_empty_cart(self):
        with pytest.raises(ValidationError):
            Cart(vendor_id="V1")

    def test_direct_assignment_is_checked(self):
        cart = _cart_with(make_item(vendor_id="V1"))
        with pytest.raises(ValidationError):
            cart.vendor_id = "V2"
