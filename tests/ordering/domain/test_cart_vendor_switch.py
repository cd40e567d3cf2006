"""Tests for the single-vendor rule and the vendor switch confirmation."""

import random

import pytest

from factories import make_item, make_vendor
from ordering.cart.cart import AddItemOutcome, Cart
from ordering.cart.events import CartItemAdded, VendorSwitched, VendorSwitchRequested
from protean.exceptions import ValidationError


@pytest.fixture
def cart_v1() -> Cart:
    cart = Cart()
    cart.add_item(make_item(item_id="p1", vendor_id="V1", unit_price=1000), make_vendor(vendor_id="V1", name="Chez Fatou"))
    return cart


class TestVendorSwitchRequest:
    def test_other_vendor_is_parked_not_added(self, cart_v1):
        outcome = cart_v1.add_item(make_item(item_id="p2", vendor_id="V2"), make_vendor(vendor_id="V2", name="Le Lagon"))

        assert outcome is AddItemOutcome.VENDOR_SWITCH_REQUIRED
        assert [i.item_id for i in cart_v1.items] == ["p1"]
        assert cart_v1.vendor_id == "V1"
        assert cart_v1.pending_add is not None
        assert cart_v1.pending_add.item_id == "p2"

    def test_pending_add_carries_both_vendor_names(self, cart_v1):
        cart_v1.add_item(make_item(item_id="p2", vendor_id="V2"), make_vendor(vendor_id="V2", name="Le Lagon"))
        assert cart_v1.vendor.name == "Chez Fatou"
        assert cart_v1.pending_add.vendor.name == "Le Lagon"

    def test_switch_request_raises_event(self, cart_v1):
        cart_v1.add_item(make_item(item_id="p2", vendor_id="V2"))
        event = cart_v1._events[-1]
        assert isinstance(event, VendorSwitchRequested)
        assert event.current_vendor_id == "V1"
        assert event.requested_vendor_id == "V2"


class TestConfirmVendorSwitch:
    def test_confirm_replaces_cart(self, cart_v1):
        cart_v1.add_item(make_item(item_id="p2", vendor_id="V2"), make_vendor(vendor_id="V2", name="Le Lagon"))
        cart_v1.confirm_vendor_switch()

        assert [(i.item_id, i.quantity) for i in cart_v1.items] == [("p2", 1)]
        assert cart_v1.vendor_id == "V2"
        assert cart_v1.vendor.name == "Le Lagon"
        assert cart_v1.pending_add is None

    def test_confirm_raises_switch_and_add_events(self, cart_v1):
        cart_v1.add_item(make_item(item_id="p2", vendor_id="V2"))
        cart_v1.confirm_vendor_switch()

        switched, added = cart_v1._events[-2:]
        assert isinstance(switched, VendorSwitched)
        assert switched.previous_vendor_id == "V1"
        assert switched.discarded_items_count == 1
        assert isinstance(added, CartItemAdded)
        assert added.vendor_id == "V2"

    def test_confirm_without_pending_rejected(self, cart_v1):
        with pytest.raises(ValidationError):
            cart_v1.confirm_vendor_switch()

    def test_confirm_after_cart_emptied(self, cart_v1):
        cart_v1.add_item(make_item(item_id="p2", vendor_id="V2"))
        cart_v1.remove_item("p1")
        cart_v1.confirm_vendor_switch()
        assert cart_v1.vendor_id == "V2"
        assert cart_v1._events[-2].previous_vendor_id is None


class TestCancelVendorSwitch:
    def test_cancel_keeps_cart(self, cart_v1):
        cart_v1.add_item(make_item(item_id="p2", vendor_id="V2"))
        cart_v1.cancel_vendor_switch()

        assert [i.item_id for i in cart_v1.items] == ["p1"]
        assert cart_v1.vendor_id == "V1"
        assert cart_v1.pending_add is None

    def test_same_vendor_add_discards_stale_pending(self, cart_v1):
        cart_v1.add_item(make_item(item_id="p2", vendor_id="V2"))
        cart_v1.add_item(make_item(item_id="p3", vendor_id="V1"))
        assert cart_v1.pending_add is None


class TestSingleVendorProperty:
    @pytest.mark.parametrize("seed", range(20))
    def test_any_sequence_of_adds_keeps_one_vendor(self, seed):
        rng = random.Random(seed)
        cart = Cart()

        for step in range(30):
            vendor_id = rng.choice(["V1", "V2", "V3"])
            item = make_item(item_id=f"p{rng.randint(1, 5)}", vendor_id=vendor_id, quantity=rng.randint(1, 3))
            outcome = cart.add_item(item)
            if outcome is AddItemOutcome.VENDOR_SWITCH_REQUIRED and rng.random() < 0.5:
                cart.confirm_vendor_switch()
            elif outcome is AddItemOutcome.VENDOR_SWITCH_REQUIRED:
                cart.cancel_vendor_switch()
            if step % 7 == 6 and cart.items:
                cart.remove_item(rng.choice(cart.items).item_id)

            vendors = {i.vendor_id for i in cart.items}
            assert len(vendors) <= 1
            assert (cart.vendor_id is None) == (not cart.items)
            if cart.items:
                assert vendors == {cart.vendor_id}
