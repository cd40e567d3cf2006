"""Preconditions checked before a checkout leaves ``idle``.

Each failing guard contributes a field-specific message; an empty mapping
means the checkout may be submitted.
"""

from delivery.address.gate import DeliveryAddressGate
from ordering.cart.session import CartSession
from ordering.order.order import PaymentMethod
from shared.phone import is_valid_senegal_phone


def check_cart(cart: CartSession) -> dict[str, list[str]]:
    if cart.is_empty:
        return {"cart": ["Your cart is empty"]}

    vendor_ids = {item.vendor_id for item in cart.items}
    if cart.vendor_id is None or vendor_ids != {cart.vendor_id}:
        return {"cart": ["Your cart must contain items from a single shop"]}

    minimum = cart.minimum_order
    if minimum and cart.subtotal < minimum:
        return {"cart": [f"Minimum order for this shop is {minimum} FCFA"]}
    return {}


def check_address(address_gate: DeliveryAddressGate) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    if not address_gate.has_address():
        errors["address"] = ["Choose a delivery address"]
    elif not address_gate.is_zone_covered:
        errors["address"] = ["We do not deliver to this address yet"]

    if not address_gate.landmark:
        errors["landmark"] = ["Add a landmark so the rider can find you"]
    return errors


def check_payment(payment_method: PaymentMethod, customer_phone: str | None) -> dict[str, list[str]]:
    if not payment_method.is_mobile_money:
        return {}
    if not customer_phone:
        return {"phone": ["Enter the phone number linked to your mobile money account"]}
    if not is_valid_senegal_phone(customer_phone):
        return {"phone": ["Invalid phone number (e.g. 77 123 45 67)"]}
    return {}


def validate_checkout(
    cart: CartSession,
    address_gate: DeliveryAddressGate,
    payment_method: PaymentMethod,
    customer_phone: str | None = None,
) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    errors.update(check_cart(cart))
    errors.update(check_address(address_gate))
    errors.update(check_payment(payment_method, customer_phone))
    return errors
