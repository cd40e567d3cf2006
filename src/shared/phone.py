"""Senegalese mobile subscriber numbers (Wave / Orange Money accounts)."""

import re

SENEGAL_PHONE_PATTERN = re.compile(r"^(\+221|221)?7[0-9]{8}$")
_STRIP = re.compile(r"[^\d+]")


def clean_phone(phone: str) -> str:
    """Drop spaces, dashes and any other separator, keeping digits and '+'."""
    return _STRIP.sub("", phone or "")


def is_valid_senegal_phone(phone: str) -> bool:
    return bool(SENEGAL_PHONE_PATTERN.match(clean_phone(phone)))


def normalize_phone(phone: str) -> str:
    """Return the number in +221XXXXXXXXX form.

    Raises ValueError for anything that is not a Senegalese mobile number.
    """
    cleaned = clean_phone(phone)
    if not SENEGAL_PHONE_PATTERN.match(cleaned):
        raise ValueError(f"Invalid Senegalese phone number: {phone!r}")
    return "+221" + cleaned[-9:]
