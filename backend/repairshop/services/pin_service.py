# Overview: Shop security PIN guarding protected screens (reports, settings).

"""
Security PIN

A shop's PIN is always in one of two states:

    Unset      no hash stored; the well-known default PIN is accepted
    Set(hash)  bcrypt hash stored; only the matching PIN is accepted

The first successful verification of the default PIN moves the shop from
Unset to Set, so the default stops being special afterwards.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import bcrypt

from ..extensions import db
from ..models import Shop
from repairshop.errors import AuthenticationError, NotFoundError, ValidationError


DEFAULT_SECURITY_PIN = "123456"
PIN_PATTERN = re.compile(r"^\d{4,6}$")


@dataclass(frozen=True)
class SecurityPin:
    pin_hash: str | None = None

    @property
    def is_set(self) -> bool:
        return self.pin_hash is not None

    @classmethod
    def for_shop(cls, shop: Shop) -> "SecurityPin":
        return cls(shop.security_pin_hash)

    @classmethod
    def from_plain(cls, pin: str) -> "SecurityPin":
        validate_pin_format(pin)
        hashed = bcrypt.hashpw(pin.encode("utf-8"), bcrypt.gensalt(rounds=12))
        return cls(hashed.decode("utf-8"))

    def matches(self, pin) -> bool:
        pin = str(pin or "")
        if not self.is_set:
            return pin == DEFAULT_SECURITY_PIN
        try:
            return bcrypt.checkpw(pin.encode("utf-8"), self.pin_hash.encode("utf-8"))
        except ValueError:
            return False


def validate_pin_format(pin) -> str:
    if not isinstance(pin, str) or not PIN_PATTERN.match(pin):
        raise ValidationError("PIN must be 4 to 6 digits")
    return pin


def _get_shop(shop_id: int) -> Shop:
    shop = db.session.get(Shop, shop_id)
    if shop is None:
        raise NotFoundError("Shop not found")
    return shop


def verify_shop_pin(shop_id: int, pin) -> bool:
    """
    Raises AuthenticationError on mismatch. A matching default PIN on an
    Unset shop is stored so the shop becomes Set.
    """
    shop = _get_shop(shop_id)
    current = SecurityPin.for_shop(shop)
    if not current.matches(pin):
        raise AuthenticationError("Invalid PIN")
    if not current.is_set:
        shop.security_pin_hash = SecurityPin.from_plain(DEFAULT_SECURITY_PIN).pin_hash
        db.session.commit()
    return True


def update_shop_pin(shop_id: int, current_pin, new_pin) -> None:
    shop = _get_shop(shop_id)
    if not SecurityPin.for_shop(shop).matches(current_pin):
        raise AuthenticationError("Current PIN is incorrect")
    shop.security_pin_hash = SecurityPin.from_plain(new_pin).pin_hash
    db.session.commit()


def admin_reset_pin(shop_id: int, new_pin: str | None = None) -> None:
    """Super-admin override. Without a new PIN the shop goes back to Unset."""
    shop = _get_shop(shop_id)
    shop.security_pin_hash = SecurityPin.from_plain(new_pin).pin_hash if new_pin else None
    db.session.commit()
