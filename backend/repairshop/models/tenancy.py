from __future__ import annotations

from ..extensions import db
from repairshop.time_utils import to_utc_z


# Feature tiers, decoupled from billing duration. defaultStaff seeds the quota
# when an admin assigns a class without an explicit limit.
SUBSCRIPTION_CLASSES = {
    "Basic": {"default_staff": 1, "label": "Basic"},
    "Pro": {"default_staff": 10, "label": "Pro"},
    "ProMax": {"default_staff": 10000, "label": "Pro Max"},
}


class Shop(db.Model):
    """
    Multi-tenant root: every repair business is a Shop.

    Jobs, staff, expenses, owner tokens and users all carry shop_id, and
    every query touching them is scoped by it.

    SUBSCRIPTION:
    - subscription_expire is always set once a shop exists
    - max_staff_allowed >= 1 (check constraint)
    - payment_history is append-only (ShopPayment rows)
    """
    __tablename__ = "shops"
    __table_args__ = (
        db.CheckConstraint("max_staff_allowed >= 1", name="ck_shops_max_staff_min"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_name = db.Column(db.String(255), nullable=False)
    owner_name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False, unique=True, index=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    address = db.Column(db.String(500), nullable=True)

    # NULL means the well-known default PIN is still in effect (see pin_service)
    security_pin_hash = db.Column(db.String(255), nullable=True)
    logo_url = db.Column(db.String(500), nullable=True)
    custom_rule = db.Column(db.Text, nullable=False, default="")

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    subscription_start = db.Column(db.DateTime(timezone=True), nullable=False)
    subscription_expire = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    subscription_plan = db.Column(db.String(120), nullable=False, default="trial")
    subscription_class = db.Column(db.String(32), nullable=False, default="Basic")
    max_staff_allowed = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    payment_history = db.relationship(
        "ShopPayment",
        order_by="ShopPayment.id",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Shop id={self.id} name={self.shop_name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_name": self.shop_name,
            "owner_name": self.owner_name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "has_security_pin": self.security_pin_hash is not None,
            "logo_url": self.logo_url,
            "custom_rule": self.custom_rule,
            "is_active": self.is_active,
            "subscription_start": to_utc_z(self.subscription_start),
            "subscription_expire": to_utc_z(self.subscription_expire),
            "subscription_plan": self.subscription_plan,
            "subscription_class": self.subscription_class,
            "max_staff_allowed": self.max_staff_allowed,
            "payment_history": [p.to_dict() for p in self.payment_history],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ShopPayment(db.Model):
    """Append-only billing history entry; never updated or deleted in place."""
    __tablename__ = "shop_payments"
    __table_args__ = (
        db.Index("ix_shop_payments_shop_date", "shop_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    plan_name = db.Column(db.String(120), nullable=True)
    price = db.Column(db.Integer, nullable=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "plan_name": self.plan_name,
            "price": self.price,
            "date": to_utc_z(self.date),
        }


class OwnerToken(db.Model):
    """
    Short-lived owner link token. Scanning the owner QR binds a chat handle,
    which then receives the daily summary.
    """
    __tablename__ = "owner_tokens"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    token = db.Column(db.String(96), nullable=False, unique=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    telegram_chat_id = db.Column(db.String(64), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "token": self.token,
            "shop_id": self.shop_id,
            "expires_at": to_utc_z(self.expires_at),
            "telegram_chat_id": self.telegram_chat_id,
        }
