from __future__ import annotations

from ..extensions import db
from repairshop.time_utils import to_utc_z


class SubscriptionPlan(db.Model):
    """
    Plan catalog entry.

    Historical payments keep their own plan_name/price snapshot, so editing or
    deleting a plan never rewrites history.
    """
    __tablename__ = "subscription_plans"
    __table_args__ = (
        db.CheckConstraint("price >= 0", name="ck_plans_price_nonneg"),
        db.CheckConstraint("duration_days >= 1", name="ck_plans_duration_min"),
        db.CheckConstraint("max_staff_allowed >= 1", name="ck_plans_max_staff_min"),
        db.Index("ix_plans_active_sort", "is_active", "sort_order"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=False, default="")
    price = db.Column(db.Integer, nullable=False, default=0)
    currency = db.Column(db.String(8), nullable=False, default="MMK")
    duration_days = db.Column(db.Integer, nullable=False, default=30)
    max_staff_allowed = db.Column(db.Integer, nullable=False, default=1)
    features = db.Column(db.JSON, nullable=False, default=list)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_popular = db.Column(db.Boolean, nullable=False, default=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<SubscriptionPlan id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "currency": self.currency,
            "duration_days": self.duration_days,
            "max_staff_allowed": self.max_staff_allowed,
            "features": list(self.features or []),
            "is_active": self.is_active,
            "is_popular": self.is_popular,
            "sort_order": self.sort_order,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InvoiceVoucher(db.Model):
    """
    Immutable receipt of one billing event (CREATE or EXTEND).

    The plan name, staff quota and amount are snapshots taken at issue time.
    Billing period is half-open: [period_start, period_end).
    """
    __tablename__ = "invoice_vouchers"
    __table_args__ = (
        db.Index("ix_invoice_vouchers_shop_issued", "shop_id", "issued_at"),
        db.CheckConstraint("amount >= 0", name="ck_invoice_vouchers_amount_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    voucher_no = db.Column(db.String(64), nullable=False, unique=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False)  # CREATE, EXTEND
    plan_name = db.Column(db.String(120), nullable=False)
    max_staffs = db.Column(db.Integer, nullable=False, default=1)
    amount = db.Column(db.Integer, nullable=False, default=0)
    currency = db.Column(db.String(8), nullable=False, default="MMK")
    period_start = db.Column(db.DateTime(timezone=True), nullable=False)
    period_end = db.Column(db.DateTime(timezone=True), nullable=False)
    issued_at = db.Column(db.DateTime(timezone=True), nullable=False)
    created_by_user_id = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=False, default="")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "voucher_no": self.voucher_no,
            "shop_id": self.shop_id,
            "type": self.type,
            "plan_name": self.plan_name,
            "max_staffs": self.max_staffs,
            "amount": self.amount,
            "currency": self.currency,
            "period_start": to_utc_z(self.period_start),
            "period_end": to_utc_z(self.period_end),
            "issued_at": to_utc_z(self.issued_at),
            "created_by_user_id": self.created_by_user_id,
            "notes": self.notes,
        }
