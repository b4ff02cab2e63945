from __future__ import annotations

from ..extensions import db
from repairshop.time_utils import to_utc_z


class Expense(db.Model):
    """Shop-scoped expense entry. Only read by the financial reports."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.CheckConstraint("amount >= 0", name="ck_expenses_amount_nonneg"),
        db.Index("ix_expenses_shop_date", "shop_id", "expense_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    note = db.Column(db.Text, nullable=False, default="")
    expense_date = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "title": self.title,
            "amount": self.amount,
            "note": self.note,
            "expense_date": to_utc_z(self.expense_date),
            "created_at": to_utc_z(self.created_at),
        }
