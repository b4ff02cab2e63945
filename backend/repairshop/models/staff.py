from __future__ import annotations

from ..extensions import db
from repairshop.time_utils import to_utc_z


STAFF_ROLES = ("Technician", "Admin", "Manager", "Helper", "Other")


class Staff(db.Model):
    """
    Shop roster entry. Counted against Shop.max_staff_allowed when created;
    lowering the quota later does not remove existing staff.
    """
    __tablename__ = "staff"
    __table_args__ = (
        db.Index("ix_staff_shop_created", "shop_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(32), nullable=False, default="Technician")
    phone = db.Column(db.String(32), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Staff id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "name": self.name,
            "role": self.role,
            "phone": self.phone,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
