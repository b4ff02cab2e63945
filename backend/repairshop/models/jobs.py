from __future__ import annotations

from ..extensions import db
from repairshop.time_utils import to_utc_z


class Job(db.Model):
    """
    Repair ticket (the unit of billable work).

    LIFECYCLE:
        pending / progress / cancel / complete  ->  checked_out (terminal)

    - Created as pending with a one-entry timeline, whatever the caller sent
    - total_amount = parts_cost + service_fee - reserves while unlocked
    - final_cost, profit, checkout_date are frozen at checkout
    - is_locked never goes back to False
    """
    __tablename__ = "jobs"
    __table_args__ = (
        db.Index("ix_jobs_shop_created", "shop_id", "created_at"),
        db.Index("ix_jobs_shop_locked_checkout", "shop_id", "is_locked", "checkout_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    job_no = db.Column(db.String(32), nullable=False, unique=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=False)
    device_model = db.Column(db.String(255), nullable=False)
    imei_or_sn = db.Column(db.String(64), nullable=False, default="")
    color = db.Column(db.String(64), nullable=False, default="")
    issue = db.Column(db.Text, nullable=False)

    # Whole units of the ledger currency
    parts_cost = db.Column(db.Integer, nullable=False, default=0)
    service_fee = db.Column(db.Integer, nullable=False, default=0)
    reserves = db.Column(db.Integer, nullable=False, default=0)
    total_amount = db.Column(db.Integer, nullable=False, default=0)
    final_cost = db.Column(db.Integer, nullable=False, default=0)
    profit = db.Column(db.Integer, nullable=False, default=0)

    checkout_date = db.Column(db.DateTime(timezone=True), nullable=True)
    is_locked = db.Column(db.Boolean, nullable=False, default=False)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    assigned_technician_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=True, index=True)
    customer_chat_id = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    timeline = db.relationship(
        "JobTimelineEntry",
        order_by="JobTimelineEntry.id",
        cascade="all, delete-orphan",
        lazy=True,
    )
    status_logs = db.relationship(
        "JobStatusLog",
        order_by="JobStatusLog.id",
        cascade="all, delete-orphan",
        lazy=True,
    )
    assigned_technician = db.relationship("Staff", lazy=True)

    def __repr__(self) -> str:
        return f"<Job id={self.id} job_no={self.job_no!r} status={self.status!r}>"

    def to_dict(self) -> dict:
        technician = self.assigned_technician
        return {
            "id": self.id,
            "job_no": self.job_no,
            "shop_id": self.shop_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "device_model": self.device_model,
            "imei_or_sn": self.imei_or_sn,
            "color": self.color,
            "issue": self.issue,
            "parts_cost": self.parts_cost,
            "service_fee": self.service_fee,
            "reserves": self.reserves,
            "total_amount": self.total_amount,
            "final_cost": self.final_cost,
            "profit": self.profit,
            "checkout_date": to_utc_z(self.checkout_date) if self.checkout_date else None,
            "is_locked": self.is_locked,
            "status": self.status,
            "assigned_technician": (
                {"id": technician.id, "name": technician.name, "role": technician.role}
                if technician else None
            ),
            "customer_chat_id": self.customer_chat_id,
            "timeline": [entry.to_dict() for entry in self.timeline],
            "status_logs": [log.to_dict() for log in self.status_logs],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class JobTimelineEntry(db.Model):
    """Append-only customer-facing status history."""
    __tablename__ = "job_timeline_entries"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey("jobs.id"), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "updated_at": to_utc_z(self.updated_at),
        }


class JobStatusLog(db.Model):
    """Append-only audit trail of status transitions (who, when, from where)."""
    __tablename__ = "job_status_logs"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey("jobs.id"), nullable=False, index=True)
    from_status = db.Column(db.String(16), nullable=True)
    to_status = db.Column(db.String(16), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False)
    updated_by_user_id = db.Column(db.Integer, nullable=True)
    updated_by_name = db.Column(db.String(255), nullable=False, default="System")
    source = db.Column(db.String(32), nullable=False, default="manual")

    def to_dict(self) -> dict:
        return {
            "from_status": self.from_status,
            "to_status": self.to_status,
            "updated_at": to_utc_z(self.updated_at),
            "updated_by_user_id": self.updated_by_user_id,
            "updated_by_name": self.updated_by_name,
            "source": self.source,
        }
