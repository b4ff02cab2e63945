# Overview: Service-layer operations for staff; encapsulates business logic and database work.

"""
Staff Roster

Creating staff is gated by the shop's quota (max_staff_allowed). The check
is count-based at creation time: lowering the quota later leaves existing
staff in place.
"""

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import Job, Shop, Staff, STAFF_ROLES
from ..validation import STAFF_POLICY, validate_payload
from repairshop.errors import ForbiddenError, NotFoundError, StaffLimitError, ValidationError


def _check_role(patch: dict) -> None:
    role = patch.get("role")
    if role is not None and role not in STAFF_ROLES:
        raise ValidationError(f"Invalid role. Must be one of: {', '.join(STAFF_ROLES)}")


def _get_shop(shop_id: int) -> Shop:
    shop = db.session.get(Shop, shop_id)
    if shop is None:
        raise NotFoundError("Shop not found")
    return shop


def create_staff(shop_id: int, fields: dict) -> Staff:
    """
    Raises:
        StaffLimitError: the shop already has max_staff_allowed members
    """
    shop = _get_shop(shop_id)
    patch = validate_payload(model=Staff, payload=fields, policy=STAFF_POLICY, partial=False)
    _check_role(patch)

    limit = shop.max_staff_allowed or 1
    current = db.session.query(Staff).filter(Staff.shop_id == shop_id).count()
    if current >= limit:
        raise StaffLimitError(
            f"Staff limit reached ({limit}). Please upgrade your plan to add more staff.",
            limit=limit,
            current_count=current,
            subscription_class=shop.subscription_class or "Basic",
        )

    staff = Staff(shop_id=shop_id, **patch)
    if not staff.role:
        staff.role = "Technician"
    db.session.add(staff)
    db.session.commit()
    return staff


def list_staff(shop_id: int) -> dict:
    shop = _get_shop(shop_id)
    staff = (
        db.session.query(Staff)
        .filter(Staff.shop_id == shop_id)
        .order_by(Staff.created_at.desc(), Staff.id.desc())
        .all()
    )
    return {
        "staff": [s.to_dict() for s in staff],
        "limit": shop.max_staff_allowed or 1,
        "current_count": len(staff),
        "subscription_class": shop.subscription_class or "Basic",
    }


def get_staff(staff_id: int, actor_shop_id: int | None) -> Staff:
    staff = db.session.get(Staff, staff_id)
    if staff is None:
        raise NotFoundError("Staff not found")
    if staff.shop_id != actor_shop_id:
        raise ForbiddenError("Not authorized to access this staff member")
    return staff


def update_staff(staff_id: int, actor_shop_id: int | None, fields: dict) -> Staff:
    staff = get_staff(staff_id, actor_shop_id)
    patch = validate_payload(model=Staff, payload=fields, policy=STAFF_POLICY, partial=True)
    _check_role(patch)
    for key, value in patch.items():
        setattr(staff, key, value)
    db.session.commit()
    return staff


def delete_staff(staff_id: int, actor_shop_id: int | None) -> None:
    staff = get_staff(staff_id, actor_shop_id)
    # Jobs keep their history but lose the assignment
    db.session.execute(
        update(Job)
        .where(Job.assigned_technician_id == staff.id)
        .values(assigned_technician_id=None)
    )
    db.session.delete(staff)
    db.session.commit()


def list_all_staff() -> list[dict]:
    rows = (
        db.session.query(Staff, Shop.shop_name)
        .join(Shop, Shop.id == Staff.shop_id)
        .order_by(Staff.created_at.desc(), Staff.id.desc())
        .all()
    )
    result = []
    for staff, shop_name in rows:
        data = staff.to_dict()
        data["shop_name"] = shop_name
        result.append(data)
    return result
