# Overview: Service-layer operations for the subscription plan catalog.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import SubscriptionPlan
from ..validation import PLAN_POLICY, enforce_rules_plan, validate_payload
from repairshop.errors import ConflictError, PlanNotFoundError


# Seeded by `flask plans seed` on a fresh deployment
DEFAULT_PLANS = (
    {
        "name": "Basic",
        "description": "Single technician shop",
        "price": 50000,
        "duration_days": 30,
        "max_staff_allowed": 1,
        "features": ["Job tracking", "Expense tracking", "Monthly reports"],
        "sort_order": 1,
    },
    {
        "name": "Pro",
        "description": "Growing shop with a team",
        "price": 100000,
        "duration_days": 365,
        "max_staff_allowed": 10,
        "features": ["Everything in Basic", "Staff performance", "Customer notifications"],
        "is_popular": True,
        "sort_order": 2,
    },
    {
        "name": "ProMax",
        "description": "Unlimited staff",
        "price": 300000,
        "duration_days": 365,
        "max_staff_allowed": 10000,
        "features": ["Everything in Pro", "Unlimited staff"],
        "sort_order": 3,
    },
)


def _name_taken(name: str, *, exclude_id: int | None = None) -> bool:
    query = db.session.query(SubscriptionPlan.id).filter(
        func.lower(SubscriptionPlan.name) == name.strip().lower()
    )
    if exclude_id is not None:
        query = query.filter(SubscriptionPlan.id != exclude_id)
    return query.first() is not None


def list_active_plans() -> list[SubscriptionPlan]:
    return (
        db.session.query(SubscriptionPlan)
        .filter(SubscriptionPlan.is_active.is_(True))
        .order_by(SubscriptionPlan.sort_order.asc(), SubscriptionPlan.id.asc())
        .all()
    )


def list_plans(*, page: int = 1, limit: int = 50) -> dict:
    page = max(int(page or 1), 1)
    limit = max(int(limit or 50), 1)
    query = db.session.query(SubscriptionPlan).order_by(
        SubscriptionPlan.sort_order.asc(), SubscriptionPlan.id.asc()
    )
    total = query.count()
    plans = query.offset((page - 1) * limit).limit(limit).all()
    return {
        "plans": [p.to_dict() for p in plans],
        "current_page": page,
        "total_pages": -(-total // limit),
        "total_plans": total,
    }


def get_plan(plan_id: int) -> SubscriptionPlan:
    plan = db.session.get(SubscriptionPlan, plan_id)
    if plan is None:
        raise PlanNotFoundError("Plan not found")
    return plan


def create_plan(fields: dict) -> SubscriptionPlan:
    patch = validate_payload(model=SubscriptionPlan, payload=fields, policy=PLAN_POLICY, partial=False)
    enforce_rules_plan(patch)
    if _name_taken(patch["name"]):
        raise ConflictError("Plan with this name already exists")

    plan = SubscriptionPlan(**patch)
    if plan.features is None:
        plan.features = []
    if plan.description is None:
        plan.description = ""
    db.session.add(plan)
    db.session.commit()
    return plan


def update_plan(plan_id: int, fields: dict) -> SubscriptionPlan:
    """Edits never touch historical payments, which keep their own snapshot."""
    plan = get_plan(plan_id)
    patch = validate_payload(model=SubscriptionPlan, payload=fields, policy=PLAN_POLICY, partial=True)
    enforce_rules_plan(patch)
    if "name" in patch and _name_taken(patch["name"], exclude_id=plan.id):
        raise ConflictError("Plan with this name already exists")

    for key, value in patch.items():
        setattr(plan, key, value)
    db.session.commit()
    return plan


def delete_plan(plan_id: int) -> None:
    plan = get_plan(plan_id)
    db.session.delete(plan)
    db.session.commit()


def seed_default_plans() -> int:
    """Insert any default plan whose name is missing. Returns how many were added."""
    added = 0
    for defaults in DEFAULT_PLANS:
        if _name_taken(defaults["name"]):
            continue
        db.session.add(SubscriptionPlan(**defaults))
        added += 1
    db.session.commit()
    return added
