# Overview: Service-layer operations for shops (tenants); encapsulates business logic and database work.

"""
Shop / Tenant Registry

The shop is the isolation boundary. Creating one runs the subscription
ledger (first payment + CREATE voucher) and can provision the owner's login.
Deleting one removes every dependent record in a fixed order.

DELETE CASCADE ORDER:
    users -> jobs (timeline, status logs) -> staff -> expenses
    -> owner tokens -> invoice vouchers -> shop (payment history)

Each step commits on its own. A failure part way leaves the earlier steps
applied and the remaining rows orphaned; re-running the delete finishes it.
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import (
    Expense,
    InvoiceVoucher,
    Job,
    JobStatusLog,
    JobTimelineEntry,
    OwnerToken,
    Shop,
    Staff,
    SUBSCRIPTION_CLASSES,
    User,
)
from ..validation import (
    SHOP_ADMIN_UPDATE_POLICY,
    SHOP_CREATE_POLICY,
    SHOP_PROFILE_POLICY,
    enforce_rules_max_staff,
    validate_payload,
)
from . import auth_service, subscription_service
from .qr_service import build_qr_link, generate_owner_token, owner_payload
from repairshop.errors import ConflictError, NotFoundError, ValidationError
from repairshop.time_utils import utcnow


OWNER_TOKEN_TTL_DAYS = 7


def get_shop(shop_id: int) -> Shop:
    shop = db.session.get(Shop, shop_id)
    if shop is None:
        raise NotFoundError("Shop not found")
    return shop


def _normalize_contact(patch: dict) -> None:
    if patch.get("email"):
        patch["email"] = patch["email"].lower()


def _check_unique_contact(patch: dict, *, exclude_id: int | None = None) -> None:
    for key in ("phone", "email"):
        value = patch.get(key)
        if not value:
            continue
        query = db.session.query(Shop.id).filter(getattr(Shop, key) == value)
        if exclude_id is not None:
            query = query.filter(Shop.id != exclude_id)
        if query.first():
            raise ConflictError(f"A shop with this {key} already exists")


def _check_subscription_class(patch: dict) -> None:
    value = patch.get("subscription_class")
    if value is not None and value not in SUBSCRIPTION_CLASSES:
        raise ValidationError(
            f"Invalid subscription class. Must be one of: {', '.join(SUBSCRIPTION_CLASSES)}"
        )


def create_shop(
    fields: dict,
    *,
    plan_ref=None,
    start_date=None,
    expire_override=None,
    max_staff: int | None = None,
    password: str | None = None,
    actor=None,
) -> Shop:
    """
    Register a tenant and bill its first subscription.

    When a password is given an owner login is created with the shop email.

    Raises:
        ValidationError: bad field, unknown subscription class, weak password
        ConflictError: phone or email already used
    """
    patch = validate_payload(model=Shop, payload=fields, policy=SHOP_CREATE_POLICY, partial=False)
    _normalize_contact(patch)
    _check_subscription_class(patch)
    _check_unique_contact(patch)
    if max_staff is not None:
        enforce_rules_max_staff({"max_staff_allowed": max_staff})
    if password:
        auth_service.validate_password_strength(password)
        if db.session.query(User.id).filter_by(email=patch["email"]).first():
            raise ConflictError("User already exists")

    now = utcnow()
    shop = Shop(created_at=now, updated_at=now, **patch)
    if shop.custom_rule is None:
        shop.custom_rule = ""
    db.session.add(shop)

    subscription_service.create_shop_subscription(
        shop,
        plan_ref,
        start_date=start_date,
        explicit_max_staff=max_staff,
        expire_override=expire_override,
        actor=actor,
    )

    if password:
        auth_service.register_user(
            email=shop.email,
            password=password,
            shop_id=shop.id,
            name=shop.owner_name,
            commit=False,
        )

    db.session.commit()
    current_app.logger.info("Shop %s created (%s)", shop.id, shop.shop_name)
    return shop


def list_shops_with_job_counts() -> list[dict]:
    counts = (
        db.session.query(Job.shop_id, func.count(Job.id).label("job_count"))
        .group_by(Job.shop_id)
        .subquery()
    )
    rows = (
        db.session.query(Shop, func.coalesce(counts.c.job_count, 0))
        .outerjoin(counts, counts.c.shop_id == Shop.id)
        .order_by(Shop.created_at.desc(), Shop.id.desc())
        .all()
    )
    result = []
    for shop, job_count in rows:
        data = shop.to_dict()
        data["job_count"] = int(job_count)
        result.append(data)
    return result


def update_shop(shop_id: int, fields: dict) -> Shop:
    """
    Super-admin manual override.

    Assigning a subscription class without an explicit max_staff_allowed
    resets the quota to that class's default.
    """
    shop = get_shop(shop_id)
    patch = validate_payload(model=Shop, payload=fields, policy=SHOP_ADMIN_UPDATE_POLICY, partial=True)
    _normalize_contact(patch)
    _check_subscription_class(patch)
    enforce_rules_max_staff(patch)
    _check_unique_contact(patch, exclude_id=shop.id)
    if "subscription_expire" in patch and patch["subscription_expire"] is None:
        raise ValidationError("subscription_expire cannot be null")

    new_class = patch.get("subscription_class")
    if new_class and new_class != shop.subscription_class and "max_staff_allowed" not in patch:
        patch["max_staff_allowed"] = SUBSCRIPTION_CLASSES[new_class]["default_staff"]

    for key, value in patch.items():
        setattr(shop, key, value)
    shop.updated_at = utcnow()
    db.session.commit()
    return shop


def update_staff_limit(shop_id: int, max_staff_allowed) -> Shop:
    if isinstance(max_staff_allowed, bool) or not isinstance(max_staff_allowed, int) or max_staff_allowed < 1:
        raise ValidationError("Invalid value for max_staff_allowed. Must be a number greater than 0.")
    shop = get_shop(shop_id)
    shop.max_staff_allowed = max_staff_allowed
    shop.updated_at = utcnow()
    db.session.commit()
    return shop


def update_profile(shop_id: int, fields: dict) -> Shop:
    """Owner-editable subset: name, phone, address, custom print rule."""
    shop = get_shop(shop_id)
    patch = validate_payload(model=Shop, payload=fields, policy=SHOP_PROFILE_POLICY, partial=True)
    _check_unique_contact(patch, exclude_id=shop.id)
    for key, value in patch.items():
        setattr(shop, key, value)
    shop.updated_at = utcnow()
    db.session.commit()
    return shop


def set_logo(shop_id: int, upload, storage) -> str:
    """Store the new logo, then remove the previous file."""
    shop = get_shop(shop_id)
    previous = shop.logo_url
    shop.logo_url = storage.save(upload, shop.id)
    shop.updated_at = utcnow()
    db.session.commit()
    if previous and previous != shop.logo_url:
        storage.delete(previous)
    return shop.logo_url


def delete_shop(shop_id: int) -> None:
    shop = get_shop(shop_id)
    job_ids = db.session.query(Job.id).filter(Job.shop_id == shop.id).scalar_subquery()

    steps = (
        ("users", lambda: db.session.query(User).filter(User.shop_id == shop.id).delete(synchronize_session=False)),
        ("job timeline", lambda: db.session.query(JobTimelineEntry).filter(JobTimelineEntry.job_id.in_(job_ids)).delete(synchronize_session=False)),
        ("job status logs", lambda: db.session.query(JobStatusLog).filter(JobStatusLog.job_id.in_(job_ids)).delete(synchronize_session=False)),
        ("jobs", lambda: db.session.query(Job).filter(Job.shop_id == shop.id).delete(synchronize_session=False)),
        ("staff", lambda: db.session.query(Staff).filter(Staff.shop_id == shop.id).delete(synchronize_session=False)),
        ("expenses", lambda: db.session.query(Expense).filter(Expense.shop_id == shop.id).delete(synchronize_session=False)),
        ("owner tokens", lambda: db.session.query(OwnerToken).filter(OwnerToken.shop_id == shop.id).delete(synchronize_session=False)),
        ("invoice vouchers", lambda: db.session.query(InvoiceVoucher).filter(InvoiceVoucher.shop_id == shop.id).delete(synchronize_session=False)),
    )
    for label, step in steps:
        removed = step()
        db.session.commit()
        current_app.logger.info("Shop %s delete: removed %s %s", shop_id, removed, label)

    db.session.delete(shop)
    db.session.commit()
    current_app.logger.info("Shop %s deleted", shop_id)


def generate_owner_qr(shop_id: int, *, now=None) -> dict:
    """Issue a 7-day owner link token; scanning it subscribes a chat to daily summaries."""
    shop = get_shop(shop_id)
    now = now or utcnow()
    record = OwnerToken(
        token=generate_owner_token(),
        shop_id=shop.id,
        expires_at=now + timedelta(days=OWNER_TOKEN_TTL_DAYS),
        created_at=now,
    )
    db.session.add(record)
    db.session.commit()
    return {
        "token": record.token,
        "expires_at": record.to_dict()["expires_at"],
        "qr_link": build_qr_link(owner_payload(record.token)),
    }
