# Overview: Service-layer operations for subscriptions; encapsulates business logic and database work.

"""
Subscription Ledger

================================================================================
BILLING EVENTS
================================================================================
Every billing event writes exactly two records:
    1. one ShopPayment (append-only payment history)
    2. one InvoiceVoucher (immutable receipt: CREATE or EXTEND)

PLAN RESOLUTION:
- Catalog plans are looked up by id or by case-insensitive name
- Shops created before the catalog existed carry legacy plan names
  (trial / monthly / yearly). Those keep their fixed durations and prices:
      trial    7 days          0
      monthly  +1 month   50000
      yearly   +1 year   500000

EXTENSION:
    new_expire = max(current_expire, now) + plan.duration_days

An expired shop never gets a period that starts in the past, and an active
shop never loses its remaining days.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import InvoiceVoucher, Shop, ShopPayment, SubscriptionPlan
from .concurrency import lock_for_update
from repairshop.errors import NotFoundError, PlanNotFoundError
from repairshop.time_utils import utcnow, add_months, add_years


LEGACY_PLAN_PRICES = {
    "trial": 0,
    "monthly": 50000,
    "yearly": 500000,
}
LEGACY_TRIAL_DAYS = 7

VOUCHER_CREATE = "CREATE"
VOUCHER_EXTEND = "EXTEND"


def legacy_plan_price(name: str | None) -> int:
    return LEGACY_PLAN_PRICES.get((name or "").strip().lower(), 0)


def legacy_expire(name: str | None, start: datetime) -> datetime:
    """Expiry for a plan name that is not in the catalog; unknown names get the trial."""
    key = (name or "").strip().lower()
    if key == "monthly":
        return add_months(start, 1)
    if key == "yearly":
        return add_years(start, 1)
    return start + timedelta(days=LEGACY_TRIAL_DAYS)


def find_plan_by_name(name: str | None) -> SubscriptionPlan | None:
    if not name or not str(name).strip():
        return None
    return (
        db.session.query(SubscriptionPlan)
        .filter(func.lower(SubscriptionPlan.name) == str(name).strip().lower())
        .first()
    )


def resolve_plan(plan_ref) -> SubscriptionPlan | None:
    """
    Catalog lookup: an integer (or all-digit string) is an id, anything else
    is matched by name ignoring case. Returns None when nothing matches.
    """
    if plan_ref is None or isinstance(plan_ref, bool):
        return None
    if isinstance(plan_ref, int):
        return db.session.get(SubscriptionPlan, plan_ref)
    ref = str(plan_ref).strip()
    if not ref:
        return None
    if ref.isdigit():
        return db.session.get(SubscriptionPlan, int(ref))
    return find_plan_by_name(ref)


def next_voucher_no(now: datetime) -> str:
    """INV-YYYYMMDDHHMMSS-xxxxxx, random suffix regenerated on collision."""
    while True:
        candidate = f"INV-{now:%Y%m%d%H%M%S}-{secrets.token_hex(3).upper()}"
        if not db.session.query(InvoiceVoucher.id).filter_by(voucher_no=candidate).first():
            return candidate


def _issue_voucher(
    shop: Shop,
    *,
    voucher_type: str,
    plan_name: str,
    amount: int,
    period_start: datetime,
    period_end: datetime,
    issued_at: datetime,
    actor=None,
    notes: str = "",
) -> InvoiceVoucher:
    voucher = InvoiceVoucher(
        voucher_no=next_voucher_no(issued_at),
        shop_id=shop.id,
        type=voucher_type,
        plan_name=plan_name,
        max_staffs=shop.max_staff_allowed,
        amount=int(amount or 0),
        currency=current_app.config.get("LEDGER_CURRENCY", "MMK"),
        period_start=period_start,
        period_end=period_end,
        issued_at=issued_at,
        created_by_user_id=getattr(actor, "user_id", None),
        notes=notes,
    )
    db.session.add(voucher)
    return voucher


def create_shop_subscription(
    shop: Shop,
    plan_ref,
    start_date: datetime | None = None,
    explicit_max_staff: int | None = None,
    expire_override: datetime | None = None,
    actor=None,
) -> InvoiceVoucher:
    """
    Initial billing for a newly created shop (not yet committed).

    Fills the shop's subscription fields, appends the first payment and
    issues the CREATE voucher. The caller commits.
    """
    start = start_date or utcnow()
    with db.session.no_autoflush:
        plan = resolve_plan(plan_ref)

    if plan is not None:
        plan_name = plan.name
        expire = start + timedelta(days=plan.duration_days)
        max_staff = explicit_max_staff or plan.max_staff_allowed
        price = plan.price
    else:
        plan_name = str(plan_ref).strip() if plan_ref not in (None, "") else "trial"
        expire = expire_override or legacy_expire(plan_name, start)
        max_staff = explicit_max_staff or 1
        price = legacy_plan_price(plan_name)

    shop.subscription_plan = plan_name
    shop.subscription_start = start
    shop.subscription_expire = expire
    shop.max_staff_allowed = max_staff

    shop.payment_history.append(ShopPayment(plan_name=plan_name, price=price, date=start))
    db.session.flush()

    voucher = _issue_voucher(
        shop,
        voucher_type=VOUCHER_CREATE,
        plan_name=plan_name,
        amount=price,
        period_start=start,
        period_end=expire,
        issued_at=utcnow(),
        actor=actor,
    )
    current_app.logger.info(
        "Shop %s subscribed to %s until %s (%s %s)",
        shop.id, plan_name, expire.isoformat(), price, voucher.currency,
    )
    return voucher


def _backfill_legacy_payment(shop: Shop) -> None:
    """Synthesize the missing first payment for shops that predate payment history."""
    name = shop.subscription_plan or "trial"
    catalog = find_plan_by_name(name)
    price = catalog.price if catalog is not None else legacy_plan_price(name)
    shop.payment_history.append(
        ShopPayment(
            plan_name=name,
            price=price,
            date=shop.subscription_start or shop.created_at,
        )
    )


def extend_shop_subscription(shop_id: int, plan_name: str, actor=None, *, now: datetime | None = None) -> tuple[Shop, InvoiceVoucher]:
    """
    Renew or upgrade a shop.

    Raises:
        NotFoundError: unknown shop
        PlanNotFoundError: no catalog plan with that name (case-insensitive)
    """
    shop = lock_for_update(db.session.query(Shop).filter_by(id=shop_id)).first()
    if shop is None:
        raise NotFoundError("Shop not found")

    plan = find_plan_by_name(plan_name)
    if plan is None:
        raise PlanNotFoundError("Plan not found")

    now = now or utcnow()
    anchor = max(shop.subscription_expire, now)
    new_expire = anchor + timedelta(days=plan.duration_days)

    if not shop.payment_history:
        _backfill_legacy_payment(shop)

    shop.subscription_expire = new_expire
    shop.subscription_plan = plan.name
    shop.max_staff_allowed = plan.max_staff_allowed
    shop.payment_history.append(ShopPayment(plan_name=plan.name, price=plan.price, date=now))
    db.session.flush()

    voucher = _issue_voucher(
        shop,
        voucher_type=VOUCHER_EXTEND,
        plan_name=plan.name,
        amount=plan.price,
        period_start=anchor,
        period_end=new_expire,
        issued_at=now,
        actor=actor,
    )
    db.session.commit()

    current_app.logger.info(
        "Shop %s extended on %s until %s (voucher %s)",
        shop.id, plan.name, new_expire.isoformat(), voucher.voucher_no,
    )
    return shop, voucher


def latest_invoice(shop_id: int) -> InvoiceVoucher:
    if db.session.get(Shop, shop_id) is None:
        raise NotFoundError("Shop not found")
    voucher = (
        db.session.query(InvoiceVoucher)
        .filter(InvoiceVoucher.shop_id == shop_id)
        .order_by(InvoiceVoucher.issued_at.desc(), InvoiceVoucher.id.desc())
        .first()
    )
    if voucher is None:
        raise NotFoundError("No invoice found for this shop")
    return voucher


def list_invoices(shop_id: int) -> list[InvoiceVoucher]:
    if db.session.get(Shop, shop_id) is None:
        raise NotFoundError("Shop not found")
    return (
        db.session.query(InvoiceVoucher)
        .filter(InvoiceVoucher.shop_id == shop_id)
        .order_by(InvoiceVoucher.issued_at.desc(), InvoiceVoucher.id.desc())
        .all()
    )
