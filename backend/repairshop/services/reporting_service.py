# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

"""
Financial Aggregator

Read-only reports computed from stored jobs, expenses, payments and plans.

PERIODS: half-open [start, end), midnight aligned
    daily    the day of `date` (default today)
    monthly  month/year (default current month)
    yearly   year (default current year)

SHOP REPORT: only locked (checked-out) jobs count, bucketed by checkout_date.
    totalProfit = totalServiceFee - totalExpense - totalReserves

PLATFORM STATS: revenue from every shop's payment history. Each payment's
price is resolved through a fallback chain so historically zero-priced
records still count:
    catalog price (if > 0) -> legacy constant -> stored price
"""

from __future__ import annotations

import calendar
from datetime import date as date_cls, datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Expense, Job, Shop, Staff, SubscriptionPlan
from .subscription_service import LEGACY_PLAN_PRICES
from repairshop.errors import ValidationError
from repairshop.time_utils import add_months, parse_iso_datetime, start_of_day, utcnow, to_utc_z


PERIODS = ("daily", "monthly", "yearly")
TREND_MONTHS = 6
# Report windows end at Jan 1 of the following year
MIN_YEAR, MAX_YEAR = 1900, 9998


def _as_int(value) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid number: {value}")


def _target_year(year, now: datetime) -> int:
    parsed = _as_int(year)
    target = now.year if parsed is None else parsed
    if not MIN_YEAR <= target <= MAX_YEAR:
        raise ValidationError(f"year must be between {MIN_YEAR} and {MAX_YEAR}")
    return target


def _target_month(month, now: datetime) -> int:
    parsed = _as_int(month)
    target = now.month if parsed is None else parsed
    if not 1 <= target <= 12:
        raise ValidationError("month must be between 1 and 12")
    return target


def period_range(
    kind: str | None = "monthly",
    date=None,
    month=None,
    year=None,
    now: datetime | None = None,
) -> tuple[datetime, datetime]:
    """
    Resolve a reporting window.

    Raises:
        ValidationError: unknown period kind, bad date, month outside 1..12,
            year outside MIN_YEAR..MAX_YEAR
    """
    kind = (kind or "monthly").strip().lower()
    if kind not in PERIODS:
        raise ValidationError(f"Invalid period. Must be one of: {', '.join(PERIODS)}")
    now = now or utcnow()

    if kind == "daily":
        base = now
        if isinstance(date, (datetime, date_cls)):
            base = date
        elif date:
            try:
                base = parse_iso_datetime(str(date))
            except ValueError:
                raise ValidationError(f"Invalid date: {date}")
        start = start_of_day(base)
        return start, datetime.fromordinal(start.toordinal() + 1)

    target_year = _target_year(year, now)

    if kind == "yearly":
        return datetime(target_year, 1, 1), datetime(target_year + 1, 1, 1)

    target_month = _target_month(month, now)
    start = datetime(target_year, target_month, 1)
    return start, add_months(start, 1)


def shop_report(shop_id: int, period: str | None = "monthly", *, date=None, month=None, year=None, now=None) -> dict:
    """Profit/cost summary over a shop's checked-out jobs and expenses."""
    kind = (period or "monthly").strip().lower()
    start, end = period_range(kind, date=date, month=month, year=year, now=now)

    parts, service, reserves, job_count = (
        db.session.query(
            func.coalesce(func.sum(Job.parts_cost), 0),
            func.coalesce(func.sum(Job.service_fee), 0),
            func.coalesce(func.sum(Job.reserves), 0),
            func.count(Job.id),
        )
        .filter(
            Job.shop_id == shop_id,
            Job.is_locked.is_(True),
            Job.checkout_date >= start,
            Job.checkout_date < end,
        )
        .one()
    )

    total_expense = (
        db.session.query(func.coalesce(func.sum(Expense.amount), 0))
        .filter(
            Expense.shop_id == shop_id,
            Expense.expense_date >= start,
            Expense.expense_date < end,
        )
        .scalar()
    )

    parts, service, reserves = int(parts), int(service), int(reserves)
    total_expense = int(total_expense or 0)

    return {
        "period": kind,
        "from": to_utc_z(start),
        "to": to_utc_z(end),
        "totalPartsCost": parts,
        "totalServiceFee": service,
        "totalReserves": reserves,
        "totalExpense": total_expense,
        "totalProfit": service - total_expense - reserves,
        "totalJobs": int(job_count),
    }


def staff_performance(shop_id: int, period: str | None = "monthly", *, date=None, month=None, year=None, now=None) -> dict:
    """Per-technician totals over checked-out jobs in the window; idle staff report zeros."""
    kind = (period or "monthly").strip().lower()
    start, end = period_range(kind, date=date, month=month, year=year, now=now)

    rows = (
        db.session.query(
            Job.assigned_technician_id,
            func.count(Job.id),
            func.coalesce(func.sum(Job.profit), 0),
            func.coalesce(func.sum(Job.parts_cost), 0),
            func.coalesce(func.sum(Job.service_fee), 0),
        )
        .filter(
            Job.shop_id == shop_id,
            Job.is_locked.is_(True),
            Job.assigned_technician_id.isnot(None),
            Job.checkout_date >= start,
            Job.checkout_date < end,
        )
        .group_by(Job.assigned_technician_id)
        .all()
    )
    stats = {row[0]: row[1:] for row in rows}

    staff = (
        db.session.query(Staff)
        .filter(Staff.shop_id == shop_id)
        .order_by(Staff.created_at.desc(), Staff.id.desc())
        .all()
    )

    performance = []
    for member in staff:
        jobs, profit, parts, service = stats.get(member.id, (0, 0, 0, 0))
        performance.append({
            "staffId": member.id,
            "name": member.name,
            "role": member.role,
            "totalJobs": int(jobs),
            "totalProfit": int(profit),
            "totalPartsCost": int(parts),
            "totalServiceFee": int(service),
        })

    return {
        "period": kind,
        "from": to_utc_z(start),
        "to": to_utc_z(end),
        "staffPerformance": performance,
    }


def _display_plan_name(name: str, catalog: dict) -> str:
    plan = catalog.get(name.lower())
    if plan is not None:
        return plan.name
    return name[:1].upper() + name[1:]


def resolve_payment_price(plan_name: str | None, stored_price, catalog: dict) -> int:
    """catalog price if positive, else the legacy constant, else whatever was stored."""
    key = (plan_name or "").lower()
    plan = catalog.get(key)
    if plan is not None and plan.price > 0:
        return int(plan.price)
    legacy = LEGACY_PLAN_PRICES.get(key, 0)
    if legacy > 0:
        return legacy
    return int(stored_price or 0)


def platform_financial_stats(month=None, year=None, *, now: datetime | None = None) -> dict:
    """
    Tenant-wide revenue summary.

    Returns monthlyRevenue and yearlyRevenue for the target window,
    activeSubscribers, revenueByPlan (integer percentages of lifetime
    revenue, largest first) and a six-month monthlyTrend ending at the
    target month.
    """
    now = now or utcnow()
    target_year = _target_year(year, now)
    target_month = _target_month(month, now)

    catalog = {plan.name.lower(): plan for plan in db.session.query(SubscriptionPlan).all()}

    month_start = datetime(target_year, target_month, 1)
    month_end = add_months(month_start, 1)
    year_start = datetime(target_year, 1, 1)
    year_end = datetime(target_year + 1, 1, 1)

    trend = []
    for offset in range(TREND_MONTHS - 1, -1, -1):
        bucket_start = add_months(month_start, -offset)
        trend.append({
            "key": (bucket_start.year, bucket_start.month),
            "month": calendar.month_abbr[bucket_start.month],
            "total": 0,
        })
    trend_index = {bucket["key"]: bucket for bucket in trend}

    monthly_revenue = 0
    yearly_revenue = 0
    active_subscribers = 0
    revenue_by_plan: dict[str, int] = {}

    for shop in db.session.query(Shop).order_by(Shop.id).all():
        if shop.is_active and shop.subscription_expire > now:
            active_subscribers += 1

        fallback_name = shop.subscription_plan or "trial"
        payments = [(p.plan_name, p.price, p.date) for p in shop.payment_history]
        if not payments:
            # Shops that predate payment history count their first subscription once
            payments = [(fallback_name, None, shop.subscription_start or shop.created_at)]

        for plan_name, stored_price, paid_at in payments:
            name = plan_name or fallback_name
            value = resolve_payment_price(name, stored_price, catalog)

            if month_start <= paid_at < month_end:
                monthly_revenue += value
            if year_start <= paid_at < year_end:
                yearly_revenue += value

            display = _display_plan_name(name, catalog)
            revenue_by_plan[display] = revenue_by_plan.get(display, 0) + value

            bucket = trend_index.get((paid_at.year, paid_at.month))
            if bucket is not None:
                bucket["total"] += value

    lifetime = sum(revenue_by_plan.values())
    by_plan = []
    if lifetime > 0:
        by_plan = [
            {"plan": plan, "percentage": int(amount * 100 / lifetime + 0.5)}
            for plan, amount in revenue_by_plan.items()
            if amount > 0
        ]
        by_plan.sort(key=lambda item: item["percentage"], reverse=True)

    return {
        "yearlyRevenue": yearly_revenue,
        "monthlyRevenue": monthly_revenue,
        "activeSubscribers": active_subscribers,
        "revenueByPlan": by_plan,
        "monthlyTrend": [{"month": b["month"], "total": b["total"]} for b in trend],
    }
