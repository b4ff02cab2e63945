"""
Financial aggregator: shop reports, staff performance and platform revenue.
"""

from datetime import datetime

import pytest

from repairshop.errors import ValidationError
from repairshop.models import Job, Shop, ShopPayment, Staff
from repairshop.services import expense_service, job_service, reporting_service, shop_service


def _checked_out_job(shop_id, *, parts=10000, service=20000, reserves=0, technician_id=None) -> Job:
    job = job_service.create_job(shop_id, {
        "customer_name": "Ma Su",
        "customer_phone": "09777888999",
        "device_model": "Redmi Note 10",
        "issue": "Charging port",
        "parts_cost": parts,
        "service_fee": service,
        "reserves": reserves,
        "assigned_technician_id": technician_id,
    })
    return job_service.checkout_job(job.id, shop_id)


class TestPeriodRange:

    def test_daily(self):
        assert reporting_service.period_range("daily", date="2026-03-05") == (
            datetime(2026, 3, 5), datetime(2026, 3, 6)
        )

    def test_daily_defaults_to_today(self):
        now = datetime(2026, 3, 5, 17, 45)
        assert reporting_service.period_range("daily", now=now) == (datetime(2026, 3, 5), datetime(2026, 3, 6))

    def test_monthly_wraps_year(self):
        assert reporting_service.period_range("monthly", month="12", year="2025") == (
            datetime(2025, 12, 1), datetime(2026, 1, 1)
        )

    def test_yearly(self):
        assert reporting_service.period_range("yearly", year=2026) == (datetime(2026, 1, 1), datetime(2027, 1, 1))

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"kind": "weekly"},
            {"kind": "monthly", "month": 13},
            {"kind": "monthly", "month": "abc"},
            {"kind": "monthly", "month": 0, "year": 2026},
            {"kind": "monthly", "month": "0"},
            {"kind": "yearly", "year": 0},
            {"kind": "yearly", "year": "10000"},
            {"kind": "monthly", "month": 5, "year": -5},
            {"kind": "daily", "date": "not-a-date"},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValidationError):
            reporting_service.period_range(**kwargs)


class TestShopReport:

    def test_monthly_profit(self, db_session, shop_a):
        _checked_out_job(shop_a.id, parts=10000, service=20000, reserves=0)
        expense_service.create_expense(shop_a.id, {"title": "Rent", "amount": 5000})

        report = reporting_service.shop_report(shop_a.id, "monthly")

        assert report["period"] == "monthly"
        assert report["totalServiceFee"] == 20000
        assert report["totalPartsCost"] == 10000
        assert report["totalReserves"] == 0
        assert report["totalExpense"] == 5000
        assert report["totalProfit"] == 15000
        assert report["totalJobs"] == 1
        assert report["from"].endswith("Z")

    def test_only_checked_out_jobs_in_window(self, db_session, shop_a, shop_b):
        _checked_out_job(shop_a.id, service=20000, reserves=2000)
        old = _checked_out_job(shop_a.id, service=99999)
        old.checkout_date = datetime(2020, 1, 15)
        db_session.commit()
        job_service.create_job(shop_a.id, {
            "customer_name": "Open", "customer_phone": "1", "device_model": "X", "issue": "Y",
            "service_fee": 50000,
        })
        _checked_out_job(shop_b.id, service=70000)

        report = reporting_service.shop_report(shop_a.id, "monthly")
        assert report["totalJobs"] == 1
        assert report["totalServiceFee"] == 20000
        assert report["totalProfit"] == 18000

        old_report = reporting_service.shop_report(shop_a.id, "monthly", month=1, year=2020)
        assert old_report["totalServiceFee"] == 99999

    def test_empty_period(self, db_session, shop_a):
        report = reporting_service.shop_report(shop_a.id, "yearly", year=1999)
        assert report["totalJobs"] == 0
        assert report["totalProfit"] == 0


def test_staff_performance(db_session, shop_a):
    shop_a.max_staff_allowed = 5
    db_session.commit()
    busy = Staff(shop_id=shop_a.id, name="Ko Aung")
    idle = Staff(shop_id=shop_a.id, name="Ko Min", role="Helper")
    db_session.add_all([busy, idle])
    db_session.commit()

    _checked_out_job(shop_a.id, parts=1000, service=5000, reserves=500, technician_id=busy.id)
    _checked_out_job(shop_a.id, parts=2000, service=8000, technician_id=busy.id)

    result = reporting_service.staff_performance(shop_a.id, "monthly")
    by_name = {row["name"]: row for row in result["staffPerformance"]}

    assert by_name["Ko Aung"]["totalJobs"] == 2
    assert by_name["Ko Aung"]["totalProfit"] == (5000 - 1000 - 500) + (8000 - 2000)
    assert by_name["Ko Aung"]["totalServiceFee"] == 13000
    assert by_name["Ko Min"] == {
        "staffId": idle.id,
        "name": "Ko Min",
        "role": "Helper",
        "totalJobs": 0,
        "totalProfit": 0,
        "totalPartsCost": 0,
        "totalServiceFee": 0,
    }


class TestPlatformStats:

    def test_price_fallback_chain(self, plans):
        assert reporting_service.resolve_payment_price("Basic", 1, {"basic": plans["Basic"]}) == 50000
        assert reporting_service.resolve_payment_price("yearly", 0, {}) == 500000
        assert reporting_service.resolve_payment_price("Custom", 1234, {}) == 1234
        assert reporting_service.resolve_payment_price(None, None, {}) == 0

    def test_revenue_windows(self, db_session, plans):
        basic = shop_service.create_shop(
            {"shop_name": "One", "owner_name": "O", "phone": "0910000001", "email": "one@example.com"},
            plan_ref="Basic",
            start_date=datetime(2026, 3, 10),
        )
        legacy = shop_service.create_shop(
            {"shop_name": "Two", "owner_name": "T", "phone": "0910000002", "email": "two@example.com"},
            plan_ref="monthly",
            start_date=datetime(2026, 2, 5),
        )
        # Historically zero-priced record still counts at the legacy price
        legacy.payment_history.append(ShopPayment(plan_name="yearly", price=0, date=datetime(2026, 3, 20)))
        db_session.commit()

        stats = reporting_service.platform_financial_stats(month=3, year=2026, now=datetime(2026, 3, 25))

        assert stats["monthlyRevenue"] == 50000 + 500000
        assert stats["yearlyRevenue"] == 50000 + 50000 + 500000
        # "Two" lapsed on 2026-03-05
        assert stats["activeSubscribers"] == 1
        assert stats["revenueByPlan"] == [
            {"plan": "Yearly", "percentage": 83},
            {"plan": "Basic", "percentage": 8},
            {"plan": "Monthly", "percentage": 8},
        ]
        assert stats["monthlyTrend"] == [
            {"month": "Oct", "total": 0},
            {"month": "Nov", "total": 0},
            {"month": "Dec", "total": 0},
            {"month": "Jan", "total": 0},
            {"month": "Feb", "total": 50000},
            {"month": "Mar", "total": 550000},
        ]
        assert basic.is_active

    def test_shop_without_history_counted_once(self, db_session):
        shop = Shop(
            shop_name="Old",
            owner_name="O",
            phone="0910000003",
            email="old@example.com",
            subscription_plan="monthly",
            subscription_start=datetime(2026, 1, 15),
            subscription_expire=datetime(2026, 2, 15),
        )
        db_session.add(shop)
        db_session.commit()

        stats = reporting_service.platform_financial_stats(month=1, year=2026, now=datetime(2026, 1, 20))
        assert stats["monthlyRevenue"] == 50000
        assert stats["activeSubscribers"] == 1
        assert stats["revenueByPlan"] == [{"plan": "Monthly", "percentage": 100}]

    def test_invalid_month(self, db_session):
        with pytest.raises(ValidationError):
            reporting_service.platform_financial_stats(month=0, year=2026)

    @pytest.mark.parametrize("year", [0, "10000", -5])
    def test_invalid_year(self, db_session, year):
        with pytest.raises(ValidationError):
            reporting_service.platform_financial_stats(month=3, year=year)

    def test_plan_share_rounds_half_up(self, db_session):
        for index, (plan_name, price) in enumerate([("A", 1), ("B", 7)]):
            shop = Shop(
                shop_name=f"Shop {plan_name}",
                owner_name="O",
                phone=f"091000001{index}",
                email=f"share{index}@example.com",
                subscription_plan=plan_name,
                subscription_start=datetime(2026, 1, 5),
                subscription_expire=datetime(2026, 2, 5),
            )
            shop.payment_history.append(ShopPayment(plan_name=plan_name, price=price, date=datetime(2026, 1, 5)))
            db_session.add(shop)
        db_session.commit()

        stats = reporting_service.platform_financial_stats(month=1, year=2026, now=datetime(2026, 1, 20))
        assert stats["revenueByPlan"] == [
            {"plan": "B", "percentage": 88},
            {"plan": "A", "percentage": 13},
        ]
