"""
CLI commands and the legacy status repair they run.
"""

from datetime import datetime

from repairshop.models import Job, JobTimelineEntry, SubscriptionPlan, User
from repairshop.services import job_service, maintenance_service


def _legacy_job(db_session, shop_id, status, *, with_timeline=False) -> Job:
    created = datetime(2025, 6, 1, 10, 0)
    job = Job(
        job_no=f"#legacy-{status}",
        shop_id=shop_id,
        customer_name="Old",
        customer_phone="1",
        device_model="Nokia",
        issue="Old issue",
        status=status,
        created_at=created,
        updated_at=created,
    )
    if with_timeline:
        job.timeline.append(JobTimelineEntry(status="In-Progress", updated_at=created))
    db_session.add(job)
    db_session.commit()
    return job


class TestNormalizeStatuses:

    def test_repairs_legacy_rows(self, db_session, shop_a):
        picked = _legacy_job(db_session, shop_a.id, "picked-up")
        progress = _legacy_job(db_session, shop_a.id, "in-progress", with_timeline=True)
        clean = job_service.create_job(shop_a.id, {
            "customer_name": "New", "customer_phone": "2", "device_model": "X", "issue": "Y",
        })

        changed, total = maintenance_service.normalize_job_statuses()

        assert (changed, total) == (2, 3)
        picked = db_session.get(Job, picked.id)
        assert picked.status == "checked_out"
        assert picked.is_locked is True
        assert [(e.status, e.updated_at) for e in picked.timeline] == [("checked_out", datetime(2025, 6, 1, 10, 0))]

        progress = db_session.get(Job, progress.id)
        assert progress.status == "progress"
        assert [e.status for e in progress.timeline] == ["progress"]
        assert progress.is_locked is False

        assert db_session.get(Job, clean.id).status == "pending"

    def test_idempotent(self, db_session, shop_a):
        _legacy_job(db_session, shop_a.id, "Completed")
        maintenance_service.normalize_job_statuses()
        assert maintenance_service.normalize_job_statuses() == (0, 1)


def test_plans_seed_command(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["plans", "seed"])
    assert "Seeded 3 subscription plan(s)" in result.output
    result = runner.invoke(args=["plans", "seed"])
    assert "Seeded 0 subscription plan(s)" in result.output
    assert db_session.query(SubscriptionPlan).count() == 3


def test_create_super_admin_command(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["users", "create-super-admin", "--email", "Root@Example.com", "--password", "secret1"])
    assert "PASS Created super admin: root@example.com" in result.output

    user = db_session.query(User).filter_by(email="root@example.com").one()
    assert user.is_super_admin is True
    assert user.shop_id is None


def test_daily_summary_command_without_transport(app, db_session):
    result = app.test_cli_runner().invoke(args=["notify", "daily-summary"])
    assert "Sent 0 daily summary message(s)." in result.output
