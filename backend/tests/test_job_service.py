"""
Job ledger: intake, updates, checkout lock and tenant scoping.
"""

from datetime import timedelta

import pytest
from sqlalchemy.orm.attributes import set_committed_value

from repairshop.errors import (
    AlreadyLockedError,
    ForbiddenError,
    GoneError,
    InvalidStatusError,
    LockedError,
    NotFoundError,
    ValidationError,
)
from repairshop.models import Job, Staff, Suggestion
from repairshop.services import job_service, suggestion_service
from repairshop.time_utils import utcnow


def _job_fields(**overrides):
    fields = {
        "customer_name": "Ko Zaw",
        "customer_phone": "09444555666",
        "device_model": "iPhone 12",
        "color": "Black",
        "issue": "Broken screen",
        "parts_cost": 10000,
        "service_fee": 20000,
        "reserves": 5000,
    }
    fields.update(overrides)
    return fields


class TestCreateJob:

    def test_totals_status_and_history(self, shop_a, actor_a):
        job = job_service.create_job(shop_a.id, _job_fields(), actor_a)

        assert job.total_amount == 25000
        assert job.status == "pending"
        assert job.is_locked is False
        assert [e.status for e in job.timeline] == ["pending"]
        assert job.status_logs[0].source == "create"
        assert job.job_no.startswith("#")

    def test_caller_status_is_ignored(self, shop_a, actor_a):
        job = job_service.create_job(shop_a.id, _job_fields(status="complete"), actor_a)
        assert job.status == "pending"

    def test_missing_costs_default_to_zero(self, shop_a):
        fields = _job_fields()
        for key in ("parts_cost", "service_fee", "reserves"):
            fields.pop(key)
        job = job_service.create_job(shop_a.id, fields)
        assert (job.parts_cost, job.service_fee, job.reserves, job.total_amount) == (0, 0, 0, 0)

    def test_missing_required_field(self, shop_a):
        with pytest.raises(ValidationError, match="customer_phone"):
            job_service.create_job(shop_a.id, _job_fields(customer_phone=""))

    @pytest.mark.parametrize("bad", ["abc", "12.5", -1, 1.5])
    def test_invalid_cost(self, shop_a, bad):
        with pytest.raises(ValidationError):
            job_service.create_job(shop_a.id, _job_fields(parts_cost=bad))

    def test_numeric_strings_accepted(self, shop_a):
        job = job_service.create_job(shop_a.id, _job_fields(parts_cost="1000", service_fee="2000", reserves="0"))
        assert job.total_amount == 3000

    def test_unknown_field_rejected(self, shop_a):
        with pytest.raises(ValidationError, match="not allowed"):
            job_service.create_job(shop_a.id, _job_fields(profit=999999))

    def test_technician_from_other_shop_rejected(self, db_session, shop_a, shop_b):
        other = Staff(shop_id=shop_b.id, name="Mg Mg")
        db_session.add(other)
        db_session.commit()
        with pytest.raises(ValidationError):
            job_service.create_job(shop_a.id, _job_fields(assigned_technician_id=other.id))

    def test_job_numbers_unique(self, shop_a):
        first = job_service.create_job(shop_a.id, _job_fields())
        second = job_service.create_job(shop_a.id, _job_fields())
        assert first.job_no != second.job_no

    def test_indexes_suggestions(self, db_session, shop_a):
        job_service.create_job(shop_a.id, _job_fields())
        job_service.create_job(shop_a.id, _job_fields(device_model="iphone 12"))

        row = db_session.query(Suggestion).filter_by(type="model").one()
        assert row.value == "iPhone 12"
        assert row.frequency == 2
        assert suggestion_service.get_suggestions("issue") == ["Broken screen"]


class TestUpdateJob:

    def test_status_change_is_logged(self, shop_a, actor_a):
        job = job_service.create_job(shop_a.id, _job_fields(), actor_a)
        job = job_service.update_job(job.id, shop_a.id, {"status": "progress"}, actor_a)

        assert job.status == "progress"
        assert [e.status for e in job.timeline] == ["pending", "progress"]
        log = job.status_logs[-1]
        assert (log.from_status, log.to_status, log.source) == ("pending", "progress", "update")
        assert log.updated_by_user_id == actor_a.user_id

    def test_same_status_adds_no_history(self, shop_a):
        job = job_service.create_job(shop_a.id, _job_fields())
        job = job_service.update_job(job.id, shop_a.id, {"status": "pending"})
        assert len(job.timeline) == 1
        assert len(job.status_logs) == 1

    def test_invalid_status_rejected(self, shop_a):
        job = job_service.create_job(shop_a.id, _job_fields())
        with pytest.raises(InvalidStatusError):
            job_service.update_job(job.id, shop_a.id, {"status": "in-progress"})

    def test_total_recomputed_only_when_costs_change(self, db_session, shop_a):
        job = job_service.create_job(shop_a.id, _job_fields())
        job = job_service.update_job(job.id, shop_a.id, {"service_fee": 30000})
        assert job.total_amount == 35000

        # A stored total is left alone by non-cost updates
        job.total_amount = 1
        db_session.commit()
        job = job_service.update_job(job.id, shop_a.id, {"issue": "Battery"})
        assert job.total_amount == 1

    def test_locked_job_rejects_updates(self, shop_a):
        job = job_service.create_job(shop_a.id, _job_fields())
        job_service.checkout_job(job.id, shop_a.id)
        with pytest.raises(LockedError):
            job_service.update_job(job.id, shop_a.id, {"issue": "Other"})

    def test_update_to_checked_out_locks(self, shop_a):
        job = job_service.create_job(shop_a.id, _job_fields())
        job = job_service.update_job(job.id, shop_a.id, {"status": "checked_out"})
        assert job.is_locked is True
        with pytest.raises(LockedError):
            job_service.update_job(job.id, shop_a.id, {"status": "pending"})


class TestCheckout:

    def test_lifecycle(self, shop_a, actor_a):
        job = job_service.create_job(shop_a.id, _job_fields(), actor_a)
        job_service.update_job(job.id, shop_a.id, {"status": "progress"}, actor_a)
        job = job_service.checkout_job(job.id, shop_a.id, actor_a)

        assert job.final_cost == 25000
        assert job.profit == 5000
        assert job.is_locked is True
        assert job.status == "checked_out"
        assert job.checkout_date is not None
        assert job.timeline[-1].status == "checked_out"
        assert job.status_logs[-1].source == "checkout"

        with pytest.raises(LockedError):
            job_service.update_job(job.id, shop_a.id, {"status": "complete"}, actor_a)

    def test_second_checkout_fails(self, shop_a):
        job = job_service.create_job(shop_a.id, _job_fields())
        job_service.checkout_job(job.id, shop_a.id)
        with pytest.raises(AlreadyLockedError):
            job_service.checkout_job(job.id, shop_a.id)

    def test_frozen_fields_survive_failed_checkout(self, shop_a):
        job = job_service.create_job(shop_a.id, _job_fields())
        first = job_service.checkout_job(job.id, shop_a.id)
        checkout_date = first.checkout_date
        with pytest.raises(AlreadyLockedError):
            job_service.checkout_job(job.id, shop_a.id)
        job = job_service.get_job(job.id, shop_a.id)
        assert (job.final_cost, job.profit, job.checkout_date) == (25000, 5000, checkout_date)

    def test_loses_race_when_row_already_locked(self, db_session, shop_a):
        """A checkout that read an unlocked row but finds it locked on write fails."""
        job = job_service.create_job(shop_a.id, _job_fields())
        db_session.query(Job).filter_by(id=job.id).update(
            {"is_locked": True, "final_cost": 1}, synchronize_session=False
        )
        db_session.commit()

        # Stale in-memory copy that still reads as unlocked
        set_committed_value(job, "is_locked", False)
        assert job.is_locked is False

        with pytest.raises(AlreadyLockedError):
            job_service.checkout_job(job.id, shop_a.id)
        assert db_session.get(Job, job.id).final_cost == 1


class TestTenantScope:

    def test_other_shop_forbidden(self, shop_a, shop_b):
        job = job_service.create_job(shop_a.id, _job_fields())
        with pytest.raises(ForbiddenError):
            job_service.get_job(job.id, shop_b.id)
        with pytest.raises(ForbiddenError):
            job_service.update_job(job.id, shop_b.id, {"status": "progress"})
        with pytest.raises(ForbiddenError):
            job_service.checkout_job(job.id, shop_b.id)
        with pytest.raises(ForbiddenError):
            job_service.delete_job(job.id, shop_b.id)

    def test_missing_job(self, shop_a):
        with pytest.raises(NotFoundError):
            job_service.get_job(99999, shop_a.id)

    def test_listing_scoped_and_filtered(self, shop_a, shop_b):
        job_service.create_job(shop_a.id, _job_fields(customer_name="Daw Hla", device_model="Galaxy S21"))
        target = job_service.create_job(shop_a.id, _job_fields())
        job_service.update_job(target.id, shop_a.id, {"status": "progress"})
        job_service.create_job(shop_b.id, _job_fields())

        everything = job_service.list_jobs(shop_a.id)
        assert everything["total_jobs"] == 2
        assert everything["jobs"][0]["id"] == target.id

        assert job_service.list_jobs(shop_a.id, search="galaxy")["total_jobs"] == 1
        assert job_service.list_jobs(shop_a.id, status="progress")["total_jobs"] == 1
        assert job_service.list_jobs(shop_a.id, status="all")["total_jobs"] == 2

    def test_pagination(self, shop_a):
        for _ in range(3):
            job_service.create_job(shop_a.id, _job_fields())
        page = job_service.list_jobs(shop_a.id, page=2, limit=2)
        assert page["current_page"] == 2
        assert page["total_pages"] == 2
        assert len(page["jobs"]) == 1

    def test_status_counts(self, shop_a):
        first = job_service.create_job(shop_a.id, _job_fields())
        job_service.create_job(shop_a.id, _job_fields())
        job_service.checkout_job(first.id, shop_a.id)

        counts = job_service.status_counts(shop_a.id)
        assert counts == {"pending": 1, "progress": 0, "cancel": 0, "complete": 0, "checked_out": 1}


class TestNotifications:

    def test_complete_notifies_linked_customer(self, shop_a, notifier):
        job = job_service.create_job(shop_a.id, _job_fields())
        job.customer_chat_id = "555"
        job_service.update_job(job.id, shop_a.id, {"status": "progress"})
        assert notifier.sent == []

        job_service.update_job(job.id, shop_a.id, {"status": "complete"})
        assert len(notifier.sent) == 1
        chat_id, text = notifier.sent[0]
        assert chat_id == "555"
        assert job.job_no in text
        assert "Shop A" in text

    def test_unlinked_customer_not_notified(self, shop_a, notifier):
        job = job_service.create_job(shop_a.id, _job_fields())
        job_service.update_job(job.id, shop_a.id, {"status": "complete"})
        assert notifier.sent == []

    def test_notification_failure_does_not_fail_update(self, shop_a, notifier):
        notifier.fail = True
        job = job_service.create_job(shop_a.id, _job_fields())
        job.customer_chat_id = "555"
        job = job_service.update_job(job.id, shop_a.id, {"status": "complete"})
        assert job.status == "complete"


class TestQrLink:

    def test_fresh_job(self, shop_a):
        job = job_service.create_job(shop_a.id, _job_fields())
        link = job_service.job_qr_link(job.id, shop_a.id)
        assert link["payload"] == f"job_{job.id}"
        assert link["qr_link"] == f"https://t.me/testbot?start=job_{job.id}"

    def test_old_job_link_gone(self, db_session, shop_a):
        job = job_service.create_job(shop_a.id, _job_fields())
        job.created_at = utcnow() - timedelta(days=31)
        db_session.commit()
        with pytest.raises(GoneError):
            job_service.job_qr_link(job.id, shop_a.id)
