# Overview: Service-layer operations for jobs; encapsulates business logic and database work.

"""
Job Ledger

================================================================================
LIFECYCLE
================================================================================
    create   -> pending, one timeline entry, "create" audit log
    update   -> any canonical status while unlocked ("update" audit log)
    checkout -> freezes final_cost / profit / checkout_date, locks the job
                ("checkout" audit log)

INVARIANTS:
- total_amount = parts_cost + service_fee - reserves until checkout
- A checked_out job is locked; every later update raises LockedError
- Checkout is at-most-once: the lock is taken with a conditional UPDATE
  (... WHERE is_locked = false) and a caller that affects zero rows lost
- Suggestion indexing and customer notifications never fail the operation

Every operation takes the caller's shop_id and refuses to touch another
shop's jobs.
"""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import func, or_, update

from ..extensions import db
from ..models import Job, Staff
from ..validation import JOB_COST_FIELDS, JOB_POLICY, validate_payload
from . import notification_service, suggestion_service
from .qr_service import build_qr_link, job_payload
from .status_service import (
    CANONICAL_STATUSES,
    STATUS_CHECKED_OUT,
    append_status_log,
    append_timeline_entry,
    seed_job_history,
    validate_status,
)
from repairshop.errors import (
    AlreadyLockedError,
    ForbiddenError,
    GoneError,
    LockedError,
    NotFoundError,
    ValidationError,
)
from repairshop.time_utils import utcnow


JOB_LINK_MAX_AGE_DAYS = 30
MAX_PAGE_SIZE = 100


def compute_total(parts_cost, service_fee, reserves) -> int:
    return int(parts_cost or 0) + int(service_fee or 0) - int(reserves or 0)


def _next_job_no(now) -> str:
    """Epoch-millisecond job number, bumped until it does not collide."""
    candidate = int(now.timestamp() * 1000)
    while db.session.query(Job.id).filter_by(job_no=f"#{candidate}").first():
        candidate += 1
    return f"#{candidate}"


def _check_technician(shop_id: int, technician_id) -> None:
    if technician_id is None:
        return
    staff = db.session.get(Staff, technician_id)
    if staff is None or staff.shop_id != shop_id:
        raise ValidationError("Assigned technician does not belong to this shop")


def _load_for_shop(job_id: int, actor_shop_id: int | None) -> Job:
    job = db.session.get(Job, job_id)
    if job is None:
        raise NotFoundError("Job not found")
    if actor_shop_id is None or job.shop_id != actor_shop_id:
        raise ForbiddenError("Not authorized to access this job")
    return job


def create_job(shop_id: int, fields: dict, actor=None) -> Job:
    """
    Intake a device for repair.

    Any status in the payload is ignored: new jobs always start pending.

    Raises:
        ValidationError: missing required fields, negative or non-numeric cost,
            technician from another shop
    """
    fields = dict(fields or {})
    fields.pop("status", None)
    patch = validate_payload(model=Job, payload=fields, policy=JOB_POLICY, partial=False)
    _check_technician(shop_id, patch.get("assigned_technician_id"))

    now = utcnow()
    job = Job(shop_id=shop_id, job_no=_next_job_no(now), created_at=now, updated_at=now, **patch)
    for key in JOB_COST_FIELDS:
        if getattr(job, key) is None:
            setattr(job, key, 0)
    job.total_amount = compute_total(job.parts_cost, job.service_fee, job.reserves)
    seed_job_history(job, actor, now=now)

    db.session.add(job)
    db.session.flush()

    suggestion_service.index_job_fields(job)

    db.session.commit()
    return job


def update_job(job_id: int, actor_shop_id: int | None, fields: dict, actor=None) -> Job:
    """
    Patch an unlocked job.

    Raises:
        NotFoundError, ForbiddenError: unknown job or another shop's job
        LockedError: job is already checked out
        InvalidStatusError: status outside the canonical set
        ValidationError: field not in the allow-list or bad value
    """
    job = _load_for_shop(job_id, actor_shop_id)
    if job.status == STATUS_CHECKED_OUT or job.is_locked:
        raise LockedError("Job is locked after checked_out")

    fields = dict(fields or {})
    if "status" in fields:
        validate_status(fields["status"])
    patch = validate_payload(model=Job, payload=fields, policy=JOB_POLICY, partial=True)

    if "assigned_technician_id" in patch:
        _check_technician(job.shop_id, patch["assigned_technician_id"])

    previous_status = job.status
    new_status = patch.pop("status", None)
    now = utcnow()

    if new_status and new_status != previous_status:
        append_status_log(job, actor, previous_status, new_status, "update", now=now)
        append_timeline_entry(job, new_status, now=now)
        job.status = new_status
        if new_status == STATUS_CHECKED_OUT:
            job.is_locked = True

    for key, value in patch.items():
        setattr(job, key, value)

    if any(key in patch for key in JOB_COST_FIELDS):
        job.total_amount = compute_total(job.parts_cost, job.service_fee, job.reserves)

    job.updated_at = now

    if "device_model" in patch:
        suggestion_service.add_suggestion("model", job.device_model)
    if "color" in patch:
        suggestion_service.add_suggestion("color", job.color)
    if "issue" in patch:
        suggestion_service.add_suggestion("issue", job.issue)

    db.session.commit()

    if job.status != previous_status:
        notification_service.notify_status_change_safely(job)

    return job


def checkout_job(job_id: int, actor_shop_id: int | None, actor=None) -> Job:
    """
    Finalize the bill and lock the job.

    final_cost = total_amount
    profit     = service_fee - parts_cost - reserves

    Raises:
        AlreadyLockedError: job was locked before this call (or concurrently)
    """
    job = _load_for_shop(job_id, actor_shop_id)
    if job.is_locked:
        raise AlreadyLockedError("Job is already checked out and locked")

    now = utcnow()
    final_cost = int(job.total_amount or 0)
    profit = int(job.service_fee or 0) - int(job.parts_cost or 0) - int(job.reserves or 0)

    stmt = (
        update(Job)
        .where(Job.id == job.id, Job.is_locked.is_(False))
        .values(
            is_locked=True,
            final_cost=final_cost,
            profit=profit,
            checkout_date=now,
            status=STATUS_CHECKED_OUT,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        db.session.rollback()
        raise AlreadyLockedError("Job is already checked out and locked")

    previous_status = job.status
    db.session.refresh(job)
    append_status_log(job, actor, previous_status, STATUS_CHECKED_OUT, "checkout", now=now)
    append_timeline_entry(job, STATUS_CHECKED_OUT, now=now)
    db.session.commit()
    return job


def get_job(job_id: int, actor_shop_id: int | None) -> Job:
    return _load_for_shop(job_id, actor_shop_id)


def delete_job(job_id: int, actor_shop_id: int | None) -> None:
    job = _load_for_shop(job_id, actor_shop_id)
    db.session.delete(job)
    db.session.commit()


def _paginate(query, page: int, limit: int) -> tuple[list, int, int, int]:
    page = max(int(page or 1), 1)
    limit = min(max(int(limit or 10), 1), MAX_PAGE_SIZE)
    total = query.count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, page, -(-total // limit), total


def list_jobs(
    shop_id: int,
    *,
    search: str | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    """Newest-first page of a shop's jobs, optionally filtered."""
    query = db.session.query(Job).filter(Job.shop_id == shop_id)
    if search and search.strip():
        term = f"%{search.strip()}%"
        query = query.filter(or_(Job.customer_name.ilike(term), Job.device_model.ilike(term)))
    if status and status != "all":
        query = query.filter(Job.status == validate_status(status))
    query = query.order_by(Job.created_at.desc(), Job.id.desc())

    jobs, page, total_pages, total = _paginate(query, page, limit)
    return {
        "jobs": [j.to_dict() for j in jobs],
        "current_page": page,
        "total_pages": total_pages,
        "total_jobs": total,
    }


def list_all_jobs(*, page: int = 1, limit: int = 10) -> dict:
    query = db.session.query(Job).order_by(Job.created_at.desc(), Job.id.desc())
    jobs, page, total_pages, total = _paginate(query, page, limit)
    return {
        "jobs": [j.to_dict() for j in jobs],
        "current_page": page,
        "total_pages": total_pages,
        "total_jobs": total,
    }


def status_counts(shop_id: int) -> dict[str, int]:
    counts = {status: 0 for status in CANONICAL_STATUSES}
    rows = (
        db.session.query(Job.status, func.count(Job.id))
        .filter(Job.shop_id == shop_id)
        .group_by(Job.status)
        .all()
    )
    for status, count in rows:
        if status in counts:
            counts[status] = int(count)
    return counts


def job_qr_link(job_id: int, actor_shop_id: int | None, *, now=None) -> dict:
    """
    Customer tracking deep link. Links stop being issued once the job is
    older than 30 days.
    """
    job = _load_for_shop(job_id, actor_shop_id)
    now = now or utcnow()
    if job.created_at < now - timedelta(days=JOB_LINK_MAX_AGE_DAYS):
        raise GoneError("Job QR link expired")
    payload = job_payload(job.id)
    return {"payload": payload, "qr_link": build_qr_link(payload)}
