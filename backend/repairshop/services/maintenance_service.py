# Overview: Service-layer maintenance operations (data repair).

from __future__ import annotations

from ..extensions import db
from ..models import Job
from .status_service import STATUS_CHECKED_OUT, append_timeline_entry, normalize_status


def normalize_job_statuses() -> tuple[int, int]:
    """
    Repair jobs written with legacy status strings.

    - job and timeline statuses mapped to canonical values
    - jobs without a timeline get one entry for their current status
    - checked_out jobs are locked

    Returns (changed, total).
    """
    jobs = db.session.query(Job).order_by(Job.id).all()
    changed = 0

    for job in jobs:
        dirty = False

        status = normalize_status(job.status)
        if job.status != status:
            job.status = status
            dirty = True

        for entry in job.timeline:
            entry_status = normalize_status(entry.status)
            if entry.status != entry_status:
                entry.status = entry_status
                dirty = True

        for log in job.status_logs:
            if log.from_status:
                from_status = normalize_status(log.from_status)
                if log.from_status != from_status:
                    log.from_status = from_status
                    dirty = True
            to_status = normalize_status(log.to_status)
            if log.to_status != to_status:
                log.to_status = to_status
                dirty = True

        if not job.timeline:
            append_timeline_entry(job, job.status, now=job.created_at)
            dirty = True

        if job.status == STATUS_CHECKED_OUT and not job.is_locked:
            job.is_locked = True
            dirty = True

        if dirty:
            changed += 1

    db.session.commit()
    return changed, len(jobs)
