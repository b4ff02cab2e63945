# Overview: Job status normalization and append-only history recording; pure logic, no I/O.

"""
Job Status Timeline Engine

================================================================================
PURPOSE: One place that knows the job status vocabulary and how transitions
are recorded on a job.
================================================================================

STATE MACHINE:
    pending -> progress -> cancel / complete -> checked_out

    pending, progress, cancel, complete: freely reachable from one another
    checked_out: terminal, reached through checkout (or an explicit update)

TWO INPUT POLICIES:
- normalize_status(): lenient. Legacy/internal strings are mapped onto the
  five canonical values and anything unrecognized becomes "pending".
- validate_status(): strict. Explicit API input outside the canonical set is
  rejected with InvalidStatusError.

Nothing here touches the database session. Entries are appended to the job's
relationship lists and persisted by whoever commits the job.
"""

from __future__ import annotations

from datetime import datetime

from repairshop.errors import InvalidStatusError
from repairshop.models import JobStatusLog, JobTimelineEntry
from repairshop.time_utils import utcnow


STATUS_PENDING = "pending"
STATUS_PROGRESS = "progress"
STATUS_CANCEL = "cancel"
STATUS_COMPLETE = "complete"
STATUS_CHECKED_OUT = "checked_out"

# Order matters for status-count responses
CANONICAL_STATUSES = (
    STATUS_PENDING,
    STATUS_PROGRESS,
    STATUS_CANCEL,
    STATUS_COMPLETE,
    STATUS_CHECKED_OUT,
)
TERMINAL_STATUSES = {STATUS_CHECKED_OUT}

_SYNONYMS = {
    "pending": STATUS_PENDING,
    "progress": STATUS_PROGRESS,
    "in-progress": STATUS_PROGRESS,
    "cancel": STATUS_CANCEL,
    "cancelled": STATUS_CANCEL,
    "complete": STATUS_COMPLETE,
    "completed": STATUS_COMPLETE,
    "checked_out": STATUS_CHECKED_OUT,
    "checked-out": STATUS_CHECKED_OUT,
    "picked-up": STATUS_CHECKED_OUT,
}

SYSTEM_ACTOR_NAME = "System"


def normalize_status(raw) -> str:
    """
    Map any status-ish value onto a canonical status.

    Case-insensitive, whitespace-trimmed. Unknown or empty input falls back
    to "pending" rather than raising.
    """
    key = str(raw if raw is not None else "").strip().lower()
    return _SYNONYMS.get(key, STATUS_PENDING)


def validate_status(raw) -> str:
    """Strict check for explicit input: the value must already be canonical."""
    if raw not in CANONICAL_STATUSES:
        raise InvalidStatusError(
            f"Invalid job status '{raw}'. Must be one of: {', '.join(CANONICAL_STATUSES)}"
        )
    return raw


def can_transition(from_status: str, to_status: str) -> bool:
    """Every non-terminal status may move to any canonical status."""
    if from_status in TERMINAL_STATUSES:
        return False
    return to_status in CANONICAL_STATUSES


def actor_display_name(actor) -> str:
    if actor is None:
        return SYSTEM_ACTOR_NAME
    return getattr(actor, "name", None) or getattr(actor, "email", None) or SYSTEM_ACTOR_NAME


def append_timeline_entry(job, status: str | None, *, now: datetime | None = None) -> None:
    if not status:
        return
    job.timeline.append(JobTimelineEntry(status=status, updated_at=now or utcnow()))


def append_status_log(
    job,
    actor,
    from_status: str | None,
    to_status: str | None,
    source: str = "manual",
    *,
    now: datetime | None = None,
) -> None:
    """
    Append one audit record. Repeating the current status is a no-op so
    identical updates leave no audit noise.
    """
    if not to_status or from_status == to_status:
        return
    job.status_logs.append(
        JobStatusLog(
            from_status=from_status or None,
            to_status=to_status,
            updated_at=now or utcnow(),
            updated_by_user_id=getattr(actor, "user_id", None),
            updated_by_name=actor_display_name(actor),
            source=source,
        )
    )


def seed_job_history(job, actor, *, now: datetime | None = None) -> None:
    """
    Initial state for a new job: status forced to pending, exactly one
    timeline entry, and the create event in the audit trail.
    """
    now = now or utcnow()
    job.status = STATUS_PENDING
    if not job.timeline:
        append_timeline_entry(job, STATUS_PENDING, now=now)
    append_status_log(job, actor, None, STATUS_PENDING, "create", now=now)
