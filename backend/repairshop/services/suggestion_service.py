# Overview: Service-layer operations for suggestions; encapsulates business logic and database work.

"""
Suggestion Index

Frequency-ranked autocomplete values (device model, color, issue) harvested
from job intake. Indexing is a side effect of job creation and must never
make the job itself fail.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Suggestion, SUGGESTION_TYPES
from repairshop.errors import ValidationError


MAX_SUGGESTIONS = 20


def _check_type(kind: str) -> str:
    if kind not in SUGGESTION_TYPES:
        raise ValidationError(f"Invalid suggestion type. Must be one of: {', '.join(SUGGESTION_TYPES)}")
    return kind


def add_suggestion(kind: str, value) -> None:
    """
    Upsert (type, value) and bump its frequency.

    Runs in a nested transaction so a failure here rolls back only the
    suggestion row; the error is logged and swallowed.
    """
    if kind not in SUGGESTION_TYPES:
        return
    value = str(value or "").strip()
    if not value:
        return

    try:
        with db.session.begin_nested():
            existing = (
                db.session.query(Suggestion)
                .filter(Suggestion.type == kind, func.lower(Suggestion.value) == value.lower())
                .first()
            )
            if existing:
                existing.frequency = Suggestion.frequency + 1
            else:
                db.session.add(Suggestion(type=kind, value=value, frequency=1))
    except SQLAlchemyError:
        current_app.logger.exception("Failed to index suggestion %s=%r", kind, value)


def index_job_fields(job) -> None:
    add_suggestion("model", job.device_model)
    add_suggestion("color", job.color)
    add_suggestion("issue", job.issue)


def get_suggestions(kind: str, q: str | None = None) -> list[str]:
    """Top values for a type, most frequent first, ties broken alphabetically."""
    _check_type(kind)
    query = db.session.query(Suggestion.value).filter(Suggestion.type == kind)
    if q:
        query = query.filter(Suggestion.value.ilike(f"%{q.strip()}%"))
    rows = (
        query.order_by(Suggestion.frequency.desc(), Suggestion.value.asc())
        .limit(MAX_SUGGESTIONS)
        .all()
    )
    return [value for (value,) in rows]
