from __future__ import annotations

from ..extensions import db


SUGGESTION_TYPES = ("model", "color", "issue")


class Suggestion(db.Model):
    """Frequency-ranked autocomplete value harvested from job fields."""
    __tablename__ = "suggestions"
    __table_args__ = (
        db.UniqueConstraint("type", "value", name="uq_suggestions_type_value"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(16), nullable=False)
    value = db.Column(db.String(255), nullable=False)
    frequency = db.Column(db.Integer, nullable=False, default=1)
