# Overview: Service-layer operations for expenses; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Expense
from ..validation import EXPENSE_POLICY, validate_payload
from repairshop.errors import ForbiddenError, NotFoundError
from repairshop.time_utils import utcnow


DEFAULT_LIST_LIMIT = 50


def create_expense(shop_id: int, fields: dict) -> Expense:
    """Record a shop expense; expense_date defaults to now."""
    patch = validate_payload(model=Expense, payload=fields, policy=EXPENSE_POLICY, partial=False)
    now = utcnow()
    expense = Expense(shop_id=shop_id, created_at=now, **patch)
    if expense.expense_date is None:
        expense.expense_date = now
    if expense.note is None:
        expense.note = ""
    db.session.add(expense)
    db.session.commit()
    return expense


def list_expenses(shop_id: int, *, limit: int = DEFAULT_LIST_LIMIT) -> list[Expense]:
    limit = max(int(limit or DEFAULT_LIST_LIMIT), 1)
    return (
        db.session.query(Expense)
        .filter(Expense.shop_id == shop_id)
        .order_by(Expense.expense_date.desc(), Expense.id.desc())
        .limit(limit)
        .all()
    )


def delete_expense(expense_id: int, actor_shop_id: int | None) -> None:
    expense = db.session.get(Expense, expense_id)
    if expense is None:
        raise NotFoundError("Expense not found")
    if expense.shop_id != actor_shop_id:
        raise ForbiddenError("Not authorized to delete this expense")
    db.session.delete(expense)
    db.session.commit()
