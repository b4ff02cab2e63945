# Overview: Flask API routes for expense operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_shop
from ..services import expense_service


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.post("")
@require_auth
@require_shop
def create_expense_route():
    """Request body: {"title": "...", "amount": 5000, "note": "", "expense_date": "2026-01-31"}"""
    data = request.get_json(silent=True) or {}
    expense = expense_service.create_expense(g.shop_id, data)
    return jsonify(expense.to_dict()), 201


@expenses_bp.get("/my-shop")
@require_auth
@require_shop
def list_expenses_route():
    limit = request.args.get("limit", expense_service.DEFAULT_LIST_LIMIT, type=int)
    expenses = expense_service.list_expenses(g.shop_id, limit=limit)
    return jsonify({"expenses": [e.to_dict() for e in expenses]})


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_shop
def delete_expense_route(expense_id: int):
    expense_service.delete_expense(expense_id, g.shop_id)
    return jsonify({"message": "Expense removed"})
