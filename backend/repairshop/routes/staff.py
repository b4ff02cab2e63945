# Overview: Flask API routes for staff operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_shop
from ..services import reporting_service, staff_service


staff_bp = Blueprint("staff", __name__, url_prefix="/api/staff")


@staff_bp.post("")
@require_auth
@require_shop
def create_staff_route():
    """
    Request body: {"name": "...", "role": "Technician", "phone": "..."}

    403 with limit / current_count / subscription_class when the quota is full.
    """
    data = request.get_json(silent=True) or {}
    staff = staff_service.create_staff(g.shop_id, data)
    return jsonify(staff.to_dict()), 201


@staff_bp.get("/my-shop")
@require_auth
@require_shop
def list_staff_route():
    return jsonify(staff_service.list_staff(g.shop_id))


@staff_bp.get("/my-shop/performance")
@require_auth
@require_shop
def staff_performance_route():
    result = reporting_service.staff_performance(
        g.shop_id,
        request.args.get("period", "monthly"),
        date=request.args.get("date"),
        month=request.args.get("month"),
        year=request.args.get("year"),
    )
    return jsonify(result)


@staff_bp.get("/<int:staff_id>")
@require_auth
@require_shop
def get_staff_route(staff_id: int):
    return jsonify(staff_service.get_staff(staff_id, g.shop_id).to_dict())


@staff_bp.put("/<int:staff_id>")
@require_auth
@require_shop
def update_staff_route(staff_id: int):
    data = request.get_json(silent=True) or {}
    return jsonify(staff_service.update_staff(staff_id, g.shop_id, data).to_dict())


@staff_bp.delete("/<int:staff_id>")
@require_auth
@require_shop
def delete_staff_route(staff_id: int):
    staff_service.delete_staff(staff_id, g.shop_id)
    return jsonify({"message": "Staff removed"})
