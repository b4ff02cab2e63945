# Overview: Flask API routes for super-admin operations; parses input and returns JSON responses.

"""
Admin Routes

SECURITY: Everything here requires a super-admin token, except the public
list of active plans used by the shop sign-up screen.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_super_admin
from ..services import (
    auth_service,
    job_service,
    pin_service,
    plan_service,
    reporting_service,
    shop_service,
    staff_service,
    subscription_service,
)
from repairshop.errors import ValidationError
from repairshop.time_utils import parse_iso_datetime


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")

# Body keys consumed by the subscription ledger rather than the shop row
_SUBSCRIPTION_KEYS = (
    "subscription_plan_id",
    "subscription_plan",
    "subscription_start",
    "subscription_expire",
    "max_staff_allowed",
    "password",
)


def _parse_date_field(data: dict, key: str):
    raw = data.get(key)
    if not raw:
        return None
    try:
        return parse_iso_datetime(str(raw))
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 datetime")


@admin_bp.post("/shops")
@require_auth
@require_super_admin
def create_shop_route():
    """
    Create a shop and bill its first subscription.

    Request body:
    {
        "shop_name": "...", "owner_name": "...", "phone": "...", "email": "...",  // required
        "address": "...", "custom_rule": "...", "subscription_class": "Basic",
        "subscription_plan_id": 2,          // catalog id or plan name
        "subscription_plan": "monthly",     // legacy name when no id is given
        "subscription_start": "2026-01-01",
        "subscription_expire": "2026-02-01",// only for legacy plans
        "max_staff_allowed": 3,
        "password": "secret1"               // creates the owner login
    }
    """
    data = dict(request.get_json(silent=True) or {})
    options = {key: data.pop(key, None) for key in _SUBSCRIPTION_KEYS}

    max_staff = options["max_staff_allowed"]
    if max_staff is not None and (isinstance(max_staff, bool) or not isinstance(max_staff, int)):
        raise ValidationError("max_staff_allowed must be a whole number")

    shop = shop_service.create_shop(
        data,
        plan_ref=options["subscription_plan_id"] or options["subscription_plan"] or "trial",
        start_date=_parse_date_field(options, "subscription_start"),
        expire_override=_parse_date_field(options, "subscription_expire"),
        max_staff=max_staff,
        password=options["password"],
        actor=g.actor,
    )
    return jsonify({"message": "Shop Created Successfully", "shop": shop.to_dict()}), 201


@admin_bp.get("/shops")
@require_auth
@require_super_admin
def list_shops_route():
    return jsonify(shop_service.list_shops_with_job_counts())


@admin_bp.get("/shops/<int:shop_id>")
@require_auth
@require_super_admin
def get_shop_route(shop_id: int):
    return jsonify(shop_service.get_shop(shop_id).to_dict())


@admin_bp.put("/shops/<int:shop_id>")
@require_auth
@require_super_admin
def update_shop_route(shop_id: int):
    data = request.get_json(silent=True) or {}
    return jsonify(shop_service.update_shop(shop_id, data).to_dict())


@admin_bp.put("/shops/<int:shop_id>/password")
@require_auth
@require_super_admin
def update_shop_password_route(shop_id: int):
    data = request.get_json(silent=True) or {}
    auth_service.reset_shop_owner_password(shop_id, data.get("new_password") or "")
    return jsonify({"message": "Password updated successfully"})


@admin_bp.put("/shops/<int:shop_id>/pin")
@require_auth
@require_super_admin
def update_shop_pin_route(shop_id: int):
    """Body {"new_pin": "1234"} sets a PIN; an empty body restores the default."""
    data = request.get_json(silent=True) or {}
    pin_service.admin_reset_pin(shop_id, data.get("new_pin"))
    return jsonify({"message": "PIN updated successfully"})


@admin_bp.post("/shops/<int:shop_id>/extend")
@require_auth
@require_super_admin
def extend_shop_route(shop_id: int):
    data = request.get_json(silent=True) or {}
    plan_name = data.get("plan_name")
    if not plan_name:
        return jsonify({"error": "plan_name required"}), 400
    shop, voucher = subscription_service.extend_shop_subscription(shop_id, plan_name, g.actor)
    return jsonify({
        "message": "Shop subscription extended successfully",
        "shop": shop.to_dict(),
        "voucher": voucher.to_dict(),
    })


@admin_bp.patch("/shops/<int:shop_id>/limit")
@require_auth
@require_super_admin
def update_staff_limit_route(shop_id: int):
    data = request.get_json(silent=True) or {}
    shop = shop_service.update_staff_limit(shop_id, data.get("max_staff_allowed"))
    return jsonify({
        "message": "Staff limit updated successfully",
        "shop": {"id": shop.id, "shop_name": shop.shop_name, "max_staff_allowed": shop.max_staff_allowed},
    })


@admin_bp.post("/shops/<int:shop_id>/owner-qr")
@require_auth
@require_super_admin
def owner_qr_route(shop_id: int):
    return jsonify(shop_service.generate_owner_qr(shop_id))


@admin_bp.get("/shops/<int:shop_id>/invoices")
@require_auth
@require_super_admin
def list_invoices_route(shop_id: int):
    return jsonify([v.to_dict() for v in subscription_service.list_invoices(shop_id)])


@admin_bp.get("/shops/<int:shop_id>/invoices/latest")
@require_auth
@require_super_admin
def latest_invoice_route(shop_id: int):
    return jsonify(subscription_service.latest_invoice(shop_id).to_dict())


@admin_bp.delete("/shops/<int:shop_id>")
@require_auth
@require_super_admin
def delete_shop_route(shop_id: int):
    shop_service.delete_shop(shop_id)
    return jsonify({"message": "Shop deleted successfully"})


@admin_bp.get("/financial-stats")
@require_auth
@require_super_admin
def financial_stats_route():
    stats = reporting_service.platform_financial_stats(
        month=request.args.get("month"),
        year=request.args.get("year"),
    )
    return jsonify(stats)


@admin_bp.get("/users")
@require_auth
@require_super_admin
def list_users_route():
    return jsonify(auth_service.list_users(
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", 50, type=int),
    ))


@admin_bp.get("/jobs")
@require_auth
@require_super_admin
def list_all_jobs_route():
    return jsonify(job_service.list_all_jobs(
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", 50, type=int),
    ))


@admin_bp.get("/staff")
@require_auth
@require_super_admin
def list_all_staff_route():
    return jsonify(staff_service.list_all_staff())


# =============================================================================
# Subscription plan catalog
# =============================================================================

@admin_bp.get("/subscription-plans/active")
def list_active_plans_route():
    return jsonify([p.to_dict() for p in plan_service.list_active_plans()])


@admin_bp.get("/subscription-plans")
@require_auth
@require_super_admin
def list_plans_route():
    return jsonify(plan_service.list_plans(
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", 50, type=int),
    ))


@admin_bp.post("/subscription-plans")
@require_auth
@require_super_admin
def create_plan_route():
    data = request.get_json(silent=True) or {}
    plan = plan_service.create_plan(data)
    return jsonify({"message": "Plan created successfully", "plan": plan.to_dict()}), 201


@admin_bp.get("/subscription-plans/<int:plan_id>")
@require_auth
@require_super_admin
def get_plan_route(plan_id: int):
    return jsonify(plan_service.get_plan(plan_id).to_dict())


@admin_bp.put("/subscription-plans/<int:plan_id>")
@require_auth
@require_super_admin
def update_plan_route(plan_id: int):
    data = request.get_json(silent=True) or {}
    plan = plan_service.update_plan(plan_id, data)
    return jsonify({"message": "Plan updated successfully", "plan": plan.to_dict()})


@admin_bp.delete("/subscription-plans/<int:plan_id>")
@require_auth
@require_super_admin
def delete_plan_route(plan_id: int):
    plan_service.delete_plan(plan_id)
    return jsonify({"message": "Plan deleted successfully"})
