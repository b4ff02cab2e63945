# Overview: Flask API routes for job operations; parses input and returns JSON responses.

"""
Job Routes

SECURITY: All routes require authentication and a shop-bound caller.
Jobs of other shops answer 403.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_shop
from ..services import job_service, reporting_service


jobs_bp = Blueprint("jobs", __name__, url_prefix="/api/jobs")


@jobs_bp.post("")
@require_auth
@require_shop
def create_job_route():
    """
    Intake a device.

    Request body:
    {
        "customer_name": "...",   // required
        "customer_phone": "...",  // required
        "device_model": "...",    // required
        "issue": "...",           // required
        "imei_or_sn": "...", "color": "...",
        "parts_cost": 0, "service_fee": 0, "reserves": 0,
        "assigned_technician_id": 3
    }
    """
    data = request.get_json(silent=True) or {}
    job = job_service.create_job(g.shop_id, data, g.actor)
    return jsonify(job.to_dict()), 201


@jobs_bp.get("/my-shop")
@require_auth
@require_shop
def list_my_jobs_route():
    """
    Query parameters: search, status, page (default 1), limit (default 10)

    Returns:
        {jobs, current_page, total_pages, total_jobs}
    """
    result = job_service.list_jobs(
        g.shop_id,
        search=request.args.get("search"),
        status=request.args.get("status"),
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", 10, type=int),
    )
    return jsonify(result)


@jobs_bp.get("/my-shop/report")
@require_auth
@require_shop
def shop_report_route():
    """Query parameters: period (daily|monthly|yearly), date, month, year."""
    report = reporting_service.shop_report(
        g.shop_id,
        request.args.get("period", "monthly"),
        date=request.args.get("date"),
        month=request.args.get("month"),
        year=request.args.get("year"),
    )
    return jsonify(report)


@jobs_bp.get("/my-shop/status-counts")
@require_auth
@require_shop
def status_counts_route():
    return jsonify(job_service.status_counts(g.shop_id))


@jobs_bp.put("/<int:job_id>/checkout")
@require_auth
@require_shop
def checkout_job_route(job_id: int):
    job = job_service.checkout_job(job_id, g.shop_id, g.actor)
    return jsonify(job.to_dict())


@jobs_bp.get("/<int:job_id>/qr")
@require_auth
@require_shop
def job_qr_route(job_id: int):
    return jsonify(job_service.job_qr_link(job_id, g.shop_id))


@jobs_bp.get("/<int:job_id>")
@require_auth
@require_shop
def get_job_route(job_id: int):
    return jsonify(job_service.get_job(job_id, g.shop_id).to_dict())


@jobs_bp.put("/<int:job_id>")
@require_auth
@require_shop
def update_job_route(job_id: int):
    data = request.get_json(silent=True) or {}
    job = job_service.update_job(job_id, g.shop_id, data, g.actor)
    return jsonify(job.to_dict())


@jobs_bp.delete("/<int:job_id>")
@require_auth
@require_shop
def delete_job_route(job_id: int):
    job_service.delete_job(job_id, g.shop_id)
    return jsonify({"message": "Job removed"})
