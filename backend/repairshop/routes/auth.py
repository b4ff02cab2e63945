# Overview: Flask API routes for auth and shop-owner profile operations.

# backend/repairshop/routes/auth.py
"""
Authentication API routes

- Login refuses expired subscriptions and deactivated shops (403)
- Account creation is a super-admin action; shops normally get their owner
  login when they are created
- Profile, logo and PIN endpoints act on the caller's own shop
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_shop, require_super_admin
from ..extensions import db
from ..models import Shop, User
from ..services import auth_service, pin_service, shop_service
from ..services.storage_service import get_logo_storage


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
@require_auth
@require_super_admin
def register_route():
    """
    Create a login account.

    Request body:
    {
        "email": "owner@example.com",  // required
        "password": "secret1",         // required, >= 6 chars
        "is_super_admin": false,
        "shop_id": 1                   // required unless is_super_admin
    }
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")
    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    user = auth_service.register_user(
        email=email,
        password=password,
        is_super_admin=bool(data.get("is_super_admin")),
        shop_id=data.get("shop_id"),
        name=data.get("name"),
    )
    return jsonify({"message": "User registered successfully", "user": user.to_dict()}), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and issue a bearer token.

    Returns {token, user} where user includes the shop summary.
    """
    data = request.get_json(silent=True) or {}
    email = str(data.get("email") or "")
    password = str(data.get("password") or "")

    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    user, shop = auth_service.authenticate(email, password)
    return jsonify({
        "token": auth_service.issue_token(user),
        "user": auth_service.profile_dict(user, shop),
        "message": "Login successful",
    }), 200


def _caller_profile() -> dict:
    user = db.session.get(User, g.actor.user_id)
    shop = db.session.get(Shop, user.shop_id) if user.shop_id else None
    return auth_service.profile_dict(user, shop)


@auth_bp.get("/profile")
@require_auth
def get_profile_route():
    return jsonify(_caller_profile())


@auth_bp.put("/profile")
@require_auth
@require_shop
def update_profile_route():
    """
    Owner-editable shop fields.

    Request body (all optional): shop_name, phone, shop_address, custom_rule
    """
    data = dict(request.get_json(silent=True) or {})
    if "shop_address" in data:
        data["address"] = data.pop("shop_address")
    shop_service.update_profile(g.shop_id, data)
    return jsonify(_caller_profile())


@auth_bp.put("/profile/logo")
@require_auth
@require_shop
def upload_logo_route():
    upload = request.files.get("logo")
    if upload is None or not upload.filename:
        return jsonify({"error": "No image file provided"}), 400
    logo_url = shop_service.set_logo(g.shop_id, upload, get_logo_storage())
    return jsonify({"message": "Logo updated successfully", "logo_url": logo_url})


@auth_bp.put("/password")
@require_auth
def update_password_route():
    data = request.get_json(silent=True) or {}
    auth_service.change_password(
        g.actor.user_id,
        data.get("current_password") or "",
        data.get("new_password") or "",
    )
    return jsonify({"message": "Password updated successfully"})


@auth_bp.post("/verify-pin")
@require_auth
@require_shop
def verify_pin_route():
    data = request.get_json(silent=True) or {}
    pin_service.verify_shop_pin(g.shop_id, data.get("pin"))
    return jsonify({"valid": True})


@auth_bp.put("/profile/pin")
@require_auth
@require_shop
def update_pin_route():
    data = request.get_json(silent=True) or {}
    pin_service.update_shop_pin(g.shop_id, data.get("current_pin"), data.get("new_pin"))
    return jsonify({"message": "PIN updated successfully"})
