# Overview: Request decorators for API routes (authentication and tenant scope).

from functools import wraps
from flask import request, jsonify, g

from .services import auth_service


def _is_authenticated() -> bool:
    return hasattr(g, "actor")


def require_auth(f):
    """
    Require a valid bearer token and establish tenant context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.actor: the verified Actor (user id, shop id, super-admin flag)
    - g.shop_id: the caller's shop (None for super admins)

    SECURITY: Returns 401 if:
    - No Authorization header
    - Token signature invalid or user no longer exists
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Not authorized, no token"}), 401

        token = auth_header.split(" ", 1)[1]
        actor = auth_service.decode_token(token)

        if actor is None:
            return jsonify({"error": "Not authorized, token failed"}), 401

        g.actor = actor
        g.shop_id = actor.shop_id

        return f(*args, **kwargs)

    return decorated_function


def require_super_admin(f):
    """Platform operators only. Must be stacked under @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if not g.actor.is_super_admin:
            return jsonify({"error": "Access denied. Super Admin privileges required."}), 403
        return f(*args, **kwargs)

    return decorated_function


def require_shop(f):
    """Shop-scoped endpoints need a caller that belongs to a shop."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if not g.actor.shop_id:
            return jsonify({"error": "Not authorized, no shop found for user"}), 401
        return f(*args, **kwargs)

    return decorated_function
