# Overview: Autocomplete suggestions for job intake fields.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth
from ..services import suggestion_service


suggestions_bp = Blueprint("suggestions", __name__, url_prefix="/api/suggestions")


@suggestions_bp.get("/<string:kind>")
@require_auth
def get_suggestions_route(kind: str):
    """Top 20 values for model | color | issue, optionally filtered by ?q=."""
    return jsonify(suggestion_service.get_suggestions(kind, request.args.get("q")))
