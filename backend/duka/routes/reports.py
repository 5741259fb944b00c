# Overview: Flask API routes for the admin dashboard; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_permission, require_org_context
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
@require_auth
@require_org_context
@require_permission("VIEW_DASHBOARD")
def dashboard():
    """Query params: days (default 7, max 90) for the daily sales series."""
    days = request.args.get("days", default=7, type=int)
    return jsonify(reporting_service.get_dashboard(g.org_id, days=days)), 200
