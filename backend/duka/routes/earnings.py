# Overview: Flask API routes for worker earnings; parses input and returns JSON responses.

from flask import Blueprint, jsonify, g

from ..decorators import require_auth, require_permission, require_org_context
from ..services import earnings_service
from ..services.tenant_service import TenantAccessError


earnings_bp = Blueprint("earnings", __name__, url_prefix="/api/earnings")


@earnings_bp.get("/me")
@require_auth
@require_org_context
@require_permission("VIEW_OWN_EARNINGS")
def my_earnings():
    try:
        summary = earnings_service.get_worker_earnings(g.current_user.id, g.org_id)
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(summary.to_dict()), 200


@earnings_bp.get("/workers")
@require_auth
@require_org_context
@require_permission("VIEW_ALL_EARNINGS")
def all_worker_earnings():
    summaries = earnings_service.get_org_earnings(g.org_id)
    return jsonify([summary.to_dict() for summary in summaries]), 200


@earnings_bp.get("/workers/<int:worker_id>")
@require_auth
@require_org_context
@require_permission("VIEW_ALL_EARNINGS")
def worker_earnings(worker_id: int):
    try:
        summary = earnings_service.get_worker_earnings(worker_id, g.org_id)
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(summary.to_dict()), 200
