# Overview: Flask API routes for worker accounts; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g, current_app

from ..decorators import require_auth, require_permission, require_org_context
from ..models import User
from ..models.auth import ROLE_WORKER
from ..services import auth_service
from ..services.auth_service import PasswordValidationError
from ..services.tenant_service import scoped_query


workers_bp = Blueprint("workers", __name__, url_prefix="/api/workers")


@workers_bp.get("")
@require_auth
@require_org_context
@require_permission("MANAGE_WORKERS")
def list_workers():
    workers = (
        scoped_query(User, g.org_id)
        .filter(User.role == ROLE_WORKER)
        .order_by(User.name.asc())
        .all()
    )
    return jsonify([worker.to_dict() for worker in workers]), 200


@workers_bp.post("")
@require_auth
@require_org_context
@require_permission("MANAGE_WORKERS")
def create_worker():
    """Create a worker account in the caller's organization, assigned to one shop."""
    data = request.get_json(silent=True) or {}
    try:
        worker = auth_service.create_worker(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password") or "",
            org_id=g.org_id,
            shop_id=data.get("shop_id"),
            phone=data.get("phone"),
            created_by_user_id=g.current_user.id,
        )
    except PasswordValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except ValueError as exc:
        if "already exists" in str(exc):
            return jsonify({"error": str(exc)}), 409
        return jsonify({"error": str(exc)}), 400

    current_app.logger.info("Worker %s created in org %s", worker.id, g.org_id)
    return jsonify(worker.to_dict()), 201
