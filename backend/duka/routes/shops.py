# Overview: Flask API routes for shops operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_permission, require_org_context
from ..services import catalog_service
from ..validation import ConflictError


shops_bp = Blueprint("shops", __name__, url_prefix="/api/shops")


@shops_bp.get("")
@require_auth
@require_org_context
@require_permission("MANAGE_CATALOG")
def list_shops():
    shops = catalog_service.list_shops(g.org_id)
    return jsonify([shop.to_dict() for shop in shops]), 200


@shops_bp.post("")
@require_auth
@require_org_context
@require_permission("MANAGE_CATALOG")
def create_shop():
    data = request.get_json(silent=True) or {}
    try:
        shop = catalog_service.create_shop(
            org_id=g.org_id,
            name=data.get("name"),
            location=data.get("location"),
            phone=data.get("phone"),
            created_by_user_id=g.current_user.id,
        )
        return jsonify(shop.to_dict()), 201
    except ConflictError as exc:
        return jsonify({"error": str(exc)}), 409
    except catalog_service.CatalogError as exc:
        return jsonify({"error": str(exc)}), 400
