# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product routes.

Every operation is scoped to g.org_id. Admins see and edit the whole
catalog; workers only list the products of the shop they are assigned to.
"""
from flask import Blueprint, request, g, jsonify

from ..services import catalog_service
from ..services.tenant_service import TenantAccessError
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_permission, require_org_context

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"shop_id", "name", "buying_price_cents", "minimum_selling_price_cents", "stock"},
    required_on_create={"shop_id", "name", "minimum_selling_price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_org_context
@require_permission("VIEW_CATALOG")
def list_products():
    """
    Query params:
    - shop_id: int (optional, admins only; workers always get their own shop)
    - in_stock: "1" to hide sold-out products
    """
    in_stock_only = request.args.get("in_stock") in {"1", "true", "yes"}
    if g.current_user.is_worker:
        shop_id = g.current_user.shop_id
    else:
        shop_id = request.args.get("shop_id", type=int)

    try:
        products = catalog_service.list_products(g.org_id, shop_id=shop_id, in_stock_only=in_stock_only)
    except TenantAccessError:
        return jsonify({"error": "Shop not found"}), 404

    return jsonify([product.to_dict() for product in products]), 200


@products_bp.post("")
@require_auth
@require_org_context
@require_permission("MANAGE_CATALOG")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        product = catalog_service.create_product(g.org_id, patch, created_by_user_id=g.current_user.id)
    except TenantAccessError:
        return jsonify({"error": "Shop not found"}), 404

    return jsonify(product.to_dict()), 201


@products_bp.patch("/<int:product_id>")
@require_auth
@require_org_context
@require_permission("MANAGE_CATALOG")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        product = catalog_service.update_product(g.org_id, product_id, patch)
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify(product.to_dict()), 200
