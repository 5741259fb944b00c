# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""
Checkout routes.

The worker and shop of a checkout always come from the session, never from
the request body.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission, require_org_context
from ..services import sales_service
from ..services.permission_service import has_permission
from ..services.sales_service import CheckoutKeyConflict, SaleError
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/checkout")
@require_auth
@require_org_context
@require_permission("CREATE_SALE")
def checkout_route():
    """
    Record a cart.

    Body:
    {
        "payment_method": "cash",
        "checkout_key": "optional-client-generated-key",
        "lines": [{"product_id": 1, "quantity": 3, "selling_price": "150.00"}]
    }
    """
    data = request.get_json(silent=True) or {}
    user = g.current_user

    try:
        lines = sales_service.parse_cart_lines(data.get("lines") or [])
        checkout = sales_service.record_sale(
            org_id=g.org_id,
            worker_id=user.id if user.is_worker else None,
            shop_id=user.shop_id,
            lines=lines,
            payment_method=data.get("payment_method"),
            checkout_key=data.get("checkout_key"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CheckoutKeyConflict as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(checkout.to_dict(include_sales=True)), 201


@sales_bp.get("")
@require_auth
@require_org_context
def list_sales_route():
    """
    Admins see the organization's sales (optionally ?worker_id= / ?shop_id=),
    workers only their own.
    """
    limit = request.args.get("limit", type=int) or 100
    limit = max(1, min(limit, 500))

    if has_permission(g.role, "VIEW_ALL_SALES"):
        worker_id = request.args.get("worker_id", type=int)
        shop_id = request.args.get("shop_id", type=int)
    elif has_permission(g.role, "VIEW_OWN_SALES"):
        worker_id = g.current_user.id
        shop_id = None
    else:
        current_app.logger.warning("User %s without sales access hit %s", g.current_user.id, request.path)
        return jsonify({"error": "Permission denied"}), 403

    sales = sales_service.list_sales(g.org_id, worker_id=worker_id, shop_id=shop_id, limit=limit)
    return jsonify([sale.to_dict() for sale in sales]), 200


@sales_bp.get("/checkouts/<int:checkout_id>")
@require_auth
@require_org_context
def get_checkout_route(checkout_id: int):
    """A checkout with its lines. Workers may only read their own."""
    checkout = sales_service.get_checkout(g.org_id, checkout_id)
    if checkout is None:
        return jsonify({"error": "Checkout not found"}), 404
    if not has_permission(g.role, "VIEW_ALL_SALES") and checkout.worker_id != g.current_user.id:
        return jsonify({"error": "Checkout not found"}), 404
    return jsonify(checkout.to_dict(include_sales=True)), 200
