# Overview: Flask API routes for expense requests; parses input and returns JSON responses.

"""
Expense request routes.

Workers file requests and see their own; admins see every request of the
organization and approve or reject pending ones.
"""

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_permission, require_org_context
from ..services import expense_service
from ..services.expense_service import ExpenseError, ExpenseTransitionError
from ..services.permission_service import has_permission
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError, parse_int, parse_money_cents


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expense-requests")


@expenses_bp.get("")
@require_auth
@require_org_context
def list_requests():
    status = request.args.get("status")
    if has_permission(g.role, "VIEW_ALL_EXPENSE_REQUESTS"):
        worker_id = request.args.get("worker_id", type=int)
    elif has_permission(g.role, "SUBMIT_EXPENSE_REQUEST"):
        worker_id = g.current_user.id
    else:
        return jsonify({"error": "Permission denied"}), 403

    requests_ = expense_service.list_expense_requests(g.org_id, worker_id=worker_id, status=status)
    return jsonify({
        "items": [item.to_dict() for item in requests_],
        "pending_count": expense_service.count_pending(g.org_id) if worker_id is None else None,
    }), 200


@expenses_bp.post("")
@require_auth
@require_org_context
@require_permission("SUBMIT_EXPENSE_REQUEST")
def create_request():
    """Body: {"description": "Transport", "amount": "200.00"} (or "amount_cents")."""
    data = request.get_json(silent=True) or {}
    try:
        if data.get("amount_cents") is not None:
            amount_cents = parse_int(data["amount_cents"], "amount_cents")
        else:
            amount_cents = parse_money_cents(data.get("amount"), "amount")
        expense = expense_service.create_expense_request(
            org_id=g.org_id,
            worker_id=g.current_user.id,
            description=data.get("description"),
            amount_cents=amount_cents,
        )
    except (ValidationError, ExpenseError) as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(expense.to_dict()), 201


@expenses_bp.post("/<int:request_id>/decision")
@require_auth
@require_org_context
@require_permission("DECIDE_EXPENSE_REQUEST")
def decide_request(request_id: int):
    """Body: {"status": "approved" | "rejected"}"""
    data = request.get_json(silent=True) or {}
    try:
        expense = expense_service.decide_expense_request(
            org_id=g.org_id,
            request_id=request_id,
            status=data.get("status"),
            decided_by_user_id=g.current_user.id,
        )
    except ExpenseTransitionError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except ExpenseError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(expense.to_dict()), 200
