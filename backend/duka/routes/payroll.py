# Overview: Flask API routes for salary payments; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_permission, require_org_context
from ..services import payroll_service
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError, parse_int, parse_money_cents


payroll_bp = Blueprint("payroll", __name__, url_prefix="/api/salary-payments")


@payroll_bp.get("")
@require_auth
@require_org_context
@require_permission("RECORD_SALARY_PAYMENT")
def list_payments():
    worker_id = request.args.get("worker_id", type=int)
    payments = payroll_service.list_salary_payments(g.org_id, worker_id=worker_id)
    return jsonify([payment.to_dict() for payment in payments]), 200


@payroll_bp.post("")
@require_auth
@require_org_context
@require_permission("RECORD_SALARY_PAYMENT")
def record_payment():
    """
    Body: {"worker_id": 3, "amount": "1500.00", "month": 5, "year": 2024}
    ("amount_cents" is accepted instead of "amount").
    """
    data = request.get_json(silent=True) or {}
    try:
        if data.get("amount_cents") is not None:
            amount_cents = parse_int(data["amount_cents"], "amount_cents")
        else:
            amount_cents = parse_money_cents(data.get("amount"), "amount")
        payment = payroll_service.record_salary_payment(
            org_id=g.org_id,
            worker_id=parse_int(data.get("worker_id"), "worker_id"),
            amount_cents=amount_cents,
            month=parse_int(data.get("month"), "month"),
            year=parse_int(data.get("year"), "year"),
            paid_by_user_id=g.current_user.id,
        )
    except (ValidationError, payroll_service.PayrollError) as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(payment.to_dict()), 201
