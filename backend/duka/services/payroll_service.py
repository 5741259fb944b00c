# Overview: Salary payments made to workers.

from __future__ import annotations

from ..extensions import db
from ..models import SalaryPayment
from duka.time_utils import utcnow
from .tenant_service import scoped_query, require_worker_in_org


class PayrollError(Exception):
    """Raised when a salary payment cannot be recorded."""
    pass


def record_salary_payment(
    *,
    org_id: int,
    worker_id: int,
    amount_cents: int,
    month: int,
    year: int,
    paid_by_user_id: int | None = None,
) -> SalaryPayment:
    """
    Record money paid to a worker for a given month/year.

    Payments are immutable once written; corrections are new rows.
    """
    worker = require_worker_in_org(worker_id, org_id)

    if amount_cents is None or amount_cents <= 0:
        raise PayrollError("amount must be greater than 0")
    if not 1 <= month <= 12:
        raise PayrollError("month must be between 1 and 12")
    if not 2000 <= year <= 2100:
        raise PayrollError("year is out of range")

    payment = SalaryPayment(
        org_id=org_id,
        worker_id=worker.id,
        amount_cents=amount_cents,
        month=month,
        year=year,
        paid_by_user_id=paid_by_user_id,
        created_at=utcnow(),
    )
    db.session.add(payment)
    db.session.commit()
    return payment


def list_salary_payments(org_id: int, worker_id: int | None = None) -> list[SalaryPayment]:
    query = scoped_query(SalaryPayment, org_id)
    if worker_id is not None:
        query = query.filter(SalaryPayment.worker_id == worker_id)
    return query.order_by(SalaryPayment.created_at.desc(), SalaryPayment.id.desc()).all()
