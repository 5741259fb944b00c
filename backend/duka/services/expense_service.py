# Overview: Expense request workflow (pending -> approved | rejected).

"""
Expense Request Service

A worker files a request, which always starts as "pending". An admin then
approves or rejects it exactly once. The transition is a conditional update
on status = 'pending', so a decided request cannot be changed again even by
two admins deciding at the same time.
"""

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import ExpenseRequest, User
from ..models.auth import ROLE_ADMIN
from ..models.expenses import (
    EXPENSE_PENDING,
    EXPENSE_TERMINAL_STATUSES,
)
from duka.time_utils import utcnow
from .tenant_service import scoped_query, get_in_org, require_worker_in_org


class ExpenseError(Exception):
    """Raised for invalid expense requests or transitions."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ExpenseTransitionError(ExpenseError):
    """Request already left the pending state."""


def _routing_admin_id(worker: User) -> int | None:
    """The admin who created the worker, if that account is an admin of the same org."""
    if worker.created_by_user_id is None:
        return None
    creator = db.session.get(User, worker.created_by_user_id)
    if creator and creator.role == ROLE_ADMIN and creator.org_id == worker.org_id:
        return creator.id
    return None


def create_expense_request(
    *,
    org_id: int,
    worker_id: int,
    description: str,
    amount_cents: int,
) -> ExpenseRequest:
    worker = require_worker_in_org(worker_id, org_id)

    description = (description or "").strip()
    if not description:
        raise ExpenseError("description is required")
    if amount_cents is None or amount_cents <= 0:
        raise ExpenseError("amount must be greater than 0")

    request = ExpenseRequest(
        org_id=org_id,
        worker_id=worker.id,
        shop_id=worker.shop_id,
        admin_id=_routing_admin_id(worker),
        description=description,
        amount_cents=amount_cents,
        status=EXPENSE_PENDING,
        created_at=utcnow(),
    )
    db.session.add(request)
    db.session.commit()
    return request


def decide_expense_request(
    *,
    org_id: int,
    request_id: int,
    status: str,
    decided_by_user_id: int,
) -> ExpenseRequest:
    """
    Move a pending request to approved or rejected.

    Raises:
        ExpenseError: status is not a terminal status
        ExpenseTransitionError: request already decided
        TenantAccessError: request not in org_id
    """
    status = (status or "").strip().lower()
    if status not in EXPENSE_TERMINAL_STATUSES:
        raise ExpenseError(f"status must be one of: {', '.join(EXPENSE_TERMINAL_STATUSES)}")

    get_in_org(ExpenseRequest, request_id, org_id, label="Expense request")

    updated = scoped_query(ExpenseRequest, org_id).filter(
        ExpenseRequest.id == request_id,
        ExpenseRequest.status == EXPENSE_PENDING,
    ).update(
        {
            ExpenseRequest.status: status,
            ExpenseRequest.decided_by_user_id: decided_by_user_id,
            ExpenseRequest.decided_at: utcnow(),
            ExpenseRequest.version_id: ExpenseRequest.version_id + 1,
        },
        synchronize_session=False,
    )
    db.session.commit()

    request = db.session.get(ExpenseRequest, request_id)
    if updated != 1:
        raise ExpenseTransitionError(
            f"Expense request already {request.status}",
            details={"request_id": request_id, "status": request.status},
        )
    return request


def list_expense_requests(
    org_id: int,
    worker_id: int | None = None,
    status: str | None = None,
) -> list[ExpenseRequest]:
    query = scoped_query(ExpenseRequest, org_id)
    if worker_id is not None:
        query = query.filter(ExpenseRequest.worker_id == worker_id)
    if status:
        query = query.filter(ExpenseRequest.status == status)
    return query.order_by(ExpenseRequest.created_at.desc(), ExpenseRequest.id.desc()).all()


def count_pending(org_id: int) -> int:
    """Number of requests waiting for an admin (notification badge)."""
    return (
        scoped_query(ExpenseRequest, org_id)
        .with_entities(func.count(ExpenseRequest.id))
        .filter(ExpenseRequest.status == EXPENSE_PENDING)
        .scalar()
    ) or 0
