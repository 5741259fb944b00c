from __future__ import annotations

from ..extensions import db
from duka.time_utils import to_utc_z


EXPENSE_PENDING = "pending"
EXPENSE_APPROVED = "approved"
EXPENSE_REJECTED = "rejected"
EXPENSE_TERMINAL_STATUSES = (EXPENSE_APPROVED, EXPENSE_REJECTED)


class ExpenseRequest(db.Model):
    """
    Worker request for an expense to be reimbursed.

    LIFECYCLE: pending -> approved | rejected. Both outcomes are terminal;
    expense_service only ever updates rows that are still pending.
    """
    __tablename__ = "expense_requests"
    __table_args__ = (
        db.Index("ix_expense_requests_org_status", "org_id", "status"),
        db.CheckConstraint("amount_cents > 0", name="ck_expense_requests_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=True, index=True)

    # Admin the request is routed to (the worker's creator); may be unknown
    admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    description = db.Column(db.Text, nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=EXPENSE_PENDING, index=True)

    decided_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    decided_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    worker = db.relationship("User", foreign_keys=[worker_id])

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "worker_id": self.worker_id,
            "worker_name": self.worker.name if self.worker else None,
            "shop_id": self.shop_id,
            "admin_id": self.admin_id,
            "description": self.description,
            "amount_cents": self.amount_cents,
            "status": self.status,
            "decided_by_user_id": self.decided_by_user_id,
            "decided_at": to_utc_z(self.decided_at) if self.decided_at else None,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }
