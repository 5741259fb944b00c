from __future__ import annotations

from ..extensions import db
from duka.time_utils import to_utc_z

class SalaryPayment(db.Model):
    """Money paid out to a worker against accrued profit. Append-only."""
    __tablename__ = "salary_payments"
    __table_args__ = (
        db.Index("ix_salary_payments_org_worker", "org_id", "worker_id"),
        db.CheckConstraint("amount_cents > 0", name="ck_salary_payments_amount_positive"),
        db.CheckConstraint("month >= 1 AND month <= 12", name="ck_salary_payments_month"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)

    paid_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    worker = db.relationship("User", foreign_keys=[worker_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "worker_id": self.worker_id,
            "worker_name": self.worker.name if self.worker else None,
            "amount_cents": self.amount_cents,
            "month": self.month,
            "year": self.year,
            "paid_by_user_id": self.paid_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
