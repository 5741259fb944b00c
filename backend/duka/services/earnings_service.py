"""
Earnings Service - worker earnings derived from sales and salary payments

Nothing here is stored: every call reads the worker's full sale and payment
history and sums it.

- total_profit_accrued = sum of sale profits
- total_earnings_paid  = sum of salary payments
- pending_payment      = accrued - paid (negative when overpaid, never clamped)

Sales windows (sum of total_amount) are rolling and anchored at local
midnight of the business timezone: today, today - 7 days, today - 30 days.
monthly_profit instead uses the current calendar month.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from flask import current_app

from ..models import Sale, SalaryPayment, User
from ..models.auth import ROLE_WORKER
from duka.time_utils import utcnow, local_midnight_utc, local_month_bounds_utc
from .tenant_service import scoped_query, require_worker_in_org


WEEK_WINDOW = timedelta(days=7)
MONTH_WINDOW = timedelta(days=30)
RECENT_SALES_LIMIT = 10


@dataclass
class EarningsSummary:
    worker_id: int
    worker_name: str
    total_profit_accrued_cents: int = 0
    total_earnings_paid_cents: int = 0
    pending_payment_cents: int = 0
    today_sales_cents: int = 0
    week_sales_cents: int = 0
    month_sales_cents: int = 0
    monthly_profit_cents: int = 0
    last_payment_amount_cents: int = 0
    sale_count: int = 0
    recent_sales: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "worker_id": self.worker_id,
            "worker_name": self.worker_name,
            "total_profit_accrued_cents": self.total_profit_accrued_cents,
            "total_earnings_paid_cents": self.total_earnings_paid_cents,
            "pending_payment_cents": self.pending_payment_cents,
            "today_sales_cents": self.today_sales_cents,
            "week_sales_cents": self.week_sales_cents,
            "month_sales_cents": self.month_sales_cents,
            "monthly_profit_cents": self.monthly_profit_cents,
            "last_payment_amount_cents": self.last_payment_amount_cents,
            "sale_count": self.sale_count,
            "recent_sales": [sale.to_dict() for sale in self.recent_sales],
        }


def pending_payment(total_profit_cents: int, total_paid_cents: int) -> int:
    return total_profit_cents - total_paid_cents


def _business_timezone() -> str:
    return current_app.config.get("BUSINESS_TIMEZONE", "UTC")


def summarize(worker: User, sales: list[Sale], payments: list[SalaryPayment], now: datetime) -> EarningsSummary:
    """
    Build a summary from already-loaded rows.

    `sales` and `payments` are expected newest first.
    """
    tz_name = _business_timezone()
    today = local_midnight_utc(now, tz_name)
    week_start = today - WEEK_WINDOW
    month_start = today - MONTH_WINDOW
    calendar_start, calendar_end = local_month_bounds_utc(now, tz_name)

    summary = EarningsSummary(worker_id=worker.id, worker_name=worker.name)

    for sale in sales:
        summary.total_profit_accrued_cents += sale.profit_cents
        if sale.created_at >= today:
            summary.today_sales_cents += sale.total_amount_cents
        if sale.created_at >= week_start:
            summary.week_sales_cents += sale.total_amount_cents
        if sale.created_at >= month_start:
            summary.month_sales_cents += sale.total_amount_cents
        if calendar_start <= sale.created_at < calendar_end:
            summary.monthly_profit_cents += sale.profit_cents

    summary.total_earnings_paid_cents = sum(payment.amount_cents for payment in payments)
    summary.pending_payment_cents = pending_payment(
        summary.total_profit_accrued_cents, summary.total_earnings_paid_cents
    )
    summary.last_payment_amount_cents = payments[0].amount_cents if payments else 0
    summary.sale_count = len(sales)
    summary.recent_sales = sales[:RECENT_SALES_LIMIT]
    return summary


def get_worker_earnings(worker_id: int, org_id: int, now: datetime | None = None) -> EarningsSummary:
    """Earnings summary for one worker, recomputed from full history."""
    worker = require_worker_in_org(worker_id, org_id)
    now = now or utcnow()

    sales = (
        scoped_query(Sale, org_id)
        .filter(Sale.worker_id == worker.id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )
    payments = (
        scoped_query(SalaryPayment, org_id)
        .filter(SalaryPayment.worker_id == worker.id)
        .order_by(SalaryPayment.created_at.desc(), SalaryPayment.id.desc())
        .all()
    )
    return summarize(worker, sales, payments, now)


def get_org_earnings(org_id: int, now: datetime | None = None) -> list[EarningsSummary]:
    """One summary per active worker of the organization (admin view)."""
    now = now or utcnow()
    workers = (
        scoped_query(User, org_id)
        .filter(User.role == ROLE_WORKER, User.is_active.is_(True))
        .order_by(User.name.asc())
        .all()
    )
    return [get_worker_earnings(worker.id, org_id, now=now) for worker in workers]
