# Overview: Organization dashboard figures for admins.

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func

from ..models import Sale, Product, Shop, User
from ..models.auth import ROLE_WORKER
from duka.time_utils import utcnow, local_midnight_utc, to_local_date
from .expense_service import count_pending
from .tenant_service import scoped_query


def get_dashboard(org_id: int, now: datetime | None = None, days: int = 7) -> dict:
    """
    Totals, counts, a daily sales series and best/worst sellers.

    The daily series covers `days` calendar days ending today (business
    timezone) and includes days without sales as zero.
    """
    now = now or utcnow()
    days = max(1, min(days, 90))

    total_sales, total_profit = (
        scoped_query(Sale, org_id)
        .with_entities(
            func.coalesce(func.sum(Sale.total_amount_cents), 0),
            func.coalesce(func.sum(Sale.profit_cents), 0),
        )
        .one()
    )

    product_count = scoped_query(Product, org_id).count()
    shop_count = scoped_query(Shop, org_id).count()
    worker_count = scoped_query(User, org_id).filter(User.role == ROLE_WORKER).count()

    tz_name = current_app.config.get("BUSINESS_TIMEZONE", "UTC")
    today = local_midnight_utc(now, tz_name)
    series_start = today - timedelta(days=days - 1)

    today_local = to_local_date(now, tz_name)
    daily = defaultdict(lambda: {"sales_cents": 0, "profit_cents": 0})
    recent = scoped_query(Sale, org_id).filter(Sale.created_at >= series_start).all()
    for sale in recent:
        day = to_local_date(sale.created_at, tz_name).isoformat()
        daily[day]["sales_cents"] += sale.total_amount_cents
        daily[day]["profit_cents"] += sale.profit_cents

    series = []
    for back in range(days - 1, -1, -1):
        day = (today_local - timedelta(days=back)).isoformat()
        series.append({"date": day, **daily[day]})

    revenue_by_product = (
        scoped_query(Sale, org_id)
        .with_entities(Sale.product_id, func.sum(Sale.total_amount_cents))
        .group_by(Sale.product_id)
        .all()
    )
    best = worst = None
    selling = [(product_id, int(total)) for product_id, total in revenue_by_product if total and total > 0]
    if selling:
        best_id, best_total = max(selling, key=lambda item: item[1])
        worst_id, worst_total = min(selling, key=lambda item: item[1])
        names = {
            p.id: p.name
            for p in scoped_query(Product, org_id).filter(Product.id.in_([best_id, worst_id])).all()
        }
        best = {"product_id": best_id, "name": names.get(best_id), "sales_cents": best_total}
        worst = {"product_id": worst_id, "name": names.get(worst_id), "sales_cents": worst_total}

    return {
        "total_sales_cents": int(total_sales),
        "total_profit_cents": int(total_profit),
        "product_count": product_count,
        "shop_count": shop_count,
        "worker_count": worker_count,
        "pending_expense_requests": count_pending(org_id),
        "daily_sales": series,
        "best_selling_product": best,
        "worst_selling_product": worst,
    }
