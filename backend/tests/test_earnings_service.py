# Overview: Pytest coverage for earnings aggregation.

from datetime import datetime, timedelta

import pytest

from duka.models import Sale, SalaryPayment
from duka.services.earnings_service import (
    get_org_earnings,
    get_worker_earnings,
    pending_payment,
)
from duka.services.tenant_service import TenantAccessError


NOW = datetime(2024, 5, 15, 12, 0, 0)


def add_sale(db_session, worker, product, *, profit, amount=None, created_at=NOW):
    sale = Sale(
        org_id=worker.org_id,
        shop_id=worker.shop_id,
        worker_id=worker.id,
        product_id=product.id,
        quantity=1,
        selling_price_cents=amount if amount is not None else profit,
        total_amount_cents=amount if amount is not None else profit,
        profit_cents=profit,
        payment_method="cash",
        created_at=created_at,
    )
    db_session.add(sale)
    db_session.commit()
    return sale


def add_payment(db_session, worker, amount, created_at=NOW, month=5, year=2024):
    payment = SalaryPayment(
        org_id=worker.org_id,
        worker_id=worker.id,
        amount_cents=amount,
        month=month,
        year=year,
        created_at=created_at,
    )
    db_session.add(payment)
    db_session.commit()
    return payment


def test_pending_payment_is_not_clamped():
    assert pending_payment(100, 250) == -150


def test_pending_scenario(db_session, worker_a, product_a):
    """Profits 200, 300, 50 and one payment of 100 leave 450 pending."""
    for profit in (200, 300, 50):
        add_sale(db_session, worker_a, product_a, profit=profit)
    add_payment(db_session, worker_a, 100)

    summary = get_worker_earnings(worker_a.id, worker_a.org_id, now=NOW)

    assert summary.total_profit_accrued_cents == 550
    assert summary.total_earnings_paid_cents == 100
    assert summary.pending_payment_cents == 450
    assert summary.sale_count == 3


def test_overpaid_worker_has_negative_pending(db_session, worker_a, product_a):
    add_sale(db_session, worker_a, product_a, profit=1000)
    add_payment(db_session, worker_a, 1500)

    summary = get_worker_earnings(worker_a.id, worker_a.org_id, now=NOW)

    assert summary.pending_payment_cents == -500


def test_worker_without_history(db_session, worker_a):
    summary = get_worker_earnings(worker_a.id, worker_a.org_id, now=NOW)

    data = summary.to_dict()
    assert data["pending_payment_cents"] == 0
    assert data["last_payment_amount_cents"] == 0
    assert data["recent_sales"] == []


def test_rolling_sales_windows(db_session, worker_a, product_a):
    midnight = datetime(2024, 5, 15)
    add_sale(db_session, worker_a, product_a, profit=1, amount=100, created_at=midnight + timedelta(hours=9))
    add_sale(db_session, worker_a, product_a, profit=1, amount=200, created_at=midnight - timedelta(minutes=1))
    add_sale(db_session, worker_a, product_a, profit=1, amount=400, created_at=midnight - timedelta(days=7))
    add_sale(db_session, worker_a, product_a, profit=1, amount=800, created_at=midnight - timedelta(days=20))
    add_sale(db_session, worker_a, product_a, profit=1, amount=1600, created_at=midnight - timedelta(days=31))

    summary = get_worker_earnings(worker_a.id, worker_a.org_id, now=NOW)

    assert summary.today_sales_cents == 100
    assert summary.week_sales_cents == 100 + 200 + 400
    assert summary.month_sales_cents == 100 + 200 + 400 + 800
    assert summary.total_profit_accrued_cents == 5


def test_monthly_profit_uses_calendar_month(db_session, worker_a, product_a):
    add_sale(db_session, worker_a, product_a, profit=300, created_at=datetime(2024, 5, 1, 0, 0, 1))
    add_sale(db_session, worker_a, product_a, profit=700, created_at=datetime(2024, 4, 30, 23, 59, 59))

    summary = get_worker_earnings(worker_a.id, worker_a.org_id, now=NOW)

    assert summary.monthly_profit_cents == 300
    # Still inside the rolling 30-day window
    assert summary.month_sales_cents == 1000


def test_today_follows_business_timezone(app, db_session, worker_a, product_a):
    # 22:30 UTC on the 14th is already the 15th in Nairobi (UTC+3)
    add_sale(db_session, worker_a, product_a, profit=1, amount=500, created_at=datetime(2024, 5, 14, 22, 30))

    app.config["BUSINESS_TIMEZONE"] = "Africa/Nairobi"
    try:
        summary = get_worker_earnings(worker_a.id, worker_a.org_id, now=NOW)
    finally:
        app.config["BUSINESS_TIMEZONE"] = "UTC"

    assert summary.today_sales_cents == 500


def test_last_payment_and_recent_sales(db_session, worker_a, product_a):
    add_payment(db_session, worker_a, 1000, created_at=NOW - timedelta(days=40), month=4)
    add_payment(db_session, worker_a, 2500, created_at=NOW - timedelta(days=1))
    for minute in range(12):
        add_sale(db_session, worker_a, product_a, profit=minute, created_at=NOW - timedelta(minutes=minute))

    summary = get_worker_earnings(worker_a.id, worker_a.org_id, now=NOW)

    assert summary.last_payment_amount_cents == 2500
    assert len(summary.recent_sales) == 10
    assert summary.recent_sales[0].profit_cents == 0
    assert summary.sale_count == 12


def test_other_workers_sales_are_ignored(db_session, org_a, shop_a, admin_a, worker_a, product_a):
    from duka.services.auth_service import create_worker
    colleague = create_worker(
        name="Colleague", email="colleague@acme.test", password="secret1",
        org_id=org_a.id, shop_id=shop_a.id, created_by_user_id=admin_a.id,
    )
    add_sale(db_session, colleague, product_a, profit=999)
    add_sale(db_session, worker_a, product_a, profit=1)

    assert get_worker_earnings(worker_a.id, org_a.id, now=NOW).total_profit_accrued_cents == 1

    summaries = {s.worker_id: s for s in get_org_earnings(org_a.id, now=NOW)}
    assert summaries[colleague.id].total_profit_accrued_cents == 999
    assert summaries[worker_a.id].total_profit_accrued_cents == 1


def test_worker_from_other_org_not_found(db_session, org_a, worker_b):
    with pytest.raises(TenantAccessError, match="Worker not found"):
        get_worker_earnings(worker_b.id, org_a.id, now=NOW)


def test_admin_is_not_a_worker(db_session, org_a, admin_a):
    with pytest.raises(TenantAccessError):
        get_worker_earnings(admin_a.id, org_a.id, now=NOW)
