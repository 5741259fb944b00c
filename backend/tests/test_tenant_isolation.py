# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

Two organizations each get a shop, an admin, a worker and a product. The
tests check that ids from the other organization behave exactly like ids
that do not exist, and that such attempts are audited.
"""

import pytest

from duka.models import SecurityEvent, Sale
from duka.services import catalog_service, sales_service
from duka.services.sales_service import CartLine
from duka.services.tenant_service import (
    TenantAccessError,
    require_product_in_shop,
    require_shop_in_org,
    require_worker_in_org,
    scoped_query,
)


class TestTenantServiceHelpers:
    def test_require_shop_in_org_valid(self, db_session, org_a, shop_a):
        assert require_shop_in_org(shop_a.id, org_a.id).id == shop_a.id

    def test_require_shop_in_org_cross_tenant(self, db_session, org_a, shop_b):
        with pytest.raises(TenantAccessError, match="Shop not found"):
            require_shop_in_org(shop_b.id, org_a.id)

    def test_require_shop_in_org_nonexistent(self, db_session, org_a):
        with pytest.raises(TenantAccessError, match="Shop not found"):
            require_shop_in_org(99999, org_a.id)

    def test_scoped_query_only_returns_own_rows(self, db_session, org_a, org_b, shop_a, shop_b):
        from duka.models import Shop
        assert [s.id for s in scoped_query(Shop, org_a.id).all()] == [shop_a.id]
        assert [s.id for s in scoped_query(Shop, org_b.id).all()] == [shop_b.id]

    def test_cross_tenant_access_logs_security_event(self, db_session, app, org_a, worker_b):
        with app.test_request_context("/api/earnings/workers/1"):
            with pytest.raises(TenantAccessError):
                require_worker_in_org(worker_b.id, org_a.id)

        event = db_session.query(SecurityEvent).filter_by(event_type="CROSS_TENANT_ACCESS_DENIED").one()
        assert event.org_id == org_a.id
        assert event.success is False
        assert event.resource == "/api/earnings/workers/1"

    def test_missing_row_is_not_audited(self, db_session, org_a):
        with pytest.raises(TenantAccessError):
            require_worker_in_org(424242, org_a.id)
        assert db_session.query(SecurityEvent).count() == 0


class TestCrossTenantOperations:
    def test_cannot_sell_foreign_product(self, db_session, org_a, shop_a, worker_a, product_b):
        with pytest.raises(TenantAccessError, match="Product not found"):
            sales_service.record_sale(
                org_id=org_a.id,
                worker_id=worker_a.id,
                shop_id=shop_a.id,
                lines=[CartLine(product_b.id, 1, 15000)],
                payment_method="cash",
            )
        assert db_session.query(Sale).count() == 0

    def test_cannot_sell_as_foreign_worker(self, db_session, org_a, shop_a, worker_b, product_a):
        with pytest.raises(TenantAccessError, match="Worker not found"):
            sales_service.record_sale(
                org_id=org_a.id,
                worker_id=worker_b.id,
                shop_id=shop_a.id,
                lines=[CartLine(product_a.id, 1, 15000)],
                payment_method="cash",
            )

    def test_cannot_create_product_in_foreign_shop(self, db_session, org_a, shop_b):
        with pytest.raises(TenantAccessError):
            catalog_service.create_product(org_a.id, {"shop_id": shop_b.id, "name": "Tea", "minimum_selling_price_cents": 100})

    def test_cannot_update_foreign_product(self, db_session, org_a, product_b):
        with pytest.raises(TenantAccessError, match="Product not found"):
            catalog_service.update_product(org_a.id, product_b.id, {"stock": 0})
        assert product_b.stock == 10

    def test_product_listing_is_scoped(self, db_session, org_a, product_a, product_b):
        assert [p.id for p in catalog_service.list_products(org_a.id)] == [product_a.id]

    def test_sales_listing_is_scoped(self, db_session, org_a, org_b, shop_b, worker_b, product_b):
        sales_service.record_sale(
            org_id=org_b.id,
            worker_id=worker_b.id,
            shop_id=shop_b.id,
            lines=[CartLine(product_b.id, 1, 15000)],
            payment_method="cash",
        )
        assert sales_service.list_sales(org_a.id) == []
        assert len(sales_service.list_sales(org_b.id)) == 1


class TestRequestTenantContext:
    def test_scoped_query_defaults_to_request_org(self, app, db_session, org_a, shop_a, shop_b):
        from flask import g
        from duka.models import Shop
        with app.test_request_context():
            g.org_id = org_a.id
            assert [s.id for s in scoped_query(Shop).all()] == [shop_a.id]

    def test_missing_request_org_is_an_error(self, app, db_session):
        from duka.models import Shop
        with app.test_request_context():
            with pytest.raises(TenantAccessError, match="Tenant context"):
                scoped_query(Shop)


class TestProductShopScope:
    def test_product_in_its_own_shop(self, db_session, org_a, shop_a, product_a):
        assert require_product_in_shop(product_a.id, shop_a.id, org_a.id).id == product_a.id

    def test_product_from_sibling_shop_is_not_found(self, db_session, org_a, product_a):
        other = catalog_service.create_shop(org_a.id, "Annex", "Back street")
        with pytest.raises(TenantAccessError, match="Product not found"):
            require_product_in_shop(product_a.id, other.id, org_a.id)
