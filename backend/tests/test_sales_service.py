# Overview: Pytest coverage for the checkout / sale recorder.

import pytest
from sqlalchemy.exc import OperationalError

from duka.models import Checkout, Product, Sale
from duka.services import sales_service
from duka.services.auth_service import create_worker
from duka.services.sales_service import (
    CartLine,
    CheckoutKeyConflict,
    SaleError,
    cart_total,
    line_profit_cents,
    line_total_cents,
    parse_cart_lines,
    record_sale,
)
from duka.services.tenant_service import TenantAccessError
from duka.validation import ValidationError

from conftest import WORKER_PASSWORD, make_product


def _sell(org, worker, shop, lines, **kwargs):
    kwargs.setdefault("payment_method", "cash")
    return record_sale(
        org_id=org.id,
        worker_id=worker.id,
        shop_id=shop.id,
        lines=lines,
        **kwargs,
    )


def _fail_line_for(monkeypatch, product_id):
    """Make inserting a line for product_id fail with a database error."""
    real_apply = sales_service._apply_line

    def _apply(checkout, line):
        if line.product.id == product_id:
            raise OperationalError("INSERT INTO sales", {}, Exception("disk I/O error"))
        return real_apply(checkout, line)

    monkeypatch.setattr(sales_service, "_apply_line", _apply)
    monkeypatch.setattr("duka.services.concurrency.time.sleep", lambda _seconds: None)



class TestArithmetic:
    def test_line_total(self):
        assert line_total_cents(3, 15000) == 45000

    def test_line_profit(self):
        assert line_profit_cents(15000, 10000, 3) == 15000

    def test_profit_can_be_negative_when_sold_below_cost(self):
        assert line_profit_cents(9000, 10000, 2) == -2000

    def test_missing_buying_price_counts_as_zero(self):
        assert line_profit_cents(15000, None, 2) == 30000

    def test_cart_total(self):
        lines = [CartLine(1, 2, 500), CartLine(2, 1, 1250)]
        assert cart_total(lines) == 2250


class TestParseCartLines:
    def test_major_units_are_converted_to_cents(self):
        lines = parse_cart_lines([{"product_id": "4", "quantity": 2, "selling_price": "150.50"}])
        assert lines == [CartLine(product_id=4, quantity=2, selling_price_cents=15050)]

    def test_cents_take_precedence(self):
        lines = parse_cart_lines([{"product_id": 4, "quantity": 1, "selling_price_cents": 999, "selling_price": "1"}])
        assert lines[0].selling_price_cents == 999

    @pytest.mark.parametrize("raw", [
        [{"quantity": 1, "selling_price": "1"}],
        [{"product_id": 1, "selling_price": "1"}],
        [{"product_id": 1, "quantity": 1}],
        [{"product_id": 1, "quantity": 1.5, "selling_price": "1"}],
        [{"product_id": 1, "quantity": 1, "selling_price": "1.005"}],
        "not-a-list",
    ])
    def test_malformed_lines_rejected(self, raw):
        with pytest.raises(ValidationError):
            parse_cart_lines(raw)


class TestRecordSale:
    def test_single_line_scenario(self, db_session, org_a, shop_a, worker_a, product_a):
        """Buying 100, minimum 120, stock 10; sell 3 at 150."""
        checkout = _sell(org_a, worker_a, shop_a, [CartLine(product_a.id, 3, 15000)])

        sale = db_session.query(Sale).filter_by(checkout_id=checkout.id).one()
        assert sale.total_amount_cents == 45000
        assert sale.profit_cents == 15000
        assert sale.worker_id == worker_a.id
        assert sale.shop_id == shop_a.id
        assert db_session.get(Product, product_a.id).stock == 7

        assert checkout.status == sales_service.CHECKOUT_COMPLETED
        assert checkout.line_count == 1
        assert checkout.total_amount_cents == 45000
        assert checkout.total_profit_cents == 15000

    def test_selling_entire_stock(self, db_session, org_a, shop_a, worker_a, product_a):
        _sell(org_a, worker_a, shop_a, [CartLine(product_a.id, 10, 12000)])
        assert db_session.get(Product, product_a.id).stock == 0

    def test_insufficient_stock_rejected(self, db_session, org_a, shop_a, worker_a, product_a):
        with pytest.raises(SaleError, match="Insufficient stock"):
            _sell(org_a, worker_a, shop_a, [CartLine(product_a.id, 11, 12000)])

        assert db_session.get(Product, product_a.id).stock == 10
        assert db_session.query(Sale).count() == 0
        assert db_session.query(Checkout).count() == 0

    def test_price_below_minimum_rejected(self, db_session, org_a, shop_a, worker_a, product_a):
        with pytest.raises(SaleError) as exc_info:
            _sell(org_a, worker_a, shop_a, [CartLine(product_a.id, 1, 11999)])

        assert exc_info.value.details["minimum_selling_price_cents"] == 12000
        assert db_session.get(Product, product_a.id).stock == 10

    def test_price_equal_to_minimum_allowed(self, db_session, org_a, shop_a, worker_a, product_a):
        checkout = _sell(org_a, worker_a, shop_a, [CartLine(product_a.id, 1, 12000)])
        assert checkout.total_profit_cents == 2000

    def test_zero_quantity_rejected(self, db_session, org_a, shop_a, worker_a, product_a):
        with pytest.raises(ValidationError):
            _sell(org_a, worker_a, shop_a, [CartLine(product_a.id, 0, 15000)])

    def test_empty_cart_rejected(self, db_session, org_a, shop_a, worker_a):
        with pytest.raises(ValidationError, match="add items"):
            _sell(org_a, worker_a, shop_a, [])

    def test_missing_worker_aborts_cart(self, db_session, org_a, shop_a, product_a):
        with pytest.raises(ValidationError, match="Worker information missing"):
            record_sale(
                org_id=org_a.id,
                worker_id=None,
                shop_id=shop_a.id,
                lines=[CartLine(product_a.id, 1, 15000)],
                payment_method="cash",
            )
        assert db_session.get(Product, product_a.id).stock == 10

    def test_unknown_payment_method_rejected(self, db_session, org_a, shop_a, worker_a, product_a):
        with pytest.raises(ValidationError, match="payment_method"):
            _sell(org_a, worker_a, shop_a, [CartLine(product_a.id, 1, 15000)], payment_method="barter")

    def test_payment_method_is_normalized(self, db_session, org_a, shop_a, worker_a, product_a):
        checkout = _sell(org_a, worker_a, shop_a, [CartLine(product_a.id, 1, 15000)], payment_method=" MPESA ")
        assert checkout.payment_method == "mpesa"
        assert checkout.sales[0].payment_method == "mpesa"

    def test_worker_must_belong_to_shop(self, db_session, org_a, shop_a, worker_a):
        other_shop = make_shop(db_session, org_a, "Shop A2")
        product = make_product(db_session, other_shop)
        with pytest.raises(SaleError, match="not assigned"):
            _sell(org_a, worker_a, other_shop, [CartLine(product.id, 1, 15000)])

    def test_product_from_another_shop_rejected(self, db_session, org_a, shop_a, worker_a):
        other_shop = make_shop(db_session, org_a, "Shop A2")
        product = make_product(db_session, other_shop)
        with pytest.raises(TenantAccessError, match="Product not found"):
            _sell(org_a, worker_a, shop_a, [CartLine(product.id, 1, 15000)])

    def test_missing_buying_price_still_sells(self, db_session, org_a, shop_a, worker_a, caplog):
        product = make_product(db_session, shop_a, name="Loose sweets", buying=None, minimum=500)

        checkout = _sell(org_a, worker_a, shop_a, [CartLine(product.id, 4, 500)])

        assert checkout.total_profit_cents == 2000
        assert "no buying price" in caplog.text

    def test_same_product_twice_in_cart(self, db_session, org_a, shop_a, worker_a, product_a):
        checkout = _sell(org_a, worker_a, shop_a, [
            CartLine(product_a.id, 4, 15000),
            CartLine(product_a.id, 5, 13000),
        ])
        assert checkout.line_count == 2
        assert db_session.get(Product, product_a.id).stock == 1


class TestCheckoutModes:
    def _two_line_cart(self, db_session, shop):
        first = make_product(db_session, shop, name="Bread", buying=5000, minimum=6000, stock=5)
        second = make_product(db_session, shop, name="Milk", buying=4000, minimum=5000, stock=1)
        lines = [CartLine(first.id, 2, 7000), CartLine(second.id, 3, 6000)]
        return first, second, lines

    def test_atomic_failure_persists_nothing(self, db_session, org_a, shop_a, worker_a):
        first, second, lines = self._two_line_cart(db_session, shop_a)

        with pytest.raises(SaleError, match="Insufficient stock"):
            _sell(org_a, worker_a, shop_a, lines, atomic=True)

        assert db_session.get(Product, first.id).stock == 5
        assert db_session.get(Product, second.id).stock == 1
        assert db_session.query(Sale).count() == 0
        assert db_session.query(Checkout).count() == 0

    def test_sequential_failure_keeps_committed_lines(self, db_session, org_a, shop_a, worker_a):
        first, second, lines = self._two_line_cart(db_session, shop_a)

        with pytest.raises(SaleError) as exc_info:
            _sell(org_a, worker_a, shop_a, lines, atomic=False)

        details = exc_info.value.details
        assert str(exc_info.value).startswith("Error processing sale")
        assert details["committed_lines"] == 1
        assert details["failed_line"] == 1
        assert details["total_lines"] == 2

        assert db_session.get(Product, first.id).stock == 3
        assert db_session.get(Product, second.id).stock == 1

        sale = db_session.query(Sale).one()
        assert sale.product_id == first.id
        assert sale.total_amount_cents == 14000

        checkout = db_session.get(Checkout, details["checkout_id"])
        assert checkout.status == sales_service.CHECKOUT_PARTIAL
        assert checkout.line_count == 1

    def test_sequential_first_line_failure_leaves_no_checkout(self, db_session, org_a, shop_a, worker_a):
        first, second, _ = self._two_line_cart(db_session, shop_a)

        with pytest.raises(SaleError) as exc_info:
            _sell(org_a, worker_a, shop_a, [CartLine(second.id, 2, 6000), CartLine(first.id, 1, 7000)], atomic=False)

        assert exc_info.value.details["committed_lines"] == 0
        assert exc_info.value.details["checkout_id"] is None
        assert db_session.query(Checkout).count() == 0
        assert db_session.get(Product, first.id).stock == 5

    def test_database_error_on_second_line_sequential(self, monkeypatch, db_session, org_a, shop_a, worker_a):
        first, second, _ = self._two_line_cart(db_session, shop_a)
        _fail_line_for(monkeypatch, second.id)

        with pytest.raises(SaleError) as exc_info:
            _sell(org_a, worker_a, shop_a, [CartLine(first.id, 2, 7000), CartLine(second.id, 1, 6000)], atomic=False)

        details = exc_info.value.details
        assert "disk I/O error" in str(exc_info.value)
        assert details["committed_lines"] == 1
        assert details["failed_line"] == 1

        assert db_session.get(Product, first.id).stock == 3
        assert db_session.get(Product, second.id).stock == 1
        assert db_session.query(Sale).one().product_id == first.id
        assert db_session.get(Checkout, details["checkout_id"]).status == sales_service.CHECKOUT_PARTIAL

    def test_database_error_on_second_line_atomic(self, monkeypatch, caplog, db_session, org_a, shop_a, worker_a):
        first, second, _ = self._two_line_cart(db_session, shop_a)
        _fail_line_for(monkeypatch, second.id)

        with pytest.raises(OperationalError):
            _sell(org_a, worker_a, shop_a, [CartLine(first.id, 2, 7000), CartLine(second.id, 1, 6000)], atomic=True)

        assert db_session.get(Product, first.id).stock == 5
        assert db_session.get(Product, second.id).stock == 1
        assert db_session.query(Sale).count() == 0
        assert db_session.query(Checkout).count() == 0
        assert "checkout failed after 3 attempts" in caplog.text

    def test_mode_defaults_to_app_config(self, app, db_session, org_a, shop_a, worker_a):
        first, second, lines = self._two_line_cart(db_session, shop_a)

        app.config["CHECKOUT_ATOMIC"] = False
        try:
            with pytest.raises(SaleError):
                _sell(org_a, worker_a, shop_a, lines)
        finally:
            app.config["CHECKOUT_ATOMIC"] = True

        assert db_session.query(Sale).count() == 1


class TestIdempotency:
    def test_repeated_checkout_key_returns_existing(self, db_session, org_a, shop_a, worker_a, product_a):
        lines = [CartLine(product_a.id, 2, 15000)]

        first = _sell(org_a, worker_a, shop_a, lines, checkout_key="cart-123")
        second = _sell(org_a, worker_a, shop_a, lines, checkout_key="cart-123")

        assert first.id == second.id
        assert db_session.query(Sale).count() == 1
        assert db_session.get(Product, product_a.id).stock == 8

    def test_key_used_by_another_worker_is_a_conflict(self, db_session, org_a, shop_a, admin_a,
                                                      worker_a, product_a):
        colleague = create_worker(
            name="Worker A2",
            email="worker2@acme.test",
            password=WORKER_PASSWORD,
            org_id=org_a.id,
            shop_id=shop_a.id,
            created_by_user_id=admin_a.id,
        )
        _sell(org_a, worker_a, shop_a, [CartLine(product_a.id, 1, 15000)], checkout_key="k1")

        with pytest.raises(CheckoutKeyConflict) as exc_info:
            _sell(org_a, colleague, shop_a, [CartLine(product_a.id, 2, 15000)], checkout_key="k1")

        assert "checkout_id" not in exc_info.value.details
        assert db_session.query(Sale).count() == 1
        assert db_session.get(Product, product_a.id).stock == 9

    @pytest.mark.parametrize("atomic", [True, False])
    def test_racing_duplicate_returns_committed_checkout(self, monkeypatch, atomic, db_session,
                                                         org_a, shop_a, worker_a, product_a):
        lines = [CartLine(product_a.id, 2, 15000)]
        first = _sell(org_a, worker_a, shop_a, lines, checkout_key="race-1")

        # The second request checks for the key before the first one commits
        real_find = sales_service.find_checkout_by_key
        calls = []

        def _find(org_id, checkout_key):
            calls.append(checkout_key)
            return None if len(calls) == 1 else real_find(org_id, checkout_key)

        monkeypatch.setattr(sales_service, "find_checkout_by_key", _find)

        second = _sell(org_a, worker_a, shop_a, lines, checkout_key="race-1", atomic=atomic)

        assert second.id == first.id
        assert len(calls) == 2
        assert db_session.query(Checkout).count() == 1
        assert db_session.query(Sale).count() == 1
        assert db_session.get(Product, product_a.id).stock == 8

    def test_keys_are_scoped_per_org(self, db_session, org_a, org_b, shop_a, shop_b,
                                     worker_a, worker_b, product_a, product_b):
        a = _sell(org_a, worker_a, shop_a, [CartLine(product_a.id, 1, 15000)], checkout_key="same")
        b = _sell(org_b, worker_b, shop_b, [CartLine(product_b.id, 1, 15000)], checkout_key="same")

        assert a.id != b.id
        assert a.org_id == org_a.id
        assert b.org_id == org_b.id


class TestListSales:
    def test_newest_first_and_filtered_by_worker(self, db_session, org_a, shop_a, worker_a, product_a):
        _sell(org_a, worker_a, shop_a, [CartLine(product_a.id, 1, 15000)])
        _sell(org_a, worker_a, shop_a, [CartLine(product_a.id, 2, 16000)])

        sales = sales_service.list_sales(org_a.id, worker_id=worker_a.id)
        assert [s.quantity for s in sales] == [2, 1]

        assert sales_service.list_sales(org_a.id, worker_id=worker_a.id, limit=1)[0].quantity == 2


def make_shop(db_session, org, name):
    from duka.models import Shop
    shop = Shop(org_id=org.id, name=name, location="Town")
    db_session.add(shop)
    db_session.commit()
    return shop
