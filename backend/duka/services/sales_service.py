"""
Sales Service - point-of-sale checkout

A checkout turns a cart of lines into one Sale row per line and takes the
sold quantity out of stock.

Per line:
1. profit = (selling_price - buying_price) * quantity, with a missing buying
   price counted as 0 (logged as a data-quality warning)
2. stock decrement as a compare-and-swap:
   UPDATE products SET stock = stock - q WHERE id = ? AND stock >= q
   Zero rows updated means another sale took the stock first.
3. insert the Sale row

Modes:
- atomic (default): the whole cart is one transaction. Any failing line rolls
  back every line, so stock and sales always agree.
- sequential: every line commits on its own. A failure stops the remaining
  lines and keeps the committed ones; the checkout is marked PARTIAL.

A checkout_key makes a submission idempotent for the worker who sent it;
the same key from another worker is rejected as a conflict.

Validation errors (missing worker/shop, empty cart, bad quantity, price
below the product minimum, unknown payment method) are raised before any
write in both modes.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Checkout, Sale, Product
from ..models.sales import PAYMENT_METHODS
from ..validation import ValidationError, parse_int, parse_money_cents
from duka.time_utils import utcnow
from .concurrency import run_with_retry
from .tenant_service import (
    scoped_query,
    require_shop_in_org,
    require_worker_in_org,
    require_product_in_shop,
)


CHECKOUT_COMPLETED = "COMPLETED"
CHECKOUT_PARTIAL = "PARTIAL"


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class CheckoutKeyConflict(SaleError):
    """checkout_key already used by another worker's checkout."""


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int
    selling_price_cents: int


@dataclass
class PricedLine:
    product: Product
    quantity: int
    selling_price_cents: int
    total_amount_cents: int
    profit_cents: int


def line_total_cents(quantity: int, selling_price_cents: int) -> int:
    return quantity * selling_price_cents


def line_profit_cents(selling_price_cents: int, buying_price_cents: int | None, quantity: int) -> int:
    """(selling - buying) * quantity; a missing buying price counts as 0."""
    buying = buying_price_cents if isinstance(buying_price_cents, int) else 0
    return (selling_price_cents - buying) * quantity


def cart_total(lines: list[CartLine]) -> int:
    return sum(line_total_cents(line.quantity, line.selling_price_cents) for line in lines)


def parse_cart_lines(raw_lines) -> list[CartLine]:
    """
    Parse JSON cart lines.

    Each line needs product_id, quantity and a selling price given either as
    selling_price_cents (integer) or selling_price (major units, e.g. "150.00").
    """
    if not isinstance(raw_lines, list):
        raise ValidationError("lines must be a list")

    lines = []
    for index, raw in enumerate(raw_lines):
        if not isinstance(raw, dict):
            raise ValidationError(f"lines[{index}] must be an object")
        if raw.get("product_id") is None:
            raise ValidationError(f"lines[{index}].product_id is required")
        if raw.get("quantity") is None:
            raise ValidationError(f"lines[{index}].quantity is required")

        if raw.get("selling_price_cents") is not None:
            price = parse_int(raw["selling_price_cents"], f"lines[{index}].selling_price_cents")
        elif raw.get("selling_price") is not None:
            price = parse_money_cents(raw["selling_price"], f"lines[{index}].selling_price")
        else:
            raise ValidationError(f"lines[{index}].selling_price is required")

        lines.append(CartLine(
            product_id=parse_int(raw["product_id"], f"lines[{index}].product_id"),
            quantity=parse_int(raw["quantity"], f"lines[{index}].quantity"),
            selling_price_cents=price,
        ))
    return lines


def _price_line(line: CartLine, shop_id: int, org_id: int) -> PricedLine:
    product = require_product_in_shop(line.product_id, shop_id, org_id)

    if line.quantity < 1:
        raise ValidationError(f"Quantity for {product.name} must be at least 1")

    if line.selling_price_cents < product.minimum_selling_price_cents:
        raise SaleError(
            f"Selling price for {product.name} is below the minimum",
            details={
                "product_id": product.id,
                "selling_price_cents": line.selling_price_cents,
                "minimum_selling_price_cents": product.minimum_selling_price_cents,
            },
        )

    if not isinstance(product.buying_price_cents, int):
        current_app.logger.warning(
            "Product %s (%s) has no buying price; recording profit against a cost of 0",
            product.id,
            product.name,
        )

    return PricedLine(
        product=product,
        quantity=line.quantity,
        selling_price_cents=line.selling_price_cents,
        total_amount_cents=line_total_cents(line.quantity, line.selling_price_cents),
        profit_cents=line_profit_cents(line.selling_price_cents, product.buying_price_cents, line.quantity),
    )


def _decrement_stock(product_id: int, quantity: int, org_id: int) -> None:
    updated = db.session.query(Product).filter(
        Product.id == product_id,
        Product.org_id == org_id,
        Product.stock >= quantity,
    ).update(
        {
            Product.stock: Product.stock - quantity,
            Product.version_id: Product.version_id + 1,
        },
        synchronize_session=False,
    )

    if updated != 1:
        current_app.logger.warning(
            "Stock decrement rejected for product %s (requested %s)", product_id, quantity
        )
        raise SaleError(
            "Insufficient stock",
            details={"product_id": product_id, "requested_quantity": quantity},
        )


def _apply_line(checkout: Checkout, line: PricedLine) -> Sale:
    _decrement_stock(line.product.id, line.quantity, checkout.org_id)

    sale = Sale(
        org_id=checkout.org_id,
        checkout_id=checkout.id,
        shop_id=checkout.shop_id,
        worker_id=checkout.worker_id,
        product_id=line.product.id,
        quantity=line.quantity,
        selling_price_cents=line.selling_price_cents,
        total_amount_cents=line.total_amount_cents,
        profit_cents=line.profit_cents,
        payment_method=checkout.payment_method,
        created_at=checkout.created_at,
    )
    db.session.add(sale)
    db.session.flush()

    checkout.line_count += 1
    checkout.total_amount_cents += line.total_amount_cents
    checkout.total_profit_cents += line.profit_cents
    return sale


def _new_checkout(org_id, shop_id, worker_id, payment_method, checkout_key) -> Checkout:
    checkout = Checkout(
        org_id=org_id,
        shop_id=shop_id,
        worker_id=worker_id,
        checkout_key=checkout_key,
        payment_method=payment_method,
        status=CHECKOUT_COMPLETED,
        line_count=0,
        total_amount_cents=0,
        total_profit_cents=0,
        created_at=utcnow(),
    )
    db.session.add(checkout)
    db.session.flush()
    return checkout


def find_checkout_by_key(org_id: int, checkout_key: str) -> Checkout | None:
    return scoped_query(Checkout, org_id).filter_by(checkout_key=checkout_key).first()


def _replay_for_worker(org_id: int, worker_id: int, checkout_key: str) -> Checkout | None:
    """
    The checkout already recorded under checkout_key, if any.

    A key belonging to another worker's checkout is a conflict; that
    checkout is never handed back.
    """
    existing = find_checkout_by_key(org_id, checkout_key)
    if existing is None:
        return None
    if existing.worker_id != worker_id:
        current_app.logger.warning(
            "Worker %s reused checkout_key %s owned by worker %s",
            worker_id, checkout_key, existing.worker_id,
        )
        raise CheckoutKeyConflict(
            "checkout_key is already in use",
            details={"checkout_key": checkout_key},
        )
    current_app.logger.info("Duplicate checkout_key %s; returning checkout %s", checkout_key, existing.id)
    return existing


def _record_atomic(org_id, shop_id, worker_id, payment_method, checkout_key, lines) -> Checkout:
    def _op():
        try:
            checkout = _new_checkout(org_id, shop_id, worker_id, payment_method, checkout_key)
            for line in lines:
                _apply_line(checkout, line)
            db.session.commit()
        except SaleError:
            db.session.rollback()
            raise
        return checkout

    def _winner():
        return _replay_for_worker(org_id, worker_id, checkout_key)

    return run_with_retry(_op, label="checkout", on_duplicate=_winner if checkout_key else None)


def _record_sequential(org_id, shop_id, worker_id, payment_method, checkout_key, lines) -> Checkout:
    def _open():
        checkout = _new_checkout(org_id, shop_id, worker_id, payment_method, checkout_key)
        db.session.commit()
        return checkout, True

    def _winner():
        existing = _replay_for_worker(org_id, worker_id, checkout_key)
        return (existing, False) if existing is not None else None

    checkout, opened = run_with_retry(_open, label="checkout", on_duplicate=_winner if checkout_key else None)
    if not opened:
        return checkout

    for index, line in enumerate(lines):
        try:
            _apply_line(checkout, line)
            db.session.commit()
        except (SaleError, SQLAlchemyError) as exc:
            db.session.rollback()
            committed = checkout.line_count
            current_app.logger.warning(
                "Checkout %s stopped at line %s of %s: %s",
                checkout.id, index + 1, len(lines), exc,
            )

            if committed == 0:
                db.session.delete(checkout)
            else:
                checkout.status = CHECKOUT_PARTIAL
            db.session.commit()

            details = dict(getattr(exc, "details", {}) or {})
            details.update({
                "committed_lines": committed,
                "failed_line": index,
                "total_lines": len(lines),
                "checkout_id": checkout.id if committed else None,
            })
            raise SaleError(f"Error processing sale: {exc}", details=details) from exc

    return checkout


def record_sale(
    *,
    org_id: int,
    worker_id: int | None,
    shop_id: int | None,
    lines: list[CartLine],
    payment_method: str,
    checkout_key: str | None = None,
    atomic: bool | None = None,
) -> Checkout:
    """
    Record a checkout for a worker at a shop.

    Returns the Checkout (its sales are available as checkout.sales).
    A repeated checkout_key returns the earlier checkout without writing,
    provided that checkout belongs to the same worker.

    Raises:
        ValidationError: missing identity, empty cart, malformed line
        SaleError: business rule failure (price below minimum, stock)
        CheckoutKeyConflict: checkout_key taken by another worker
        TenantAccessError: worker, shop or product not in org_id
    """
    if not worker_id or not shop_id:
        raise ValidationError("Worker information missing")

    if not lines:
        raise ValidationError("Please add items to the sale")

    payment_method = (payment_method or "").strip().lower()
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    checkout_key = str(checkout_key).strip()[:64] if checkout_key else None

    worker = require_worker_in_org(worker_id, org_id)
    shop = require_shop_in_org(shop_id, org_id)
    if worker.shop_id != shop.id:
        raise SaleError("Worker is not assigned to this shop")

    if checkout_key:
        existing = _replay_for_worker(org_id, worker.id, checkout_key)
        if existing is not None:
            return existing

    priced = [_price_line(line, shop.id, org_id) for line in lines]

    if atomic is None:
        atomic = current_app.config.get("CHECKOUT_ATOMIC", True)

    if atomic:
        return _record_atomic(org_id, shop.id, worker.id, payment_method, checkout_key or None, priced)
    return _record_sequential(org_id, shop.id, worker.id, payment_method, checkout_key or None, priced)


def get_checkout(org_id: int, checkout_id: int) -> Checkout | None:
    return scoped_query(Checkout, org_id).filter_by(id=checkout_id).first()


def list_sales(
    org_id: int,
    worker_id: int | None = None,
    shop_id: int | None = None,
    limit: int | None = None,
) -> list[Sale]:
    """Sales newest first, optionally narrowed to one worker or shop."""
    query = scoped_query(Sale, org_id)
    if worker_id is not None:
        query = query.filter(Sale.worker_id == worker_id)
    if shop_id is not None:
        query = query.filter(Sale.shop_id == shop_id)
    query = query.order_by(Sale.created_at.desc(), Sale.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()
