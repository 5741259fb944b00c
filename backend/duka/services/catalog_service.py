# Overview: Shop and product administration scoped to one organization.

from __future__ import annotations

from ..extensions import db
from ..models import Shop, Product
from ..validation import ConflictError
from .concurrency import locked_row, run_with_retry
from .tenant_service import scoped_query, get_in_org, require_shop_in_org


class CatalogError(Exception):
    """Raised when shop or product operations fail."""
    pass


def create_shop(
    org_id: int,
    name: str,
    location: str,
    phone: str | None = None,
    created_by_user_id: int | None = None,
) -> Shop:
    name = (name or "").strip()
    location = (location or "").strip()
    if not name:
        raise CatalogError("Shop name is required")
    if not location:
        raise CatalogError("Shop location is required")

    existing = scoped_query(Shop, org_id).filter_by(name=name).first()
    if existing:
        raise ConflictError(f"Shop '{name}' already exists")

    shop = Shop(
        org_id=org_id,
        name=name,
        location=location,
        phone=phone,
        created_by_user_id=created_by_user_id,
    )
    db.session.add(shop)
    db.session.commit()
    return shop


def list_shops(org_id: int) -> list[Shop]:
    return scoped_query(Shop, org_id).order_by(Shop.name.asc()).all()


def create_product(org_id: int, patch: dict, created_by_user_id: int | None = None) -> Product:
    """
    Create a product from a validated patch (see routes.products PRODUCT_POLICY).

    shop_id must be a shop of org_id.
    """
    shop = require_shop_in_org(patch.get("shop_id"), org_id)

    product = Product(
        org_id=org_id,
        shop_id=shop.id,
        name=patch["name"],
        buying_price_cents=patch.get("buying_price_cents"),
        minimum_selling_price_cents=patch.get("minimum_selling_price_cents") or 0,
        stock=patch.get("stock") or 0,
        created_by_user_id=created_by_user_id,
    )
    db.session.add(product)
    db.session.commit()
    return product


def update_product(org_id: int, product_id: int, patch: dict) -> Product:
    """
    Apply an admin edit. Moving a product to another shop requires the
    target shop to be in the same org.
    """
    def _op():
        get_in_org(Product, product_id, org_id, label="Product")
        product = locked_row(Product, product_id, org_id)

        if "shop_id" in patch:
            shop = require_shop_in_org(patch["shop_id"], org_id)
            product.shop_id = shop.id

        for field in ("name", "buying_price_cents", "minimum_selling_price_cents", "stock"):
            if field in patch:
                setattr(product, field, patch[field])

        db.session.commit()
        return product

    return run_with_retry(_op, label=f"product {product_id} update")


def list_products(org_id: int, shop_id: int | None = None, in_stock_only: bool = False) -> list[Product]:
    query = scoped_query(Product, org_id)
    if shop_id is not None:
        require_shop_in_org(shop_id, org_id)
        query = query.filter(Product.shop_id == shop_id)
    if in_stock_only:
        query = query.filter(Product.stock > 0)
    return query.order_by(Product.name.asc()).all()
