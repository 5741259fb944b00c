from __future__ import annotations

from ..extensions import db
from duka.time_utils import to_utc_z

class Product(db.Model):
    """
    Product stocked in one shop.

    MULTI-TENANT: org_id is stored on the row (not only via shop) so that
    tenant_service.scoped_query can filter without a join.

    PRICES: integer cents. buying_price_cents is nullable because imported
    legacy rows may lack it; the sale flow treats a missing cost as 0.
    minimum_selling_price_cents is the floor for any accepted selling price.

    STOCK: decremented only through the compare-and-swap update in
    sales_service, never by read-modify-write. The check constraint keeps it
    from going negative on databases that enforce it.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_org_shop", "org_id", "shop_id"),
        db.Index("ix_products_shop_name", "shop_id", "name"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_nonnegative"),
        db.CheckConstraint("minimum_selling_price_cents >= 0", name="ck_products_min_price_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)

    buying_price_cents = db.Column(db.Integer, nullable=True)
    minimum_selling_price_cents = db.Column(db.Integer, nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shop = db.relationship("Shop", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} shop_id={self.shop_id} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "shop_id": self.shop_id,
            "name": self.name,
            "buying_price_cents": self.buying_price_cents,
            "minimum_selling_price_cents": self.minimum_selling_price_cents,
            "stock": self.stock,
            "created_by_user_id": self.created_by_user_id,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
