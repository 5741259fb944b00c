from __future__ import annotations

from ..extensions import db
from duka.time_utils import to_utc_z


PAYMENT_METHODS = ("cash", "card", "mobile", "mpesa")


class Checkout(db.Model):
    """
    One submitted cart.

    checkout_key is an optional client-generated idempotency key. A second
    submission with the same key in the same org returns this checkout
    instead of selling again.

    status is COMPLETED when every line was recorded. PARTIAL only occurs in
    sequential mode, where committed lines are kept after a later line fails.
    """
    __tablename__ = "checkouts"
    __table_args__ = (
        db.UniqueConstraint("org_id", "checkout_key", name="uq_checkouts_org_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    checkout_key = db.Column(db.String(64), nullable=True)
    payment_method = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="COMPLETED", index=True)

    line_count = db.Column(db.Integer, nullable=False, default=0)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_profit_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self, include_sales: bool = False) -> dict:
        data = {
            "id": self.id,
            "org_id": self.org_id,
            "shop_id": self.shop_id,
            "worker_id": self.worker_id,
            "checkout_key": self.checkout_key,
            "payment_method": self.payment_method,
            "status": self.status,
            "line_count": self.line_count,
            "total_amount_cents": self.total_amount_cents,
            "total_profit_cents": self.total_profit_cents,
            "created_at": to_utc_z(self.created_at),
        }
        if include_sales:
            data["sales"] = [sale.to_dict() for sale in self.sales]
        return data


class Sale(db.Model):
    """
    One sold cart line. Immutable once written.

    total_amount_cents = quantity * selling_price_cents
    profit_cents = (selling_price_cents - buying price) * quantity, using the
    product's buying price at the moment of sale.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_org_worker_created", "org_id", "worker_id", "created_at"),
        db.Index("ix_sales_org_shop_created", "org_id", "shop_id", "created_at"),
        db.CheckConstraint("quantity > 0", name="ck_sales_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    checkout_id = db.Column(db.Integer, db.ForeignKey("checkouts.id"), nullable=True, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    selling_price_cents = db.Column(db.Integer, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    profit_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    checkout = db.relationship("Checkout", backref=db.backref("sales", lazy=True))
    product = db.relationship("Product")
    worker = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "checkout_id": self.checkout_id,
            "shop_id": self.shop_id,
            "worker_id": self.worker_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "selling_price_cents": self.selling_price_cents,
            "total_amount_cents": self.total_amount_cents,
            "profit_cents": self.profit_cents,
            "payment_method": self.payment_method,
            "created_at": to_utc_z(self.created_at),
        }
