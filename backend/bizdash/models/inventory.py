from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


STATUS_IN_STOCK = "in-stock"
STATUS_LOW_STOCK = "low-stock"
STATUS_OUT_OF_STOCK = "out-of-stock"

DEFAULT_LOW_STOCK_THRESHOLD = 10


def stock_status(stock: int, low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> str:
    """Status derived from the stock level. The only way status is ever set."""
    if stock <= 0:
        return STATUS_OUT_OF_STOCK
    if stock <= low_stock_threshold:
        return STATUS_LOW_STOCK
    return STATUS_IN_STOCK


class Product(db.Model):
    """
    Product catalogue entry owned by one user.

    SKU is unique across ALL users, not per owner. Status is stored so it
    can be filtered in SQL, but is recomputed from stock on every write.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        db.CheckConstraint("cost >= 0", name="ck_products_cost_non_negative"),
        db.Index("ix_products_owner_updated", "owner_id", "last_updated"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(128), nullable=False)
    sku = db.Column(db.String(64), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)
    price = db.Column(db.Float, nullable=False)
    cost = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(32), nullable=False, default=STATUS_IN_STOCK)
    supplier = db.Column(db.String(255), nullable=True)

    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    owner = db.relationship("User", backref=db.backref("products", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "sku": self.sku,
            "stock": self.stock,
            "price": self.price,
            "cost": self.cost,
            "status": self.status,
            "supplier": self.supplier,
            "last_updated": to_utc_z(self.last_updated),
            "owner_id": self.owner_id,
        }
