from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Sale(db.Model):
    """
    A recorded sale of one product line.

    product_id and customer_id are soft links: rows referencing deleted
    products or customers are kept (no cascade).
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_sales_quantity_non_negative"),
        db.CheckConstraint("price >= 0", name="ck_sales_price_non_negative"),
        db.Index("ix_sales_owner_date", "owner_id", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Float, nullable=False)
    total = db.Column(db.Float, nullable=False)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    owner = db.relationship("User", backref=db.backref("sales", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "customer_id": self.customer_id,
            "quantity": self.quantity,
            "price": self.price,
            "total": self.total,
            "sale_date": to_utc_z(self.sale_date),
            "owner_id": self.owner_id,
        }
