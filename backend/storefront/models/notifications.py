from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class ProductNotification(db.Model):
    """
    "Notify me when back in stock" subscription.

    One row per (user, product). Re-subscribing reactivates the row instead of
    inserting a duplicate.
    """
    __tablename__ = "product_notifications"
    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", name="uq_product_notifications_user_product"),
        db.Index("ix_product_notifications_product_active", "product_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    email = db.Column(db.String(254), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    notified_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())

    user = db.relationship("User", backref=db.backref("product_notifications", lazy=True))
    product = db.relationship("Product")

    def to_dict(self, *, include_product: bool = False) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "email": self.email,
            "is_active": self.is_active,
            "notified_at": to_utc_z(self.notified_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_product and self.product is not None:
            data["product"] = self.product.to_summary()
        return data
