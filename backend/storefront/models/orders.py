from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..time_utils import to_utc_z


ORDER_STATUSES = (
    "pending",
    "confirmed",
    "processing",
    "shipped",
    "delivered",
    "cancelled",
    "refunded",
    "returned",
)

PAYMENT_METHODS = ("credit-card", "debit-card", "paypal", "stripe", "cash-on-delivery")
PAYMENT_STATUSES = ("pending", "processing", "completed", "failed", "refunded")

# Shipping method -> estimated transit days
SHIPPING_METHODS = {
    "standard": 7,
    "express": 3,
    "overnight": 1,
    "pickup": 0,
}

DISCOUNT_TYPES = ("percentage", "fixed", "free-shipping")


def _address_dict(prefix: str, order: "Order") -> dict:
    return {
        "street": getattr(order, f"{prefix}_street"),
        "city": getattr(order, f"{prefix}_city"),
        "state": getattr(order, f"{prefix}_state"),
        "zip_code": getattr(order, f"{prefix}_zip_code"),
        "country": getattr(order, f"{prefix}_country"),
    }


class Order(db.Model):
    """
    Customer order.

    order_number is YYMMDD + zero-padded day sequence, assigned once at creation.
    Money fields are cents; total_cents is always
    max(0, subtotal + tax + shipping - discount).
    status_history is append-only and starts with a 'pending' entry.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.Index("ix_orders_user_created", "user_id", "created_at"),
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(16), nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Customer snapshot captured at order time
    customer_name = db.Column(db.String(100), nullable=False)
    customer_email = db.Column(db.String(254), nullable=False)
    customer_phone = db.Column(db.String(20), nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    shipping_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    shipping_method = db.Column(db.String(16), nullable=False, default="standard")
    estimated_delivery_at = db.Column(db.DateTime(timezone=True), nullable=True)
    discount_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_code = db.Column(db.String(64), nullable=True)
    discount_type = db.Column(db.String(16), nullable=True)
    total_cents = db.Column(db.Integer, nullable=False)

    billing_street = db.Column(db.String(200), nullable=False)
    billing_city = db.Column(db.String(100), nullable=False)
    billing_state = db.Column(db.String(100), nullable=False)
    billing_zip_code = db.Column(db.String(20), nullable=False)
    billing_country = db.Column(db.String(100), nullable=False)

    shipping_street = db.Column(db.String(200), nullable=False)
    shipping_city = db.Column(db.String(100), nullable=False)
    shipping_state = db.Column(db.String(100), nullable=False)
    shipping_zip_code = db.Column(db.String(20), nullable=False)
    shipping_country = db.Column(db.String(100), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    payment_method = db.Column(db.String(32), nullable=True)
    payment_status = db.Column(db.String(16), nullable=False, default="pending")
    payment_transaction_id = db.Column(db.String(128), nullable=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    tracking_carrier = db.Column(db.String(64), nullable=True)
    tracking_number = db.Column(db.String(128), nullable=True)
    tracking_url = db.Column(db.String(512), nullable=True)
    shipped_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)

    customer_note = db.Column(db.String(500), nullable=True)
    internal_note = db.Column(db.String(1000), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())

    user = db.relationship("User", backref=db.backref("orders", lazy="dynamic"))
    items = db.relationship("OrderItem", order_by="OrderItem.id", cascade="all, delete-orphan", lazy="selectin")
    status_history = db.relationship(
        "OrderStatusHistory",
        order_by="OrderStatusHistory.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def estimated_delivery(self):
        if self.estimated_delivery_at is not None:
            return self.estimated_delivery_at
        days = SHIPPING_METHODS.get(self.shipping_method)
        if days is None or self.created_at is None:
            return None
        return self.created_at + timedelta(days=days)

    def to_dict(self, *, include_internal: bool = False) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "user_id": self.user_id,
            "customer": {
                "name": self.customer_name,
                "email": self.customer_email,
                "phone": self.customer_phone,
            },
            "items": [item.to_dict() for item in self.items],
            "subtotal_cents": self.subtotal_cents,
            "tax": {"amount_cents": self.tax_amount_cents, "rate_bps": self.tax_rate_bps},
            "shipping": {
                "cost_cents": self.shipping_cost_cents,
                "method": self.shipping_method,
                "estimated_delivery": to_utc_z(self.estimated_delivery),
            },
            "discount": {
                "amount_cents": self.discount_amount_cents,
                "code": self.discount_code,
                "type": self.discount_type,
            },
            "total_cents": self.total_cents,
            "billing_address": _address_dict("billing", self),
            "shipping_address": _address_dict("shipping", self),
            "status": self.status,
            "status_history": [entry.to_dict() for entry in self.status_history],
            "payment": {
                "method": self.payment_method,
                "status": self.payment_status,
                "transaction_id": self.payment_transaction_id,
                "paid_at": to_utc_z(self.paid_at),
            },
            "tracking": {
                "carrier": self.tracking_carrier,
                "tracking_number": self.tracking_number,
                "tracking_url": self.tracking_url,
                "shipped_at": to_utc_z(self.shipped_at),
                "delivered_at": to_utc_z(self.delivered_at),
            },
            "notes": {"customer": self.customer_note},
            "notifications": [message.to_log_entry() for message in self.email_messages],
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_internal:
            data["notes"]["internal"] = self.internal_note
        return data


class OrderItem(db.Model):
    """Line item with a point-in-time snapshot of the product."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.Index("ix_order_items_order", "order_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)

    product_name = db.Column(db.String(100), nullable=False)
    product_sku = db.Column(db.String(64), nullable=False)
    product_brand = db.Column(db.String(50), nullable=False)
    product_image_url = db.Column(db.Text, nullable=True)
    product_image_alt = db.Column(db.String(100), nullable=True)

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "snapshot": {
                "name": self.product_name,
                "sku": self.product_sku,
                "brand": self.product_brand,
                "image": {"url": self.product_image_url, "alt": self.product_image_alt}
                if self.product_image_url else None,
            },
        }


class OrderStatusHistory(db.Model):
    """
    Status transition log.

    IMMUTABLE: append-only; rows are never updated or deleted.
    """
    __tablename__ = "order_status_history"
    __table_args__ = (
        db.Index("ix_order_status_history_order", "order_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False)
    status = db.Column(db.String(16), nullable=False)
    note = db.Column(db.String(500), nullable=True)
    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "timestamp": to_utc_z(self.occurred_at),
            "note": self.note,
            "updated_by": self.actor_user_id,
        }


class OrderSequence(db.Model):
    """
    Per-day order number counter. next_number is the sequence the next
    order placed on day_key (YYMMDD, store-local) will receive.
    """
    __tablename__ = "order_sequences"
    __table_args__ = (
        db.UniqueConstraint("day_key", name="uq_order_sequences_day"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    day_key = db.Column(db.String(6), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
