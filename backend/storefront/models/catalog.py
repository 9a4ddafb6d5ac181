from __future__ import annotations

from sqlalchemy.ext.hybrid import hybrid_property

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .users import LIFECYCLE_ACTIVE


CATEGORIES = ("skincare", "makeup", "haircare", "fragrance", "bodycare", "tools", "sets", "other")

WEIGHT_UNITS = ("g", "kg", "ml", "l", "oz", "fl oz")
DIMENSION_UNITS = ("cm", "in")
SKIN_TYPES = ("normal", "dry", "oily", "combination", "sensitive", "all")
SKIN_CONCERNS = ("acne", "aging", "dryness", "sensitivity", "pigmentation", "pores", "other")

STOCK_IN = "in-stock"
STOCK_LOW = "low-stock"
STOCK_OUT = "out-of-stock"


class Product(db.Model):
    """
    Catalog product.

    Prices are stored in cents. Products are soft-deleted through
    lifecycle_state; deactivated products stay referenced by historical orders.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.UniqueConstraint("slug", name="uq_products_slug"),
        db.Index("ix_products_category_lifecycle", "category", "lifecycle_state"),
        db.Index("ix_products_brand", "brand"),
        db.Index("ix_products_rating", "rating_average"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    slug = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=False)
    short_description = db.Column(db.String(200), nullable=True)

    price_cents = db.Column(db.Integer, nullable=False)
    original_price_cents = db.Column(db.Integer, nullable=True)

    category = db.Column(db.String(32), nullable=False)
    subcategory = db.Column(db.String(50), nullable=True)
    brand = db.Column(db.String(50), nullable=False)

    is_featured = db.Column(db.Boolean, nullable=False, default=False)
    is_on_sale = db.Column(db.Boolean, nullable=False, default=False)
    sale_starts_at = db.Column(db.DateTime(timezone=True), nullable=True)
    sale_ends_at = db.Column(db.DateTime(timezone=True), nullable=True)

    inventory_quantity = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)
    track_inventory = db.Column(db.Boolean, nullable=False, default=True)

    # {"weight", "dimensions", "ingredients", "skin_type", "concerns"}; replaced as a whole on update
    specifications = db.Column(db.JSON, nullable=True)

    meta_title = db.Column(db.String(60), nullable=True)
    meta_description = db.Column(db.String(160), nullable=True)

    rating_average = db.Column(db.Float, nullable=False, default=0.0)
    rating_count = db.Column(db.Integer, nullable=False, default=0)

    lifecycle_state = db.Column(db.String(16), nullable=False, default=LIFECYCLE_ACTIVE)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())

    images = db.relationship(
        "ProductImage",
        order_by="ProductImage.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    tag_rows = db.relationship(
        "ProductTag",
        order_by="ProductTag.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version_id}

    @hybrid_property
    def is_active(self):
        return self.lifecycle_state == LIFECYCLE_ACTIVE

    @is_active.expression
    def is_active(cls):
        return cls.lifecycle_state == LIFECYCLE_ACTIVE

    @property
    def tags(self) -> list[str]:
        return [row.tag for row in self.tag_rows]

    @property
    def primary_image(self):
        for image in self.images:
            if image.is_primary:
                return image
        return self.images[0] if self.images else None

    @property
    def discount_percentage(self) -> int:
        original = self.original_price_cents
        if original and original > self.price_cents:
            return round((original - self.price_cents) / original * 100)
        return 0

    @property
    def stock_status(self) -> str:
        if not self.track_inventory:
            return STOCK_IN
        if self.inventory_quantity <= 0:
            return STOCK_OUT
        if self.inventory_quantity <= self.low_stock_threshold:
            return STOCK_LOW
        return STOCK_IN

    def is_currently_on_sale(self, now=None) -> bool:
        if not self.is_on_sale:
            return False
        now = now or utcnow()
        if self.sale_starts_at and now < self.sale_starts_at.replace(tzinfo=None):
            return False
        if self.sale_ends_at and now > self.sale_ends_at.replace(tzinfo=None):
            return False
        return True

    def to_summary(self) -> dict:
        primary = self.primary_image
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "brand": self.brand,
            "price_cents": self.price_cents,
            "stock_status": self.stock_status,
            "is_active": self.is_active,
            "image": primary.to_dict() if primary else None,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "short_description": self.short_description,
            "price_cents": self.price_cents,
            "original_price_cents": self.original_price_cents,
            "discount_percentage": self.discount_percentage,
            "category": self.category,
            "subcategory": self.subcategory,
            "brand": self.brand,
            "tags": self.tags,
            "images": [image.to_dict() for image in self.images],
            "is_featured": self.is_featured,
            "is_on_sale": self.is_on_sale,
            "is_currently_on_sale": self.is_currently_on_sale(),
            "sale_starts_at": to_utc_z(self.sale_starts_at),
            "sale_ends_at": to_utc_z(self.sale_ends_at),
            "inventory": {
                "quantity": self.inventory_quantity,
                "low_stock_threshold": self.low_stock_threshold,
                "track_inventory": self.track_inventory,
            },
            "specifications": self.specifications,
            "seo": {
                "meta_title": self.meta_title,
                "meta_description": self.meta_description,
            },
            "rating": {
                "average": self.rating_average or 0.0,
                "count": self.rating_count or 0,
            },
            "stock_status": self.stock_status,
            "is_active": self.is_active,
            "lifecycle_state": self.lifecycle_state,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductImage(db.Model):
    __tablename__ = "product_images"
    __table_args__ = (
        db.Index("ix_product_images_product_position", "product_id", "position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)
    url = db.Column(db.Text, nullable=False)
    alt = db.Column(db.String(100), nullable=False)
    is_primary = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {"url": self.url, "alt": self.alt, "is_primary": self.is_primary}


class ProductTag(db.Model):
    __tablename__ = "product_tags"
    __table_args__ = (
        db.UniqueConstraint("product_id", "tag", name="uq_product_tags_product_tag"),
        db.Index("ix_product_tags_tag", "tag"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    tag = db.Column(db.String(30), nullable=False)
