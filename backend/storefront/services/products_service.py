# Overview: Service-layer operations for the catalog; listing, visibility rules and admin mutations.

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Union

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import Product, ProductImage, ProductTag
from ..models.users import LIFECYCLE_ACTIVE, LIFECYCLE_DEACTIVATED
from ..pagination import clamp_page, paginate_query
from .concurrency import commit_with_retry


SORTS = {
    "price": (Product.price_cents.asc(), Product.id.asc()),
    "-price": (Product.price_cents.desc(), Product.id.desc()),
    "created_at": (Product.created_at.asc(), Product.id.asc()),
    "-created_at": (Product.created_at.desc(), Product.id.desc()),
    "name": (Product.name.asc(), Product.id.asc()),
    "-name": (Product.name.desc(), Product.id.desc()),
    "rating": (Product.rating_average.asc(), Product.id.asc()),
    "-rating": (Product.rating_average.desc(), Product.id.desc()),
}
DEFAULT_SORT = "-created_at"
DEFAULT_LIMIT = 12


@dataclass(frozen=True)
class ProductFilters:
    search: str | None = None
    category: str | None = None
    brand: str | None = None
    tags: tuple[str, ...] = ()
    is_featured: bool | None = None
    is_on_sale: bool | None = None
    min_price_cents: int | None = None
    max_price_cents: int | None = None
    sort: str = DEFAULT_SORT


@dataclass(frozen=True)
class PublicProductQuery:
    """Anonymous and customer view: deactivated products are never visible."""
    filters: ProductFilters = field(default_factory=ProductFilters)


@dataclass(frozen=True)
class AdminProductQuery:
    """Administrator view: may include deactivated products."""
    filters: ProductFilters = field(default_factory=ProductFilters)
    include_inactive: bool = False


ProductQuery = Union[PublicProductQuery, AdminProductQuery]


def query_for_viewer(viewer, filters: ProductFilters, include_inactive: bool = False) -> ProductQuery:
    """Select the query variant from the caller's role."""
    if viewer is not None and viewer.is_admin:
        return AdminProductQuery(filters=filters, include_inactive=include_inactive)
    return PublicProductQuery(filters=filters)


def _visible(query: ProductQuery):
    base = db.session.query(Product)
    if isinstance(query, AdminProductQuery) and query.include_inactive:
        return base
    return base.filter(Product.lifecycle_state == LIFECYCLE_ACTIVE)


def _apply_filters(q, filters: ProductFilters):
    if filters.category:
        q = q.filter(Product.category == filters.category.lower())
    if filters.brand:
        q = q.filter(func.lower(Product.brand) == filters.brand.lower())
    if filters.tags:
        q = q.filter(
            Product.id.in_(
                db.session.query(ProductTag.product_id).filter(ProductTag.tag.in_(filters.tags))
            )
        )
    if filters.is_featured is not None:
        q = q.filter(Product.is_featured.is_(filters.is_featured))
    if filters.is_on_sale is not None:
        q = q.filter(Product.is_on_sale.is_(filters.is_on_sale))
    if filters.min_price_cents is not None:
        q = q.filter(Product.price_cents >= filters.min_price_cents)
    if filters.max_price_cents is not None:
        q = q.filter(Product.price_cents <= filters.max_price_cents)
    if filters.search:
        pattern = f"%{filters.search.strip().lower()}%"
        q = q.filter(or_(
            func.lower(Product.name).like(pattern),
            func.lower(Product.brand).like(pattern),
            func.lower(Product.description).like(pattern),
        ))
    return q


def list_products(query: ProductQuery, page: int | None = None, limit: int | None = None) -> dict:
    filters = query.filters
    q = _apply_filters(_visible(query), filters)
    q = q.order_by(*SORTS.get(filters.sort, SORTS[DEFAULT_SORT]))

    page, per_page = clamp_page(page, limit, default=DEFAULT_LIMIT)
    products, pagination = paginate_query(q, page, per_page)
    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": pagination,
    }


def get_product(product_id: int, query: ProductQuery | None = None) -> Product:
    product = _visible(query or PublicProductQuery()).filter(Product.id == product_id).first()
    if product is None:
        raise NotFoundError("Product not found")
    return product


def get_any_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


# =============================================================================
# Mutations (admin)
# =============================================================================

def slugify(name: str) -> str:
    slug = name.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug.strip())
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def normalize_primary_images(images: list[dict]) -> list[dict]:
    """
    Exactly one primary image when the list is non-empty: the first image
    flagged primary wins and the rest are demoted; with none flagged, the
    first image is promoted.
    """
    if not images:
        return []
    primary_index = next((i for i, img in enumerate(images) if img.get("is_primary")), 0)
    return [dict(img, is_primary=(i == primary_index)) for i, img in enumerate(images)]


def _replace_images(product: Product, images: list[dict]) -> None:
    product.images = [
        ProductImage(position=i, url=img["url"], alt=img["alt"], is_primary=img["is_primary"])
        for i, img in enumerate(normalize_primary_images(images))
    ]


def _replace_tags(product: Product, tags: list[str]) -> None:
    existing = {row.tag: row for row in product.tag_rows}
    product.tag_rows = [existing.get(tag) or ProductTag(tag=tag) for tag in tags]


def _ensure_unique(*, sku: str | None = None, slug: str | None = None, exclude_id: int | None = None) -> None:
    if sku is not None:
        q = db.session.query(Product.id).filter(Product.sku == sku)
        if exclude_id is not None:
            q = q.filter(Product.id != exclude_id)
        if q.first() is not None:
            raise ConflictError("Product with this SKU already exists")
    if slug is not None:
        q = db.session.query(Product.id).filter(Product.slug == slug)
        if exclude_id is not None:
            q = q.filter(Product.id != exclude_id)
        if q.first() is not None:
            raise ConflictError("Product with this slug already exists")


def _commit_product() -> None:
    try:
        commit_with_retry()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Product with this SKU or slug already exists")


def create_product(*, patch: dict, images: list[dict] | None = None, tags: list[str] | None = None) -> Product:
    """
    Create a product from a validated patch. Slug derives from the name when
    not supplied.
    """
    data = dict(patch)
    data["slug"] = data.get("slug") or slugify(data["name"])
    _ensure_unique(sku=data["sku"], slug=data["slug"])

    product = Product(**data)
    _replace_images(product, images or [])
    _replace_tags(product, tags or [])
    db.session.add(product)
    _commit_product()
    return product


def update_product(product_id: int, *, patch: dict, images: list[dict] | None = None,
                   tags: list[str] | None = None) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")

    _ensure_unique(sku=patch.get("sku"), slug=patch.get("slug"), exclude_id=product.id)
    for key, value in patch.items():
        setattr(product, key, value)
    if images is not None:
        _replace_images(product, images)
    elif product.images:
        # Keep exactly one primary image on every save
        flags = normalize_primary_images([img.to_dict() for img in product.images])
        for image, normalized in zip(product.images, flags):
            image.is_primary = normalized["is_primary"]
    if tags is not None:
        _replace_tags(product, tags)
    _commit_product()
    return product


def soft_delete_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    product.lifecycle_state = LIFECYCLE_DEACTIVATED
    commit_with_retry()
    return product
