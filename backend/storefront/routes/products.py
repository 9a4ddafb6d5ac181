# Overview: Flask API routes for the catalog; public listing with admin-only mutations.

"""
Product routes.

GET endpoints use optional authentication: administrators may pass
include_inactive=true to see deactivated products; everyone else only ever
sees active ones. Mutations require the admin role.
"""

from flask import Blueprint, current_app, g, request

from ..decorators import optional_auth, require_auth, require_role
from ..errors import ApiError, ValidationError
from ..models import Product
from ..models.catalog import CATEGORIES, DIMENSION_UNITS, SKIN_CONCERNS, SKIN_TYPES, WEIGHT_UNITS
from ..models.users import LIFECYCLE_ACTIVE, LIFECYCLE_DEACTIVATED, ROLE_ADMIN
from ..responses import failure, from_error, success
from ..services import products_service
from ..services.products_service import DEFAULT_SORT, SORTS, ProductFilters
from ..validation import (
    ModelValidationPolicy,
    coerce_bool,
    coerce_int,
    enforce_rules_product,
    require_json_object,
    validate_images,
    validate_payload,
    validate_specifications,
    validate_tags,
)


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku", "name", "slug", "description", "short_description",
        "price_cents", "original_price_cents",
        "category", "subcategory", "brand", "tags", "images",
        "is_featured", "is_on_sale", "sale_starts_at", "sale_ends_at",
        "inventory_quantity", "low_stock_threshold", "track_inventory",
        "specifications", "meta_title", "meta_description",
        "rating_average", "rating_count",
        "is_active",
    },
    required_on_create={"sku", "name", "description", "price_cents", "category", "brand"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _optional_bool(name: str) -> bool | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return coerce_bool(raw)


def _optional_int(name: str) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return coerce_int(raw, name)


def _filters_from_args() -> ProductFilters:
    sort = request.args.get("sort") or DEFAULT_SORT
    if sort not in SORTS:
        raise ValidationError(f"sort must be one of: {', '.join(SORTS)}", field="sort")
    tags = tuple(
        t.strip().lower() for t in (request.args.get("tags") or "").split(",") if t.strip()
    )
    return ProductFilters(
        search=(request.args.get("search") or "").strip() or None,
        category=(request.args.get("category") or "").strip() or None,
        brand=(request.args.get("brand") or "").strip() or None,
        tags=tags,
        is_featured=_optional_bool("is_featured"),
        is_on_sale=_optional_bool("is_on_sale"),
        min_price_cents=_optional_int("min_price_cents"),
        max_price_cents=_optional_int("max_price_cents"),
        sort=sort,
    )


def _split_payload(payload: dict, *, partial: bool):
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=partial)
    enforce_rules_product(patch, categories=CATEGORIES)
    images = validate_images(payload["images"]) if "images" in payload else None
    tags = validate_tags(payload["tags"]) if "tags" in payload else None
    if "specifications" in payload:
        patch["specifications"] = validate_specifications(
            payload["specifications"],
            weight_units=WEIGHT_UNITS,
            dimension_units=DIMENSION_UNITS,
            skin_types=SKIN_TYPES,
            concerns=SKIN_CONCERNS,
        )
    if "is_active" in payload:
        patch["lifecycle_state"] = LIFECYCLE_ACTIVE if coerce_bool(payload["is_active"]) else LIFECYCLE_DEACTIVATED
    return patch, images, tags


@products_bp.get("")
@optional_auth
def list_products_route():
    """
    Query params: search, category, brand, tags (comma separated, any),
    is_featured, is_on_sale, min_price_cents, max_price_cents,
    sort (price, -price, created_at, -created_at, name, -name, rating, -rating),
    page, limit (default 12, max 100), include_inactive (admins only).
    """
    try:
        query = products_service.query_for_viewer(
            g.current_user,
            _filters_from_args(),
            include_inactive=bool(_optional_bool("include_inactive")),
        )
        result = products_service.list_products(
            query,
            page=_optional_int("page"),
            limit=_optional_int("limit"),
        )
        return success("Products retrieved successfully", result)

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to list products")
        return failure("Internal server error", 500)


@products_bp.get("/<int:product_id>")
@optional_auth
def get_product_route(product_id: int):
    try:
        query = products_service.query_for_viewer(
            g.current_user,
            ProductFilters(),
            include_inactive=bool(_optional_bool("include_inactive")),
        )
        product = products_service.get_product(product_id, query)
        return success("Product retrieved successfully", {"product": product.to_dict()})

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to get product")
        return failure("Internal server error", 500)


@products_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_product_route():
    try:
        payload = require_json_object(request.get_json(silent=True))
        patch, images, tags = _split_payload(payload, partial=False)
        product = products_service.create_product(patch=patch, images=images, tags=tags)
        return success("Product created successfully", {"product": product.to_dict()}, 201)

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return failure("Internal server error", 500)


@products_bp.put("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_product_route(product_id: int):
    try:
        payload = require_json_object(request.get_json(silent=True))
        patch, images, tags = _split_payload(payload, partial=True)
        product = products_service.update_product(product_id, patch=patch, images=images, tags=tags)
        return success("Product updated successfully", {"product": product.to_dict()})

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return failure("Internal server error", 500)


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_product_route(product_id: int):
    """Soft delete: the product is deactivated, never removed."""
    try:
        product = products_service.soft_delete_product(product_id)
        return success("Product deleted successfully", {"product": product.to_dict()})

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return failure("Internal server error", 500)
