# Overview: Input validation and normalization for request payloads.

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field as dc_field
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .time_utils import parse_iso_datetime


# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

NAME_RE = re.compile(r"^[a-zA-Z\s'-]+$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+?[\d\s\-()]+$")
SKU_RE = re.compile(r"^[A-Z0-9_-]+$")
SLUG_RE = re.compile(r"^[a-z0-9-]+$")
IMAGE_URL_RE = re.compile(
    r"^(https?://.+|data:image/(jpeg|jpg|png|gif|webp|svg\+xml);base64,.+)$",
    re.IGNORECASE,
)

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128

MAX_ITEM_QUANTITY = 1000


class FieldErrors:
    """Collects per-field messages so a single response can report all of them."""

    def __init__(self):
        self.errors: list[dict] = []

    def add(self, field: str, message: str) -> None:
        self.errors.append({"field": field, "message": message})

    def raise_if_any(self, message: str = "Validation failed") -> None:
        if self.errors:
            raise ValidationError(message, errors=list(self.errors))


# =============================================================================
# Scalar coercion
# =============================================================================

def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer parsing: rejects bools, floats, decimals and scientific notation.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer", field=field)
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)", field=field)
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)", field=field)
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer", field=field)
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal", field=field)
    raise ValidationError(f"{field} must be an integer", field=field)


def coerce_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            raise ValidationError(f"{field} must be a number", field=field)
    else:
        raise ValidationError(f"{field} must be a number", field=field)
    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a finite number", field=field)
    return number


def coerce_cents(value: Any, field: str) -> int:
    cents = coerce_int(value, field)
    if cents < 0:
        raise ValidationError(f"{field} must be >= 0", field=field)
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS}", field=field)
    return cents


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def coerce_datetime(value: Any, field: str) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 datetime", field=field)
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime", field=field)


def normalize_email(value: Any) -> str:
    return str(value or "").strip().lower()


def require_json_object(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def _check_text(errors: FieldErrors, field: str, value: Any, *, required: bool,
                min_len: int = 0, max_len: int | None = None) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            errors.add(field, f"{field} is required")
        return None
    text = str(value).strip()
    if len(text) < min_len:
        errors.add(field, f"{field} must be at least {min_len} characters")
    elif max_len is not None and len(text) > max_len:
        errors.add(field, f"{field} cannot exceed {max_len} characters")
    return text


# =============================================================================
# Accounts
# =============================================================================

def password_problem(password: Any) -> str | None:
    """Return the first policy violation for a password, or None."""
    if not isinstance(password, str) or not password:
        return "Password is required"
    if len(password) < PASSWORD_MIN_LENGTH:
        return f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
    if len(password) > PASSWORD_MAX_LENGTH:
        return f"Password cannot exceed {PASSWORD_MAX_LENGTH} characters"
    if not re.search(r"\d", password):
        return "Password must contain at least one number"
    return None


def _check_name(errors: FieldErrors, value: Any, *, required: bool) -> str | None:
    name = _check_text(errors, "name", value, required=required, min_len=2, max_len=50)
    if name and not NAME_RE.match(name):
        errors.add("name", "Name can only contain letters, spaces, hyphens, and apostrophes")
    return name


def _check_email(errors: FieldErrors, value: Any, field: str = "email") -> str | None:
    email = normalize_email(value)
    if not email:
        errors.add(field, "Email is required")
        return None
    if len(email) > 254 or not EMAIL_RE.match(email):
        errors.add(field, "Please provide a valid email")
    return email


def _check_phone(errors: FieldErrors, value: Any, field: str = "phone") -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    phone = str(value).strip()
    if not PHONE_RE.match(phone) or not 10 <= len(phone) <= 20:
        errors.add(field, "Please provide a valid phone number")
    return phone


def validate_registration(payload: Any) -> dict:
    payload = require_json_object(payload)
    errors = FieldErrors()
    name = _check_name(errors, payload.get("name"), required=True)
    email = _check_email(errors, payload.get("email"))
    problem = password_problem(payload.get("password"))
    if problem:
        errors.add("password", problem)
    phone = _check_phone(errors, payload.get("phone"))
    errors.raise_if_any()
    return {"name": name, "email": email, "password": payload["password"], "phone": phone}


def validate_login(payload: Any) -> tuple[str, str]:
    payload = require_json_object(payload)
    errors = FieldErrors()
    email = _check_email(errors, payload.get("email"))
    password = payload.get("password")
    if not isinstance(password, str) or not password:
        errors.add("password", "Password is required")
    errors.raise_if_any()
    return email, password


def validate_profile_patch(payload: Any) -> dict:
    """Only name and phone are user-editable."""
    payload = require_json_object(payload)
    errors = FieldErrors()
    patch: dict = {}
    if "name" in payload:
        patch["name"] = _check_name(errors, payload.get("name"), required=True)
    if "phone" in payload:
        patch["phone"] = _check_phone(errors, payload.get("phone"))
    errors.raise_if_any()
    return patch


def validate_new_password(value: Any, field: str = "password") -> str:
    problem = password_problem(value)
    if problem:
        raise ValidationError(problem, field=field)
    return value


# =============================================================================
# Products (column metadata driven, plus catalog rules)
# =============================================================================

@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = dc_field(default_factory=set)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    return {c.key: c for c in model.__mapper__.columns}


def _coerce_column_value(col, value: Any):
    coltype = col.type
    if value is None:
        return None
    if isinstance(coltype, Boolean):
        return coerce_bool(value)
    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)
    if isinstance(coltype, Float):
        return coerce_float(value, col.key)
    if isinstance(coltype, DateTime):
        return coerce_datetime(value, col.key)
    if isinstance(coltype, (String, Text)):
        return str(value).strip()
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: Any,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable column fields.

    Keys that are writable but not columns (images, tags) are left to the caller.
    """
    payload = require_json_object(payload)

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                errors=[{"field": f, "message": f"{f} is required"} for f in missing],
            )

    cols = _columns_by_key(model)
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}", field=k)

    patch: dict = {}
    for k, raw in payload.items():
        col = cols.get(k)
        if col is None:
            continue

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null", field=k)
            patch[k] = None
            continue

        val = _coerce_column_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank", field=k)

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}", field=k)

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict, *, categories: tuple[str, ...]) -> None:
    """
    Catalog rules that are not captured by SQLAlchemy metadata alone.
    """
    errors = FieldErrors()

    if "sku" in patch and patch["sku"] is not None:
        patch["sku"] = patch["sku"].upper()
        if not SKU_RE.match(patch["sku"]):
            errors.add("sku", "SKU can only contain uppercase letters, numbers, hyphens, and underscores")

    if "slug" in patch and patch["slug"]:
        patch["slug"] = patch["slug"].lower()
        if not SLUG_RE.match(patch["slug"]):
            errors.add("slug", "Slug can only contain lowercase letters, numbers, and hyphens")

    if "name" in patch and patch["name"] is not None and len(patch["name"]) < 2:
        errors.add("name", "Product name must be at least 2 characters")

    if "description" in patch and patch["description"] is not None:
        if len(patch["description"]) < 10:
            errors.add("description", "Description must be at least 10 characters")
        elif len(patch["description"]) > 2000:
            errors.add("description", "Description cannot exceed 2000 characters")

    for key in ("price_cents", "original_price_cents"):
        if key in patch and patch[key] is not None:
            if patch[key] < 0:
                errors.add(key, f"{key} must be >= 0")
            elif patch[key] > MAX_PRICE_CENTS:
                errors.add(key, f"{key} cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")

    if "category" in patch and patch["category"] is not None:
        patch["category"] = patch["category"].lower()
        if patch["category"] not in categories:
            errors.add("category", f"category must be one of: {', '.join(categories)}")

    for key in ("inventory_quantity", "low_stock_threshold"):
        if key in patch and patch[key] is not None and patch[key] < 0:
            errors.add(key, f"{key} cannot be negative")

    if patch.get("rating_average") is not None:
        if not 0 <= patch["rating_average"] <= 5:
            errors.add("rating_average", "Rating must be between 0 and 5")
        else:
            patch["rating_average"] = round(patch["rating_average"], 2)
    if patch.get("rating_count") is not None and patch["rating_count"] < 0:
        errors.add("rating_count", "rating_count cannot be negative")

    starts, ends = patch.get("sale_starts_at"), patch.get("sale_ends_at")
    if starts and ends and ends < starts:
        errors.add("sale_ends_at", "sale_ends_at must be after sale_starts_at")

    errors.raise_if_any()


def validate_images(value: Any) -> list[dict]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError("images must be a list", field="images")
    errors = FieldErrors()
    images: list[dict] = []
    for idx, raw in enumerate(value):
        if not isinstance(raw, dict):
            errors.add(f"images[{idx}]", "Image must be an object")
            continue
        url = str(raw.get("url") or "").strip()
        alt = str(raw.get("alt") or "").strip()
        if not url or not IMAGE_URL_RE.match(url):
            errors.add(f"images[{idx}].url", "Image URL must be a valid http(s) URL or image data URL")
        if not alt:
            errors.add(f"images[{idx}].alt", "Image alt text is required")
        elif len(alt) > 100:
            errors.add(f"images[{idx}].alt", "Alt text cannot exceed 100 characters")
        images.append({"url": url, "alt": alt, "is_primary": coerce_bool(raw.get("is_primary", False))})
    errors.raise_if_any()
    return images


def validate_tags(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError("tags must be a list", field="tags")
    tags: list[str] = []
    for raw in value:
        tag = str(raw or "").strip().lower()
        if not tag:
            continue
        if len(tag) > 30:
            raise ValidationError("Tag cannot exceed 30 characters", field="tags")
        if tag not in tags:
            tags.append(tag)
    return tags


def _check_measure(errors: FieldErrors, field: str, value: Any) -> float | None:
    if value is None:
        return None
    try:
        number = coerce_float(value, field)
    except ValidationError as exc:
        errors.add(field, exc.message)
        return None
    if number < 0:
        errors.add(field, f"{field} cannot be negative")
    return number


def _check_choice(errors: FieldErrors, field: str, value: Any, choices: tuple[str, ...], default: str) -> str:
    choice = str(value).strip().lower() if value is not None else default
    if choice not in choices:
        errors.add(field, f"{field} must be one of: {', '.join(choices)}")
    return choice


def _check_choice_list(errors: FieldErrors, field: str, value: Any, choices: tuple[str, ...]) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        errors.add(field, f"{field} must be a list")
        return []
    picked: list[str] = []
    for raw in value:
        choice = str(raw or "").strip().lower()
        if choice not in choices:
            errors.add(field, f"{field} entries must be one of: {', '.join(choices)}")
        elif choice not in picked:
            picked.append(choice)
    return picked


def validate_specifications(
    value: Any,
    *,
    weight_units: tuple[str, ...],
    dimension_units: tuple[str, ...],
    skin_types: tuple[str, ...],
    concerns: tuple[str, ...],
) -> dict | None:
    """
    Normalize the product specifications object.

    Shape: weight {value, unit}, dimensions {length, width, height, unit},
    ingredients [str], skin_type [enum], concerns [enum]. Units default to
    ml and cm. None clears the specifications.
    """
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValidationError("specifications must be an object", field="specifications")

    errors = FieldErrors()
    weight = value.get("weight") or {}
    dimensions = value.get("dimensions") or {}
    if not isinstance(weight, dict):
        errors.add("specifications.weight", "weight must be an object")
        weight = {}
    if not isinstance(dimensions, dict):
        errors.add("specifications.dimensions", "dimensions must be an object")
        dimensions = {}

    ingredients: list[str] = []
    raw_ingredients = value.get("ingredients")
    if raw_ingredients is not None and not isinstance(raw_ingredients, list):
        errors.add("specifications.ingredients", "ingredients must be a list")
    for raw in raw_ingredients if isinstance(raw_ingredients, list) else []:
        ingredient = str(raw or "").strip()
        if not ingredient:
            continue
        if len(ingredient) > 100:
            errors.add("specifications.ingredients", "Ingredient cannot exceed 100 characters")
        ingredients.append(ingredient)

    specifications = {
        "weight": {
            "value": _check_measure(errors, "specifications.weight.value", weight.get("value")),
            "unit": _check_choice(errors, "specifications.weight.unit", weight.get("unit"), weight_units, "ml"),
        },
        "dimensions": {
            "length": _check_measure(errors, "specifications.dimensions.length", dimensions.get("length")),
            "width": _check_measure(errors, "specifications.dimensions.width", dimensions.get("width")),
            "height": _check_measure(errors, "specifications.dimensions.height", dimensions.get("height")),
            "unit": _check_choice(errors, "specifications.dimensions.unit", dimensions.get("unit"),
                                  dimension_units, "cm"),
        },
        "ingredients": ingredients,
        "skin_type": _check_choice_list(errors, "specifications.skin_type", value.get("skin_type"), skin_types),
        "concerns": _check_choice_list(errors, "specifications.concerns", value.get("concerns"), concerns),
    }
    errors.raise_if_any()
    return specifications


# =============================================================================
# Orders
# =============================================================================

ADDRESS_FIELDS = ("street", "city", "state", "zip_code", "country")
ADDRESS_MAX_LENGTHS = {"street": 200, "city": 100, "state": 100, "zip_code": 20, "country": 100}


def _check_address(errors: FieldErrors, prefix: str, value: Any) -> dict | None:
    if not isinstance(value, dict):
        errors.add(prefix, f"{prefix} is required")
        return None
    address = {}
    for key in ADDRESS_FIELDS:
        text = str(value.get(key) or "").strip()
        if not text:
            errors.add(f"{prefix}.{key}", f"{key} is required")
        elif len(text) > ADDRESS_MAX_LENGTHS[key]:
            errors.add(f"{prefix}.{key}", f"{key} cannot exceed {ADDRESS_MAX_LENGTHS[key]} characters")
        address[key] = text
    return address


def _optional_cents(errors: FieldErrors, source: dict, key: str, field: str) -> int:
    raw = source.get(key)
    if raw is None:
        return 0
    try:
        return coerce_cents(raw, field)
    except ValidationError as exc:
        errors.add(field, exc.message)
        return 0


def validate_order_payload(
    payload: Any,
    *,
    shipping_methods: tuple[str, ...],
    discount_types: tuple[str, ...],
    payment_methods: tuple[str, ...],
    allow_internal_note: bool = False,
) -> dict:
    """
    Normalize an order submission. Client subtotal/total keys are ignored.

    internal_note is staff-only; customers submitting one get a field error.
    """
    payload = require_json_object(payload)
    errors = FieldErrors()

    raw_items = payload.get("items")
    items: list[dict] = []
    if not isinstance(raw_items, list) or not raw_items:
        errors.add("items", "Order must contain at least one item")
    else:
        for idx, raw in enumerate(raw_items):
            if not isinstance(raw, dict):
                errors.add(f"items[{idx}]", "Item must be an object")
                continue
            item: dict = {}
            try:
                item["product_id"] = coerce_int(raw.get("product_id"), f"items[{idx}].product_id")
            except ValidationError as exc:
                errors.add(f"items[{idx}].product_id", exc.message)
            try:
                quantity = coerce_int(raw.get("quantity"), f"items[{idx}].quantity")
                if quantity < 1:
                    errors.add(f"items[{idx}].quantity", "Quantity must be at least 1")
                elif quantity > MAX_ITEM_QUANTITY:
                    errors.add(f"items[{idx}].quantity", f"Quantity cannot exceed {MAX_ITEM_QUANTITY}")
                item["quantity"] = quantity
            except ValidationError as exc:
                errors.add(f"items[{idx}].quantity", exc.message)
            if raw.get("price_cents") is not None:
                try:
                    item["price_cents"] = coerce_cents(raw["price_cents"], f"items[{idx}].price_cents")
                except ValidationError as exc:
                    errors.add(f"items[{idx}].price_cents", exc.message)
            items.append(item)

    tax = payload.get("tax") or {}
    shipping = payload.get("shipping") or {}
    discount = payload.get("discount") or {}
    for key, section in (("tax", tax), ("shipping", shipping), ("discount", discount)):
        if not isinstance(section, dict):
            errors.add(key, f"{key} must be an object")

    tax = tax if isinstance(tax, dict) else {}
    shipping = shipping if isinstance(shipping, dict) else {}
    discount = discount if isinstance(discount, dict) else {}

    tax_rate_bps = 0
    if tax.get("rate_bps") is not None:
        try:
            tax_rate_bps = coerce_int(tax["rate_bps"], "tax.rate_bps")
            if not 0 <= tax_rate_bps <= 10_000:
                errors.add("tax.rate_bps", "Tax rate must be between 0 and 10000 basis points")
        except ValidationError as exc:
            errors.add("tax.rate_bps", exc.message)

    shipping_method = str(shipping.get("method") or "standard").strip().lower()
    if shipping_method not in shipping_methods:
        errors.add("shipping.method", f"Shipping method must be one of: {', '.join(shipping_methods)}")

    estimated_delivery = None
    try:
        estimated_delivery = coerce_datetime(shipping.get("estimated_delivery"), "shipping.estimated_delivery")
    except ValidationError as exc:
        errors.add("shipping.estimated_delivery", exc.message)

    discount_type = discount.get("type")
    if discount_type is not None:
        discount_type = str(discount_type).strip().lower()
        if discount_type not in discount_types:
            errors.add("discount.type", f"Discount type must be one of: {', '.join(discount_types)}")
    discount_code = str(discount.get("code") or "").strip().upper() or None

    payment_method = payload.get("payment_method")
    if payment_method is not None:
        payment_method = str(payment_method).strip().lower()
        if payment_method not in payment_methods:
            errors.add("payment_method", f"Payment method must be one of: {', '.join(payment_methods)}")

    shipping_address = _check_address(errors, "shipping_address", payload.get("shipping_address"))
    billing_raw = payload.get("billing_address")
    billing_address = (
        _check_address(errors, "billing_address", billing_raw) if billing_raw is not None else shipping_address
    )

    customer = payload.get("customer") or {}
    if not isinstance(customer, dict):
        errors.add("customer", "customer must be an object")
        customer = {}
    customer_name = _check_text(errors, "customer.name", customer.get("name"), required=False, max_len=100)
    customer_email = normalize_email(customer.get("email")) or None
    if customer_email and (len(customer_email) > 254 or not EMAIL_RE.match(customer_email)):
        errors.add("customer.email", "Please provide a valid email")
    customer_phone = _check_phone(errors, customer.get("phone"), field="customer.phone")

    customer_note = _check_text(errors, "customer_note", payload.get("customer_note"), required=False, max_len=500)
    internal_note = None
    if allow_internal_note:
        internal_note = _check_text(errors, "internal_note", payload.get("internal_note"), required=False, max_len=1000)
    elif payload.get("internal_note") is not None:
        errors.add("internal_note", "internal_note can only be set by an administrator")

    tax_amount = _optional_cents(errors, tax, "amount_cents", "tax.amount_cents")
    shipping_cost = _optional_cents(errors, shipping, "cost_cents", "shipping.cost_cents")
    discount_amount = _optional_cents(errors, discount, "amount_cents", "discount.amount_cents")

    errors.raise_if_any()

    return {
        "items": items,
        "tax_amount_cents": tax_amount,
        "tax_rate_bps": tax_rate_bps,
        "shipping_cost_cents": shipping_cost,
        "shipping_method": shipping_method,
        "estimated_delivery_at": estimated_delivery,
        "discount_amount_cents": discount_amount,
        "discount_code": discount_code,
        "discount_type": discount_type,
        "payment_method": payment_method,
        "shipping_address": shipping_address,
        "billing_address": billing_address,
        "customer": {
            "name": customer_name,
            "email": customer_email,
            "phone": customer_phone,
        },
        "customer_note": customer_note,
        "internal_note": internal_note,
    }


# =============================================================================
# Contact form
# =============================================================================

def validate_contact(payload: Any) -> dict:
    payload = require_json_object(payload)
    errors = FieldErrors()
    name = _check_text(errors, "name", payload.get("name"), required=True, min_len=2, max_len=100)
    email = _check_email(errors, payload.get("email"))
    message = _check_text(errors, "message", payload.get("message"), required=True, min_len=10, max_len=1000)
    errors.raise_if_any()
    return {"name": name, "email": email, "message": message}


# =============================================================================
# Back-in-stock subscriptions
# =============================================================================

def validate_subscription_email(value: Any) -> str | None:
    """Optional notification address; omitted means the account email."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    errors = FieldErrors()
    email = _check_email(errors, value)
    if errors.errors:
        raise ValidationError("Please provide a valid email", field="email")
    return email
