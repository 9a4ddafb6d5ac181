# Overview: Service-layer operations for orders; checkout, totals, status transitions and listings.

"""
Order Service

Order creation:
- every item must reference an existing, active product
- unit price is the submitted price_cents when present, else the live price
- product display fields are snapshotted onto the line item
- subtotal and total are always recomputed here; client totals are ignored
- order_number comes from the atomic per-day sequence
- the order starts 'pending' with one history entry

Emails (confirmation, status updates, delivery instructions) are published to
the outbox after the order commits and never affect the outcome.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..errors import ApiError, AuthorizationError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Order, OrderItem, OrderStatusHistory, Product, User
from ..models.orders import ORDER_STATUSES, PAYMENT_METHODS
from ..pagination import clamp_page, paginate_query
from ..time_utils import utcnow
from ..validation import MAX_PRICE_CENTS
from . import email_service, outbox_service
from .concurrency import commit_with_retry, run_with_retry
from .order_number_service import next_order_number


class ProductUnavailable(ApiError):
    """A line item references a missing or deactivated product."""
    status_code = 400


@dataclass(frozen=True)
class OrderListFilters:
    status: str | None = None
    user_id: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


def compute_total(subtotal_cents: int, tax_cents: int, shipping_cents: int, discount_cents: int) -> int:
    return max(0, subtotal_cents + tax_cents + shipping_cents - discount_cents)


def _resolve_items(raw_items: list[dict]) -> list[OrderItem]:
    items: list[OrderItem] = []
    for raw in raw_items:
        product = db.session.get(Product, raw["product_id"])
        if product is None or not product.is_active:
            raise ProductUnavailable(
                f"Product {raw['product_id']} not found or inactive",
                details={"product_id": raw["product_id"]},
            )
        primary = product.primary_image
        unit_price = raw.get("price_cents")
        items.append(OrderItem(
            product_id=product.id,
            quantity=raw["quantity"],
            unit_price_cents=unit_price if unit_price is not None else product.price_cents,
            product_name=product.name,
            product_sku=product.sku,
            product_brand=product.brand,
            product_image_url=primary.url if primary else None,
            product_image_alt=primary.alt if primary else None,
        ))
    return items


def _append_history(order: Order, status: str, note: str | None, actor_id: int | None, now: datetime) -> None:
    order.status_history.append(OrderStatusHistory(
        status=status,
        note=note,
        actor_user_id=actor_id,
        occurred_at=now,
    ))


def _publish_order_email(order: Order, kind: str, subject_body: tuple[str, str]) -> None:
    subject, body = subject_body
    outbox_service.publish([{
        "kind": kind,
        "recipient": order.customer_email,
        "subject": subject,
        "body": body,
        "order_id": order.id,
    }])


def create_order(user: User, data: dict, *, actor: User | None = None, now: datetime | None = None) -> Order:
    """
    Build, price and persist an order for `user` from a validated payload.

    `actor` is who placed it (the user, or an admin ordering on their behalf).
    """
    actor = actor or user
    now = now or utcnow()

    def _op() -> Order:
        items = _resolve_items(data["items"])
        subtotal = sum(item.unit_price_cents * item.quantity for item in items)
        total = compute_total(
            subtotal,
            data.get("tax_amount_cents", 0),
            data.get("shipping_cost_cents", 0),
            data.get("discount_amount_cents", 0),
        )
        if max(subtotal, total) > MAX_PRICE_CENTS:
            raise ValidationError(f"Order total cannot exceed {MAX_PRICE_CENTS} cents", field="items")

        # Items are still transient here, so a sequence-insert rollback cannot drop them
        order_number = next_order_number(now)

        customer = data.get("customer") or {}
        shipping_address = data["shipping_address"]
        billing_address = data.get("billing_address") or shipping_address

        order = Order(
            order_number=order_number,
            user_id=user.id,
            customer_name=customer.get("name") or user.name,
            customer_email=customer.get("email") or user.email,
            customer_phone=customer.get("phone") or user.phone,
            subtotal_cents=subtotal,
            tax_amount_cents=data.get("tax_amount_cents", 0),
            tax_rate_bps=data.get("tax_rate_bps", 0),
            shipping_cost_cents=data.get("shipping_cost_cents", 0),
            shipping_method=data.get("shipping_method") or "standard",
            estimated_delivery_at=data.get("estimated_delivery_at"),
            discount_amount_cents=data.get("discount_amount_cents", 0),
            discount_code=data.get("discount_code"),
            discount_type=data.get("discount_type"),
            total_cents=total,
            status="pending",
            payment_method=data.get("payment_method"),
            payment_status="pending",
            customer_note=data.get("customer_note"),
            internal_note=data.get("internal_note"),
            created_at=now,
        )
        for prefix, address in (("billing", billing_address), ("shipping", shipping_address)):
            for key, value in address.items():
                setattr(order, f"{prefix}_{key}", value)
        order.items = items
        _append_history(order, "pending", None, actor.id, now)

        db.session.add(order)
        db.session.commit()
        return order

    order = run_with_retry(_op)
    _publish_order_email(order, email_service.KIND_ORDER_CONFIRMATION, email_service.order_confirmation_email(order))
    return order


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order


def get_order_for_viewer(order_id: int, viewer: User) -> Order:
    """Owners and admins may read an order; anyone else gets 403."""
    order = get_order(order_id)
    if order.user_id != viewer.id and not viewer.is_admin:
        raise AuthorizationError("Access denied. You can only view your own orders.")
    return order


def update_status(order: Order, new_status: str, note: str | None = None, actor: User | None = None,
                  *, now: datetime | None = None) -> Order:
    """
    Append a history entry (always) and move the order to `new_status`.
    shipped_at / delivered_at are stamped the first time those states are reached.
    """
    if new_status not in ORDER_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(ORDER_STATUSES)}", field="status")
    now = now or utcnow()
    previous = order.status

    order.status = new_status
    _append_history(order, new_status, note, actor.id if actor else None, now)
    if new_status == "shipped" and order.shipped_at is None:
        order.shipped_at = now
    if new_status == "delivered" and order.delivered_at is None:
        order.delivered_at = now
    commit_with_retry()

    if previous != new_status:
        _publish_order_email(order, email_service.KIND_STATUS_UPDATE, email_service.status_update_email(order, note))
    return order


def add_tracking(order: Order, *, carrier: str | None, tracking_number: str,
                 tracking_url: str | None = None, actor: User | None = None) -> Order:
    if not tracking_number or not str(tracking_number).strip():
        raise ValidationError("Tracking number is required", field="tracking_number")
    order.tracking_carrier = (carrier or "").strip() or None
    order.tracking_number = str(tracking_number).strip()
    order.tracking_url = (tracking_url or "").strip() or None

    if order.status == "processing":
        return update_status(order, "shipped", "Tracking information added", actor)
    commit_with_retry()
    return order


def process_payment(order: Order, *, transaction_id: str | None, method: str | None = None,
                    actor: User | None = None) -> Order:
    if method is not None and method not in PAYMENT_METHODS:
        raise ValidationError(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}", field="payment_method")
    order.payment_status = "completed"
    order.payment_transaction_id = transaction_id
    order.paid_at = utcnow()
    if method:
        order.payment_method = method

    if order.status == "pending":
        return update_status(order, "confirmed", "Payment completed", actor)
    commit_with_retry()
    return order


def send_delivery_instructions(order: Order, instructions: str) -> list[int]:
    text = (instructions or "").strip()
    if not text:
        raise ValidationError("Delivery instructions are required", field="instructions")
    if len(text) > 2000:
        raise ValidationError("Delivery instructions cannot exceed 2000 characters", field="instructions")
    subject, body = email_service.delivery_instructions_email(order, text)
    return outbox_service.publish([{
        "kind": email_service.KIND_DELIVERY_INSTRUCTIONS,
        "recipient": order.customer_email,
        "subject": subject,
        "body": body,
        "order_id": order.id,
    }])


def _newest_first(query):
    return query.order_by(Order.created_at.desc(), Order.id.desc())


def list_orders_for_user(user: User, page: int | None = None, limit: int | None = None) -> dict:
    page, per_page = clamp_page(page, limit, default=10)
    query = _newest_first(db.session.query(Order).filter(Order.user_id == user.id))
    orders, pagination = paginate_query(query, page, per_page)
    return {"items": [o.to_dict() for o in orders], "count": len(orders), "pagination": pagination}


def list_orders(filters: OrderListFilters, page: int | None = None, limit: int | None = None) -> dict:
    if filters.status is not None and filters.status not in ORDER_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(ORDER_STATUSES)}", field="status")

    query = db.session.query(Order)
    if filters.status:
        query = query.filter(Order.status == filters.status)
    if filters.user_id:
        query = query.filter(Order.user_id == filters.user_id)
    if filters.start_date:
        query = query.filter(Order.created_at >= filters.start_date)
    if filters.end_date:
        query = query.filter(Order.created_at <= filters.end_date)

    page, per_page = clamp_page(page, limit, default=20)
    orders, pagination = paginate_query(_newest_first(query), page, per_page)
    return {
        "items": [o.to_dict(include_internal=True) for o in orders],
        "count": len(orders),
        "pagination": pagination,
    }
