# Overview: Flask API routes for orders; checkout, owner/admin reads, and admin transitions.

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth, require_role
from ..errors import ApiError, ValidationError
from ..models.orders import DISCOUNT_TYPES, PAYMENT_METHODS, SHIPPING_METHODS
from ..models.users import ROLE_ADMIN, ROLE_USER
from ..responses import failure, from_error, success
from ..services import auth_service, order_service
from ..services.order_service import OrderListFilters
from ..validation import coerce_datetime, coerce_int, require_json_object, validate_order_payload


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _validated_order_payload(*, allow_internal_note: bool = False) -> dict:
    return validate_order_payload(
        request.get_json(silent=True),
        shipping_methods=tuple(SHIPPING_METHODS),
        discount_types=DISCOUNT_TYPES,
        payment_methods=PAYMENT_METHODS,
        allow_internal_note=allow_internal_note,
    )


def _arg_int(name: str) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return coerce_int(raw, name)


@orders_bp.post("")
@require_auth
@require_role(ROLE_USER)
def create_order_route():
    try:
        data = _validated_order_payload()
        order = order_service.create_order(g.current_user, data)
        return success("Order created successfully", {"order": order.to_dict()}, 201)

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return failure("Internal server error", 500)


@orders_bp.post("/user/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
def create_order_for_user_route(user_id: int):
    """Admin places an order on behalf of an active customer."""
    try:
        target = auth_service.get_active_user(user_id)
        data = _validated_order_payload(allow_internal_note=True)
        order = order_service.create_order(target, data, actor=g.current_user)
        return success("Order created successfully", {"order": order.to_dict(include_internal=True)}, 201)

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to create order for user")
        return failure("Internal server error", 500)


@orders_bp.get("/mine")
@require_auth
def my_orders_route():
    try:
        result = order_service.list_orders_for_user(
            g.current_user, page=_arg_int("page"), limit=_arg_int("limit")
        )
        return success("Orders retrieved successfully", result)

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to list user orders")
        return failure("Internal server error", 500)


@orders_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_orders_route():
    """
    Query params: status, user_id, start_date, end_date (ISO-8601),
    page, limit (default 20, max 100).
    """
    try:
        filters = OrderListFilters(
            status=(request.args.get("status") or "").strip() or None,
            user_id=_arg_int("user_id"),
            start_date=coerce_datetime(request.args.get("start_date") or None, "start_date"),
            end_date=coerce_datetime(request.args.get("end_date") or None, "end_date"),
        )
        result = order_service.list_orders(filters, page=_arg_int("page"), limit=_arg_int("limit"))
        return success("Orders retrieved successfully", result)

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return failure("Internal server error", 500)


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        order = order_service.get_order_for_viewer(order_id, g.current_user)
        return success("Order retrieved successfully", {
            "order": order.to_dict(include_internal=g.current_user.is_admin)
        })

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to get order")
        return failure("Internal server error", 500)


@orders_bp.put("/<int:order_id>/status")
@require_auth
@require_role(ROLE_ADMIN)
def update_status_route(order_id: int):
    try:
        payload = require_json_object(request.get_json(silent=True))
        status = (payload.get("status") or "").strip().lower()
        if not status:
            raise ValidationError("Status is required", field="status")
        order = order_service.get_order(order_id)
        order = order_service.update_status(order, status, payload.get("note"), g.current_user)
        return success("Order status updated successfully", {"order": order.to_dict(include_internal=True)})

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return failure("Internal server error", 500)


@orders_bp.post("/<int:order_id>/tracking")
@require_auth
@require_role(ROLE_ADMIN)
def add_tracking_route(order_id: int):
    try:
        payload = require_json_object(request.get_json(silent=True))
        order = order_service.get_order(order_id)
        order = order_service.add_tracking(
            order,
            carrier=payload.get("carrier"),
            tracking_number=payload.get("tracking_number"),
            tracking_url=payload.get("tracking_url"),
            actor=g.current_user,
        )
        return success("Tracking information added successfully", {"order": order.to_dict(include_internal=True)})

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to add tracking")
        return failure("Internal server error", 500)


@orders_bp.post("/<int:order_id>/payment")
@require_auth
@require_role(ROLE_ADMIN)
def process_payment_route(order_id: int):
    try:
        payload = require_json_object(request.get_json(silent=True))
        method = payload.get("payment_method")
        order = order_service.get_order(order_id)
        order = order_service.process_payment(
            order,
            transaction_id=payload.get("transaction_id"),
            method=method.strip().lower() if isinstance(method, str) and method.strip() else None,
            actor=g.current_user,
        )
        return success("Payment processed successfully", {"order": order.to_dict(include_internal=True)})

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to process payment")
        return failure("Internal server error", 500)


@orders_bp.post("/<int:order_id>/delivery-instructions")
@require_auth
@require_role(ROLE_ADMIN)
def delivery_instructions_route(order_id: int):
    try:
        payload = require_json_object(request.get_json(silent=True))
        order = order_service.get_order(order_id)
        message_ids = order_service.send_delivery_instructions(order, payload.get("instructions"))
        return success("Delivery instructions sent successfully", {
            "order_id": order.id,
            "queued": len(message_ids),
        })

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to send delivery instructions")
        return failure("Internal server error", 500)
