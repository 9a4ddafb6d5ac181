# Overview: Flask API routes for back-in-stock subscriptions and the admin fan-out trigger.

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth, require_role
from ..errors import ApiError, NotFoundError, ValidationError
from ..models.users import ROLE_ADMIN
from ..responses import failure, from_error, success
from ..services import notification_service, products_service
from ..validation import coerce_bool, coerce_int, require_json_object, validate_subscription_email


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.post("/product-availability")
@require_auth
def subscribe_route():
    """Ask to be emailed when an out-of-stock product comes back."""
    try:
        payload = require_json_object(request.get_json(silent=True))
        if payload.get("product_id") is None:
            raise ValidationError("Product ID is required", field="product_id")
        product_id = coerce_int(payload.get("product_id"), "product_id")
        email = validate_subscription_email(payload.get("email"))

        product = products_service.get_any_product(product_id)
        if product is None:
            raise NotFoundError("Product not found")
        if product.inventory_quantity > 0:
            raise ValidationError("Product is currently in stock", field="product_id")

        subscription = notification_service.subscribe(g.current_user, product.id, email)
        return success(
            "You will be notified when this product becomes available",
            {"notification": subscription.to_dict(include_product=True)},
        )

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to create product notification")
        return failure("Internal server error", 500)


@notifications_bp.delete("/product-availability/<int:product_id>")
@require_auth
def cancel_route(product_id: int):
    try:
        notification_service.cancel(g.current_user, product_id)
        return success("Notification cancelled successfully")

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to cancel product notification")
        return failure("Internal server error", 500)


@notifications_bp.get("/my-notifications")
@require_auth
def my_notifications_route():
    try:
        subscriptions = notification_service.list_for_user(g.current_user)
        return success("Notifications retrieved successfully", {
            "notifications": [s.to_dict(include_product=True) for s in subscriptions],
        })
    except Exception:
        current_app.logger.exception("Failed to list product notifications")
        return failure("Internal server error", 500)


@notifications_bp.post("/trigger-availability/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def trigger_route(product_id: int):
    try:
        sent = notification_service.trigger_for_product(product_id)
        return success(f"Sent {sent} notifications", {"notifications_sent": sent})

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to trigger product notifications")
        return failure("Internal server error", 500)


@notifications_bp.get("/product/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def product_subscribers_route(product_id: int):
    try:
        include_inactive = coerce_bool(request.args.get("include_inactive", "false"))
        subscriptions = notification_service.list_for_product(product_id, include_inactive)
        return success("Notifications retrieved successfully", {
            "notifications": [s.to_dict() for s in subscriptions],
            "count": len(subscriptions),
        })
    except Exception:
        current_app.logger.exception("Failed to list product subscribers")
        return failure("Internal server error", 500)
