# backend/storefront/routes/system.py
"""
System banner, health check, and admin email diagnostics.
"""

import time

from flask import Blueprint, current_app, request
from sqlalchemy import text

from ..decorators import require_auth, require_role
from ..extensions import db
from ..models.users import ROLE_ADMIN
from ..responses import failure, success
from ..services import email_service
from ..services.email_service import EmailDeliveryError, OutgoingEmail
from ..time_utils import to_utc_z, utcnow


system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": round(elapsed_ms, 2), "error": "Database error"}


@system_bp.get("/")
def index():
    return success(f"{current_app.config['APP_NAME']} API", {"version": "1.0.0"})


@system_bp.get("/health")
def health():
    database = check_database_health()
    body = {"database": database, "timestamp": to_utc_z(utcnow())}
    if database["status"] != "healthy":
        return failure("Service unhealthy", 503, **body)
    return success("OK", body)


# Sample messages for each kind; orders and products are not needed for a transport check
_TEST_KINDS = {
    email_service.KIND_WELCOME: lambda: (
        f"Welcome to {current_app.config['APP_NAME']}! (test)",
        "This is a test welcome email.\n",
    ),
    email_service.KIND_ORDER_CONFIRMATION: lambda: (
        f"Order Confirmation - {current_app.config['APP_NAME']} (test)",
        "This is a test order confirmation.\n",
    ),
    email_service.KIND_PASSWORD_RESET: lambda: (
        f"Password Reset - {current_app.config['APP_NAME']} (test)",
        "This is a test password reset email.\n",
    ),
    email_service.KIND_PRODUCT_AVAILABLE: lambda: (
        f"Product available - {current_app.config['APP_NAME']} (test)",
        "This is a test back-in-stock email.\n",
    ),
}


@system_bp.get("/api/email-test/config")
@require_auth
@require_role(ROLE_ADMIN)
def email_config_route():
    dispatcher = email_service.get_dispatcher()
    return success("Email configuration", {
        "primary": dispatcher.primary.name,
        "primary_type": type(dispatcher.primary).__name__,
        "fallback": dispatcher.fallback.name if dispatcher.fallback else None,
        "fallback_type": type(dispatcher.fallback).__name__ if dispatcher.fallback else None,
        "sender": current_app.config["MAIL_DEFAULT_SENDER"],
        "deliver_inline": bool(current_app.config.get("EMAIL_DELIVER_INLINE")),
    })


@system_bp.post("/api/email-test/<kind>")
@require_auth
@require_role(ROLE_ADMIN)
def email_test_route(kind: str):
    """Send a sample message straight through the dispatcher (bypasses the outbox)."""
    builder = _TEST_KINDS.get(kind)
    if builder is None:
        return failure(f"Unknown email type: {kind}", 400)
    payload = request.get_json(silent=True) or {}
    recipient = (payload.get("email") or "").strip() if isinstance(payload, dict) else ""
    if not recipient:
        return failure("Email address is required", 400, errors=[{"field": "email", "message": "Email address is required"}])

    subject, body = builder()
    try:
        transport = email_service.get_dispatcher().send(OutgoingEmail(
            recipient=recipient, subject=subject, body=body, sender=email_service.default_sender(),
        ))
    except EmailDeliveryError as e:
        return failure("Test email failed", 502, details=e.details)
    return success("Test email sent", {"transport": transport})
