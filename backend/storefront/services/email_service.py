# Overview: Email transports, primary/fallback dispatch, and plain-text message builders.

"""
Email Dispatch

A message is attempted on the primary transport first. On any failure the
fallback transport (if configured) is tried. When both fail the dispatcher
raises EmailDeliveryError; the outbox worker records that as a failed attempt.

Transports:
- SmtpTransport: smtplib, optional implicit SSL or STARTTLS, optional login
- LogTransport: logs the message; used when no SMTP server is configured
- MemoryTransport: keeps sent messages in a list (development and tests)
"""

from __future__ import annotations

import logging
import smtplib
import threading
from dataclasses import dataclass
from email.message import EmailMessage as MimeMessage
from email.utils import formataddr, make_msgid

from flask import current_app

from ..time_utils import to_utc_z


logger = logging.getLogger(__name__)


KIND_WELCOME = "welcome"
KIND_EMAIL_VERIFICATION = "email-verification"
KIND_PASSWORD_RESET = "password-reset"
KIND_ORDER_CONFIRMATION = "order-confirmation"
KIND_STATUS_UPDATE = "status-update"
KIND_DELIVERY_INSTRUCTIONS = "delivery-instructions"
KIND_PRODUCT_AVAILABLE = "product-availability"
KIND_CONTACT = "contact"
KIND_CONTACT_REPLY = "contact-auto-reply"


class EmailDeliveryError(Exception):
    """Raised when neither the primary nor the fallback transport delivered."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class OutgoingEmail:
    recipient: str
    subject: str
    body: str
    sender: str
    reply_to: str | None = None


class SmtpTransport:
    def __init__(self, name: str, *, host: str, port: int, username: str | None = None,
                 password: str | None = None, use_ssl: bool = False, use_tls: bool = True,
                 timeout: int = 10):
        self.name = name
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_ssl = use_ssl
        self.use_tls = use_tls
        self.timeout = timeout

    def _build(self, email: OutgoingEmail) -> MimeMessage:
        msg = MimeMessage()
        msg["From"] = email.sender
        msg["To"] = email.recipient
        msg["Subject"] = email.subject
        msg["Message-ID"] = make_msgid()
        if email.reply_to:
            msg["Reply-To"] = email.reply_to
        msg.set_content(email.body)
        return msg

    def send(self, email: OutgoingEmail) -> None:
        msg = self._build(email)
        if self.use_ssl:
            client = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        else:
            client = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        with client:
            if self.use_tls and not self.use_ssl:
                client.starttls()
            if self.username:
                client.login(self.username, self.password or "")
            client.send_message(msg)


class LogTransport:
    def __init__(self, name: str = "log"):
        self.name = name

    def send(self, email: OutgoingEmail) -> None:
        logger.info("Email (log only) to=%s subject=%r", email.recipient, email.subject)


class MemoryTransport:
    def __init__(self, name: str = "memory"):
        self.name = name
        self.sent: list[OutgoingEmail] = []
        # Tests set this to make the transport fail
        self.fail_with: Exception | None = None
        self._lock = threading.Lock()

    def send(self, email: OutgoingEmail) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        with self._lock:
            self.sent.append(email)

    def clear(self) -> None:
        with self._lock:
            self.sent.clear()
        self.fail_with = None


class EmailDispatcher:
    def __init__(self, primary, fallback=None):
        self.primary = primary
        self.fallback = fallback

    def send(self, email: OutgoingEmail) -> str:
        """Deliver `email`; returns the name of the transport that accepted it."""
        try:
            self.primary.send(email)
            return self.primary.name
        except Exception as primary_exc:
            logger.warning(
                "Primary email transport %s failed for %s: %s",
                self.primary.name, email.recipient, primary_exc,
            )
            if self.fallback is None:
                raise EmailDeliveryError(
                    "Email delivery failed", {"primary": str(primary_exc)}
                ) from primary_exc

            try:
                self.fallback.send(email)
            except Exception as fallback_exc:
                logger.error(
                    "Fallback email transport %s failed for %s: %s",
                    self.fallback.name, email.recipient, fallback_exc,
                )
                raise EmailDeliveryError(
                    "Email delivery failed on primary and fallback transports",
                    {"primary": str(primary_exc), "fallback": str(fallback_exc)},
                ) from fallback_exc

            logger.info("Email to %s delivered via fallback transport %s", email.recipient, self.fallback.name)
            return self.fallback.name


def build_transport(config, prefix: str, name: str):
    """
    Build a transport from MAIL_* (prefix="MAIL_") or MAIL_FALLBACK_* settings.
    Returns None when the settings describe no usable transport.
    """
    backend = (config.get(f"{prefix}BACKEND") or "").lower()
    if backend == "memory":
        return MemoryTransport(name)
    if backend == "log":
        return LogTransport(name)
    if backend == "smtp" and config.get(f"{prefix}SERVER"):
        return SmtpTransport(
            name,
            host=config[f"{prefix}SERVER"],
            port=int(config.get(f"{prefix}PORT") or 587),
            username=config.get(f"{prefix}USERNAME"),
            password=config.get(f"{prefix}PASSWORD"),
            use_ssl=bool(config.get(f"{prefix}USE_SSL")),
            use_tls=bool(config.get(f"{prefix}USE_TLS")),
            timeout=int(config.get("MAIL_TIMEOUT_SECONDS") or 10),
        )
    return None


def init_app(app) -> EmailDispatcher:
    primary = build_transport(app.config, "MAIL_", "primary")
    fallback = build_transport(app.config, "MAIL_FALLBACK_", "fallback")
    if primary is None:
        app.logger.warning("No primary mail transport configured; emails will only be logged")
        primary = LogTransport("primary-log")
    dispatcher = EmailDispatcher(primary, fallback)
    app.extensions["email_dispatcher"] = dispatcher
    return dispatcher


def get_dispatcher(app=None) -> EmailDispatcher:
    app = app or current_app
    return app.extensions["email_dispatcher"]


def default_sender() -> str:
    return formataddr((current_app.config["APP_NAME"], current_app.config["MAIL_DEFAULT_SENDER"]))


# =============================================================================
# Message builders (plain text)
# =============================================================================

def _money(cents: int) -> str:
    return f"${cents / 100:,.2f}"


def _app_name() -> str:
    return current_app.config["APP_NAME"]


def _frontend_url(path: str) -> str:
    return current_app.config["FRONTEND_URL"].rstrip("/") + path


def welcome_email(user) -> tuple[str, str]:
    subject = f"Welcome to {_app_name()}!"
    body = (
        f"Hi {user.name},\n\n"
        f"Thanks for creating an account at {_app_name()}.\n"
        f"Browse the latest products: {_frontend_url('/products')}\n"
    )
    return subject, body


def verification_email(user, token: str) -> tuple[str, str]:
    subject = f"Verify your email - {_app_name()}"
    body = (
        f"Hi {user.name},\n\n"
        "Please confirm your email address by opening the link below.\n"
        f"{_frontend_url('/verify-email')}?token={token}\n\n"
        "The link expires in 24 hours.\n"
    )
    return subject, body


def password_reset_email(user, token: str) -> tuple[str, str]:
    subject = f"Password Reset - {_app_name()}"
    body = (
        f"Hi {user.name},\n\n"
        "We received a request to reset your password.\n"
        f"{_frontend_url('/reset-password')}?token={token}\n\n"
        "The link expires in 1 hour. If you did not ask for this, ignore this email.\n"
    )
    return subject, body


def _order_lines(order) -> str:
    lines = []
    for item in order.items:
        lines.append(
            f"  {item.quantity} x {item.product_name} ({item.product_brand}) "
            f"@ {_money(item.unit_price_cents)} = {_money(item.line_total_cents)}"
        )
    return "\n".join(lines)


def order_confirmation_email(order) -> tuple[str, str]:
    subject = f"Order Confirmation - {_app_name()}"
    body = (
        f"Hi {order.customer_name},\n\n"
        f"Thank you for your order {order.order_number}.\n\n"
        f"{_order_lines(order)}\n\n"
        f"Subtotal: {_money(order.subtotal_cents)}\n"
        f"Tax: {_money(order.tax_amount_cents)}\n"
        f"Shipping ({order.shipping_method}): {_money(order.shipping_cost_cents)}\n"
        f"Discount: -{_money(order.discount_amount_cents)}\n"
        f"Total: {_money(order.total_cents)}\n\n"
        f"Ship to: {order.shipping_street}, {order.shipping_city}, {order.shipping_state} "
        f"{order.shipping_zip_code}, {order.shipping_country}\n"
        f"Estimated delivery: {to_utc_z(order.estimated_delivery) or 'to be confirmed'}\n"
    )
    return subject, body


def status_update_email(order, note: str | None = None) -> tuple[str, str]:
    subject = f"Order Update - {order.order_number} - {_app_name()}"
    body = f"Hi {order.customer_name},\n\nYour order {order.order_number} is now {order.status}.\n"
    if note:
        body += f"\nNote: {note}\n"
    if order.tracking_number:
        body += f"\nTracking: {order.tracking_carrier or ''} {order.tracking_number}\n"
        if order.tracking_url:
            body += f"{order.tracking_url}\n"
    return subject, body


def delivery_instructions_email(order, instructions: str) -> tuple[str, str]:
    subject = f"Delivery Instructions - Order #{order.order_number} - {_app_name()}"
    body = (
        f"Hi {order.customer_name},\n\n"
        f"Here are the delivery instructions for order {order.order_number}:\n\n"
        f"{instructions}\n"
    )
    return subject, body


def product_available_email(product, recipient_name: str | None = None) -> tuple[str, str]:
    subject = f"{product.name} is now available! - {_app_name()}"
    body = (
        f"Hi {recipient_name or 'there'},\n\n"
        f"Good news: {product.name} by {product.brand} is back in stock "
        f"at {_money(product.price_cents)}.\n"
        f"{_frontend_url(f'/products/{product.id}')}\n"
    )
    return subject, body


def contact_business_email(name: str, email: str, message: str) -> tuple[str, str]:
    subject = f"New Contact Form Submission from {name}"
    body = f"Name: {name}\nEmail: {email}\n\n{message}\n"
    return subject, body


def contact_auto_reply_email(name: str) -> tuple[str, str]:
    subject = f"Thank you for contacting {_app_name()}"
    body = (
        f"Hi {name},\n\n"
        "We received your message and will get back to you within 1-2 business days.\n"
    )
    return subject, body
