# Overview: Back-in-stock subscriptions; subscribe/cancel and the bulk fan-out when stock returns.

from __future__ import annotations

from ..errors import NotFoundError
from ..extensions import db
from ..models import Product, ProductNotification, User
from ..time_utils import utcnow
from ..validation import normalize_email
from . import email_service, outbox_service


def subscribe(user: User, product_id: int, email: str | None = None) -> ProductNotification:
    """
    Upsert the (user, product) subscription to active and un-notified.

    Stock checks belong to the caller.
    """
    email = normalize_email(email) or user.email
    subscription = (
        db.session.query(ProductNotification)
        .filter_by(user_id=user.id, product_id=product_id)
        .first()
    )
    if subscription is None:
        subscription = ProductNotification(user_id=user.id, product_id=product_id, email=email)
        db.session.add(subscription)
    subscription.email = email
    subscription.is_active = True
    subscription.notified_at = None
    db.session.commit()
    return subscription


def cancel(user: User, product_id: int) -> ProductNotification:
    subscription = (
        db.session.query(ProductNotification)
        .filter_by(user_id=user.id, product_id=product_id, is_active=True)
        .first()
    )
    if subscription is None:
        raise NotFoundError("Notification not found")
    subscription.is_active = False
    db.session.commit()
    return subscription


def list_for_user(user: User) -> list[ProductNotification]:
    return (
        db.session.query(ProductNotification)
        .filter_by(user_id=user.id, is_active=True)
        .order_by(ProductNotification.created_at.desc(), ProductNotification.id.desc())
        .all()
    )


def list_for_product(product_id: int, include_inactive: bool = False) -> list[ProductNotification]:
    query = db.session.query(ProductNotification).filter_by(product_id=product_id)
    if not include_inactive:
        query = query.filter_by(is_active=True)
    return query.order_by(ProductNotification.id.asc()).all()


def trigger_for_product(product_id: int) -> int:
    """
    Notify every active, un-notified subscriber of `product_id`.

    One email per subscriber; a failed send does not stop the others. Every
    subscription is then marked notified and inactive whatever the send
    outcome. Returns the number of subscribers notified.
    """
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")

    subscriptions = (
        db.session.query(ProductNotification)
        .filter(
            ProductNotification.product_id == product_id,
            ProductNotification.is_active.is_(True),
            ProductNotification.notified_at.is_(None),
        )
        .order_by(ProductNotification.id.asc())
        .all()
    )
    if not subscriptions:
        return 0

    messages = []
    for subscription in subscriptions:
        recipient_name = subscription.user.name if subscription.user else None
        subject, body = email_service.product_available_email(product, recipient_name)
        messages.append({
            "kind": email_service.KIND_PRODUCT_AVAILABLE,
            "recipient": subscription.email,
            "subject": subject,
            "body": body,
        })

    now = utcnow()
    for subscription in subscriptions:
        subscription.notified_at = now
        subscription.is_active = False
    db.session.commit()

    outbox_service.publish(messages)
    return len(subscriptions)
