# Overview: Transactional email outbox; enqueue after commit, deliver with retry/backoff and dead-lettering.

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import EmailMessage
from ..models.outbox import EMAIL_DEAD, EMAIL_PENDING, EMAIL_SENT
from ..time_utils import utcnow
from .email_service import OutgoingEmail, default_sender, get_dispatcher


def enqueue(*, kind: str, recipient: str, subject: str, body: str,
            order_id: int | None = None, reply_to: str | None = None) -> EmailMessage:
    """Stage a PENDING message in the current session (caller commits)."""
    message = EmailMessage(
        kind=kind,
        recipient=recipient,
        subject=subject,
        body=body,
        reply_to=reply_to,
        order_id=order_id,
        status=EMAIL_PENDING,
        attempts=0,
        next_attempt_at=utcnow(),
    )
    db.session.add(message)
    return message


def _backoff(attempts: int) -> timedelta:
    base = int(current_app.config.get("EMAIL_RETRY_BACKOFF_SECONDS", 60))
    return timedelta(seconds=base * (2 ** max(attempts - 1, 0)))


def _send_all(outgoing: list[tuple[int, OutgoingEmail]]) -> dict[int, tuple[str | None, Exception | None]]:
    """
    Send messages in parallel. One failure never aborts the others.
    Returns {message_id: (transport_name, error)}.
    """
    dispatcher = get_dispatcher()
    results: dict[int, tuple[str | None, Exception | None]] = {}
    if not outgoing:
        return results

    def _one(email: OutgoingEmail):
        try:
            return dispatcher.send(email), None
        except Exception as exc:
            return None, exc

    workers = max(1, min(int(current_app.config.get("EMAIL_MAX_WORKERS", 4)), len(outgoing)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {message_id: pool.submit(_one, email) for message_id, email in outgoing}
        for message_id, future in futures.items():
            results[message_id] = future.result()
    return results


def deliver_pending(*, ids: list[int] | None = None, batch_size: int = 50, now=None) -> dict:
    """
    Deliver due PENDING messages (optionally only `ids`).

    Success -> SENT. Failure -> attempts += 1 and rescheduled with exponential
    backoff, or DEAD once EMAIL_MAX_ATTEMPTS is reached.
    """
    now = now or utcnow()
    max_attempts = int(current_app.config.get("EMAIL_MAX_ATTEMPTS", 5))

    query = db.session.query(EmailMessage).filter(EmailMessage.status == EMAIL_PENDING)
    if ids is not None:
        if not ids:
            return {"sent": 0, "failed": 0, "dead": 0}
        query = query.filter(EmailMessage.id.in_(ids))
    else:
        query = query.filter(
            (EmailMessage.next_attempt_at.is_(None)) | (EmailMessage.next_attempt_at <= now)
        )
    messages = query.order_by(EmailMessage.id.asc()).limit(batch_size).all()

    sender = default_sender()
    outgoing = [
        (m.id, OutgoingEmail(recipient=m.recipient, subject=m.subject, body=m.body,
                             sender=sender, reply_to=m.reply_to))
        for m in messages
    ]
    results = _send_all(outgoing)

    summary = {"sent": 0, "failed": 0, "dead": 0}
    for message in messages:
        transport, error = results[message.id]
        message.attempts += 1
        if error is None:
            message.status = EMAIL_SENT
            message.sent_at = utcnow()
            message.transport = transport
            message.last_error = None
            message.next_attempt_at = None
            summary["sent"] += 1
            continue

        message.last_error = str(error)[:2000]
        if message.attempts >= max_attempts:
            message.status = EMAIL_DEAD
            message.next_attempt_at = None
            summary["dead"] += 1
            current_app.logger.error(
                "Email %s (%s to %s) moved to dead letters after %s attempts",
                message.id, message.kind, message.recipient, message.attempts,
            )
        else:
            message.next_attempt_at = now + _backoff(message.attempts)
            summary["failed"] += 1
            current_app.logger.warning(
                "Email %s (%s to %s) failed, retry scheduled: %s",
                message.id, message.kind, message.recipient, error,
            )

    db.session.commit()
    return summary


def publish(messages: list[dict]) -> list[int]:
    """
    Enqueue messages after the primary write has committed, then deliver them
    inline when EMAIL_DELIVER_INLINE is set.

    Never raises: a failure here must not affect the request that produced the
    messages. Returns the ids of the enqueued messages.
    """
    if not messages:
        return []
    try:
        rows = [enqueue(**fields) for fields in messages]
        db.session.commit()
        message_ids = [row.id for row in rows]
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to enqueue %s email(s)", len(messages))
        return []

    if current_app.config.get("EMAIL_DELIVER_INLINE"):
        try:
            deliver_pending(ids=message_ids, batch_size=len(message_ids))
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Inline email delivery failed; messages stay queued")
    return message_ids


def list_dead_letters(limit: int = 100) -> list[EmailMessage]:
    return (
        db.session.query(EmailMessage)
        .filter(EmailMessage.status == EMAIL_DEAD)
        .order_by(EmailMessage.id.asc())
        .limit(limit)
        .all()
    )


def requeue_dead_letters() -> int:
    dead = db.session.query(EmailMessage).filter(EmailMessage.status == EMAIL_DEAD).all()
    for message in dead:
        message.status = EMAIL_PENDING
        message.attempts = 0
        message.next_attempt_at = utcnow()
    db.session.commit()
    return len(dead)
