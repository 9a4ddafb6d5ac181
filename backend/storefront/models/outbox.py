from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


EMAIL_PENDING = "PENDING"
EMAIL_SENT = "SENT"
EMAIL_DEAD = "DEAD"


class EmailMessage(db.Model):
    """
    Transactional email outbox.

    Rows are written after the business transaction commits and are delivered
    by the outbox worker (or inline). Failed sends are retried with backoff and
    parked as DEAD after the configured number of attempts.
    """
    __tablename__ = "email_outbox"
    __table_args__ = (
        db.Index("ix_email_outbox_status_due", "status", "next_attempt_at"),
        db.Index("ix_email_outbox_order", "order_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    kind = db.Column(db.String(48), nullable=False)
    recipient = db.Column(db.String(254), nullable=False)
    subject = db.Column(db.String(255), nullable=False)
    body = db.Column(db.Text, nullable=False)
    reply_to = db.Column(db.String(254), nullable=True)

    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=EMAIL_PENDING)
    attempts = db.Column(db.Integer, nullable=False, default=0)
    last_error = db.Column(db.Text, nullable=True)
    next_attempt_at = db.Column(db.DateTime(timezone=True), nullable=True)
    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    transport = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship(
        "Order",
        backref=db.backref("email_messages", lazy="selectin", order_by="EmailMessage.id"),
    )

    def to_log_entry(self) -> dict:
        return {
            "type": self.kind,
            "status": self.status,
            "sent_at": to_utc_z(self.sent_at),
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "recipient": self.recipient,
            "subject": self.subject,
            "order_id": self.order_id,
            "status": self.status,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "next_attempt_at": to_utc_z(self.next_attempt_at),
            "sent_at": to_utc_z(self.sent_at),
            "transport": self.transport,
            "created_at": to_utc_z(self.created_at),
        }
