from __future__ import annotations

from ..extensions import db


class RateLimitHit(db.Model):
    """
    One request counted against a rate-limit key.

    Backs the shared (multi-process) rate limiter. Expired rows are purged
    lazily on check and by `flask maintenance purge-rate-limits`.
    """
    __tablename__ = "rate_limit_hits"
    __table_args__ = (
        db.Index("ix_rate_limit_hits_key_occurred", "key", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(320), nullable=False)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
