# Overview: Sliding-window rate limiting behind a pluggable store (process memory or shared database).

"""
Rate Limiting

A key (scope + client IP + submitted email) may be hit at most `max_attempts`
times within `window`. Each check records a hit when allowed; entries older
than the window are purged lazily.

Stores:
- InMemoryRateLimitStore: single-process deployments; lock-protected dict
- DatabaseRateLimitStore: rate_limit_hits table, shared by every worker

The store is selected by RATE_LIMIT_STORE and kept in app.extensions.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app

from ..extensions import db
from ..models import RateLimitHit
from ..time_utils import utcnow


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after_seconds: int = 0


class InMemoryRateLimitStore:
    def __init__(self):
        self._hits: dict[str, deque] = {}
        self._lock = threading.Lock()

    def hit(self, key: str, *, max_attempts: int, window: timedelta, now: datetime) -> RateLimitDecision:
        cutoff = now - window
        with self._lock:
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= max_attempts:
                retry_after = int((hits[0] + window - now).total_seconds()) + 1
                return RateLimitDecision(False, 0, max(retry_after, 1))
            hits.append(now)
            return RateLimitDecision(True, max_attempts - len(hits))

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._hits.clear()
            else:
                self._hits.pop(key, None)

    def purge(self, *, older_than: datetime) -> int:
        removed = 0
        with self._lock:
            for key in list(self._hits):
                hits = self._hits[key]
                while hits and hits[0] <= older_than:
                    hits.popleft()
                    removed += 1
                if not hits:
                    del self._hits[key]
        return removed


class DatabaseRateLimitStore:
    """
    Shared store. Hits are committed immediately so that concurrent workers see
    them; the limit is approximate under heavy contention on a single key.
    """

    def hit(self, key: str, *, max_attempts: int, window: timedelta, now: datetime) -> RateLimitDecision:
        cutoff = now - window
        db.session.query(RateLimitHit).filter(
            RateLimitHit.key == key,
            RateLimitHit.occurred_at <= cutoff,
        ).delete(synchronize_session=False)

        recent = (
            db.session.query(RateLimitHit.occurred_at)
            .filter(RateLimitHit.key == key, RateLimitHit.occurred_at > cutoff)
            .order_by(RateLimitHit.occurred_at.asc())
            .all()
        )
        if len(recent) >= max_attempts:
            db.session.commit()
            oldest = recent[0][0].replace(tzinfo=None)
            retry_after = int((oldest + window - now).total_seconds()) + 1
            return RateLimitDecision(False, 0, max(retry_after, 1))

        db.session.add(RateLimitHit(key=key, occurred_at=now))
        db.session.commit()
        return RateLimitDecision(True, max_attempts - len(recent) - 1)

    def reset(self, key: str | None = None) -> None:
        query = db.session.query(RateLimitHit)
        if key is not None:
            query = query.filter(RateLimitHit.key == key)
        query.delete(synchronize_session=False)
        db.session.commit()

    def purge(self, *, older_than: datetime) -> int:
        removed = (
            db.session.query(RateLimitHit)
            .filter(RateLimitHit.occurred_at <= older_than)
            .delete(synchronize_session=False)
        )
        db.session.commit()
        return removed


def build_store(kind: str):
    kind = (kind or "memory").lower()
    if kind == "memory":
        return InMemoryRateLimitStore()
    if kind == "database":
        return DatabaseRateLimitStore()
    raise ValueError(f"Unknown RATE_LIMIT_STORE: {kind}")


def init_app(app):
    store = build_store(app.config.get("RATE_LIMIT_STORE", "memory"))
    app.extensions["rate_limit_store"] = store
    return store


def get_store(app=None):
    app = app or current_app
    return app.extensions["rate_limit_store"]


def make_key(scope: str, ip_address: str | None, email: str | None) -> str:
    return f"{scope}:{ip_address or 'unknown'}:{(email or '').strip().lower()}"


def check(scope: str, ip_address: str | None, email: str | None, *,
          max_attempts: int, window_seconds: int, now: datetime | None = None) -> RateLimitDecision:
    return get_store().hit(
        make_key(scope, ip_address, email),
        max_attempts=max_attempts,
        window=timedelta(seconds=window_seconds),
        now=now or utcnow(),
    )


def purge_expired(window_seconds: int) -> int:
    return get_store().purge(older_than=utcnow() - timedelta(seconds=window_seconds))
