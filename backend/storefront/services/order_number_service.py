# Overview: Atomic per-day order number allocation.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import OrderSequence
from ..time_utils import to_local_time, utcnow


SEQUENCE_PAD = 4


def day_key_for(moment: datetime, tz_name: str) -> str:
    """YYMMDD of the store-local calendar day containing `moment` (UTC)."""
    return to_local_time(moment, tz_name).strftime("%y%m%d")


def format_order_number(day_key: str, sequence: int) -> str:
    # Past 9999 the sequence simply grows a fifth digit.
    return f"{day_key}{sequence:0{SEQUENCE_PAD}d}"


def _claim(day_key: str) -> int | None:
    stmt = (
        update(OrderSequence)
        .where(OrderSequence.day_key == day_key)
        .values(next_number=OrderSequence.next_number + 1)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    current = (
        db.session.query(OrderSequence.next_number)
        .filter_by(day_key=day_key)
        .scalar()
    )
    return current - 1


def next_order_number(now: datetime | None = None) -> str:
    """
    Allocate the next order number for the calendar day of `now`.

    The counter row is incremented with a single UPDATE so two concurrent
    checkouts can never read the same value. The first order of a day inserts
    the row; losing that insert race falls back to the UPDATE path.

    Runs inside the caller's transaction: the number is only consumed if the
    order commits, and orders.order_number is unique regardless. Call it before
    staging other changes; a lost insert race rolls the session back.
    """
    moment = now or utcnow()
    day_key = day_key_for(moment, current_app.config.get("STORE_TIMEZONE", "UTC"))

    sequence = _claim(day_key)
    if sequence is None:
        db.session.add(OrderSequence(day_key=day_key, next_number=2))
        try:
            db.session.flush()
            sequence = 1
        except IntegrityError:
            db.session.rollback()
            sequence = _claim(day_key)
            if sequence is None:
                raise

    return format_order_number(day_key, sequence)
