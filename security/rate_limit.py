import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.rate_limit_window import RateLimitWindow
from utils.clock import utcnow

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_WINDOW_MINUTES = 15
BLOCK_MINUTES = 60


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    attempts_remaining: int
    reset_time: datetime
    blocked: bool
    blocked_until: Optional[datetime] = None


def _limits(max_attempts, window_minutes) -> tuple[int, int, int]:
    cfg = current_app.config
    if max_attempts is None:
        max_attempts = cfg.get("RATE_LIMIT_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)
    if window_minutes is None:
        window_minutes = cfg.get("RATE_LIMIT_WINDOW_MINUTES", DEFAULT_WINDOW_MINUTES)
    block_minutes = cfg.get("RATE_LIMIT_BLOCK_MINUTES", BLOCK_MINUTES)
    return int(max_attempts), int(window_minutes), int(block_minutes)


def check(identifier: str, action: str, max_attempts=None, window_minutes=None, now=None) -> RateLimitResult:
    """
    Count one attempt for (identifier, action) and say whether it may proceed.

    Overflowing the window blocks the key for a fixed period regardless of
    the window size. If the store cannot be reached the attempt is allowed.
    """
    now = now or utcnow()
    max_attempts, window_minutes, block_minutes = _limits(max_attempts, window_minutes)
    window = timedelta(minutes=window_minutes)

    try:
        row = RateLimitWindow.query.filter_by(identifier=identifier, action=action).first()

        if row and row.blocked_until and row.blocked_until > now:
            return RateLimitResult(
                allowed=False,
                attempts_remaining=0,
                reset_time=row.blocked_until,
                blocked=True,
                blocked_until=row.blocked_until,
            )

        block_lapsed = row is not None and row.blocked_until is not None
        if row is None or block_lapsed or now - row.window_start > window:
            if row is None:
                row = RateLimitWindow(identifier=identifier, action=action)
                db.session.add(row)
            row.window_start = now
            row.attempts = 1
            row.blocked_until = None
            db.session.commit()
            return RateLimitResult(
                allowed=True,
                attempts_remaining=max_attempts - 1,
                reset_time=now + window,
                blocked=False,
            )

        # Plain read-modify-write; losing a race only under-counts by one.
        row.attempts += 1
        if row.attempts > max_attempts:
            row.blocked_until = now + timedelta(minutes=block_minutes)
            db.session.commit()
            return RateLimitResult(
                allowed=False,
                attempts_remaining=0,
                reset_time=row.blocked_until,
                blocked=True,
                blocked_until=row.blocked_until,
            )

        db.session.commit()
        return RateLimitResult(
            allowed=True,
            attempts_remaining=max_attempts - row.attempts,
            reset_time=row.window_start + window,
            blocked=False,
        )
    except SQLAlchemyError:
        db.session.rollback()
        logger.warning("Rate limit store unavailable for %s/%s, allowing", identifier, action, exc_info=True)
        return RateLimitResult(
            allowed=True,
            attempts_remaining=max_attempts - 1,
            reset_time=now + window,
            blocked=False,
        )


def reset(identifier: str, action: str) -> bool:
    """Forget the window for (identifier, action). Returns True if one existed."""
    deleted = RateLimitWindow.query.filter_by(identifier=identifier, action=action).delete()
    db.session.commit()
    return deleted > 0
