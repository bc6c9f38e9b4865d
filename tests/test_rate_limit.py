"""Tests for the per (identifier, action) sliding window throttle."""

from datetime import timedelta

from models.rate_limit_window import RateLimitWindow
from security import rate_limit
from utils.clock import utcnow

EMAIL = "a@x.com"


class TestWindow:
    def test_five_allowed_then_sixth_blocked(self, app):
        now = utcnow()
        remaining = []
        for i in range(5):
            result = rate_limit.check(EMAIL, "signup", 5, 15, now=now + timedelta(seconds=i))
            assert result.allowed is True
            assert result.blocked is False
            remaining.append(result.attempts_remaining)
        assert remaining == [4, 3, 2, 1, 0]

        sixth_at = now + timedelta(seconds=10)
        result = rate_limit.check(EMAIL, "signup", 5, 15, now=sixth_at)
        assert result.allowed is False
        assert result.blocked is True
        assert result.attempts_remaining == 0
        assert result.blocked_until == sixth_at + timedelta(minutes=60)

    def test_block_holds_regardless_of_window(self, app):
        now = utcnow()
        for _ in range(6):
            rate_limit.check(EMAIL, "signup", 5, 15, now=now)

        # well past the 15 minute window but inside the 60 minute block
        result = rate_limit.check(EMAIL, "signup", 5, 15, now=now + timedelta(minutes=45))
        assert result.allowed is False
        assert result.blocked is True
        assert result.blocked_until == now + timedelta(minutes=60)

    def test_fresh_window_after_block_expires(self, app):
        now = utcnow()
        for _ in range(6):
            rate_limit.check(EMAIL, "signup", 5, 15, now=now)

        later = now + timedelta(minutes=61)
        result = rate_limit.check(EMAIL, "signup", 5, 15, now=later)
        assert result.allowed is True
        assert result.attempts_remaining == 4

        row = RateLimitWindow.query.filter_by(identifier=EMAIL, action="signup").one()
        assert row.attempts == 1
        assert row.window_start == later
        assert row.blocked_until is None

    def test_block_lapse_resets_even_with_long_window(self, app):
        now = utcnow()
        for _ in range(3):
            rate_limit.check(EMAIL, "signup", 2, 240, now=now)

        result = rate_limit.check(EMAIL, "signup", 2, 240, now=now + timedelta(minutes=61))
        assert result.allowed is True
        assert RateLimitWindow.query.filter_by(identifier=EMAIL).one().attempts == 1

    def test_window_expiry_starts_over(self, app):
        now = utcnow()
        for _ in range(5):
            rate_limit.check(EMAIL, "signup", 5, 15, now=now)

        result = rate_limit.check(EMAIL, "signup", 5, 15, now=now + timedelta(minutes=16))
        assert result.allowed is True
        assert result.attempts_remaining == 4
        assert result.reset_time == now + timedelta(minutes=31)

    def test_reset_time_tracks_window_start(self, app):
        now = utcnow()
        rate_limit.check(EMAIL, "signup", 5, 15, now=now)
        result = rate_limit.check(EMAIL, "signup", 5, 15, now=now + timedelta(minutes=3))
        assert result.reset_time == now + timedelta(minutes=15)

    def test_keys_are_independent(self, app):
        now = utcnow()
        for _ in range(6):
            rate_limit.check(EMAIL, "signup", 5, 15, now=now)

        assert rate_limit.check(EMAIL, "otp_verify", 5, 15, now=now).allowed is True
        assert rate_limit.check("b@x.com", "signup", 5, 15, now=now).allowed is True

    def test_defaults_come_from_config(self, app):
        app.config["RATE_LIMIT_MAX_ATTEMPTS"] = 2
        now = utcnow()
        assert rate_limit.check(EMAIL, "signup", now=now).allowed is True
        assert rate_limit.check(EMAIL, "signup", now=now).allowed is True
        assert rate_limit.check(EMAIL, "signup", now=now).allowed is False


class TestFailOpen:
    def test_store_failure_allows_request(self, app):
        from models import db

        RateLimitWindow.__table__.drop(db.engine)

        result = rate_limit.check(EMAIL, "signup", 5, 15)
        assert result.allowed is True
        assert result.blocked is False


class TestReset:
    def test_reset_clears_block(self, app):
        now = utcnow()
        for _ in range(6):
            rate_limit.check(EMAIL, "signup", 5, 15, now=now)

        assert rate_limit.reset(EMAIL, "signup") is True
        assert rate_limit.check(EMAIL, "signup", 5, 15, now=now).allowed is True

    def test_reset_unknown_key(self, app):
        assert rate_limit.reset(EMAIL, "signup") is False
