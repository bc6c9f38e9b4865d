"""
Shared test fixtures.

Provides a Flask app built from TestingConfig against an in-memory SQLite
database, a test client, and an `outbox` that captures OTP emails instead of
sending them.
"""

import re

import pytest

from app import create_app
from config import TestingConfig
from models import db
from utils import emailer

_CODE_RE = re.compile(r"(\d{6})</span>")


class Outbox(list):
    """Emails captured by the patched sender, newest last."""

    fail = False

    def codes_for(self, email):
        return [m["code"] for m in self if m["to"] == email]

    def last_code(self, email):
        codes = self.codes_for(email)
        assert codes, f"no OTP email sent to {email}"
        return codes[-1]


@pytest.fixture()
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def outbox(monkeypatch):
    sent = Outbox()

    def _send(to_email, subject, body_html):
        if sent.fail:
            return False, "SMTP down"
        match = _CODE_RE.search(body_html)
        sent.append({
            "to": to_email,
            "subject": subject,
            "body": body_html,
            "code": match.group(1) if match else None,
        })
        return True, None

    monkeypatch.setattr(emailer, "send_email", _send)
    return sent
