from models.db import db
from utils.clock import utcnow


class RateLimitWindow(db.Model):
    __tablename__ = "rate_limit_windows"
    __table_args__ = (
        db.UniqueConstraint("identifier", "action", name="uq_rate_limit_windows_identifier_action"),
    )

    id = db.Column(db.Integer, primary_key=True)

    identifier = db.Column(db.String(255), nullable=False, index=True)
    action = db.Column(db.String(32), nullable=False)

    window_start = db.Column(db.DateTime, nullable=False)
    attempts = db.Column(db.Integer, default=0, nullable=False)
    blocked_until = db.Column(db.DateTime, nullable=True)

    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)
