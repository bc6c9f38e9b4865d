import json

from models.db import db
from utils.clock import utcnow


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # "user" or "client", copied from the OTP record that created the account
    account_type = db.Column(db.String(16), nullable=False)
    signup_source = db.Column(db.String(64), nullable=True)
    source_url = db.Column(db.String(2048), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    email_verified_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    @property
    def user_metadata(self) -> dict:
        if not self.metadata_json:
            return {}
        return json.loads(self.metadata_json)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "account_type": self.account_type,
            "user_metadata": self.user_metadata,
            "email_verified_at": self.email_verified_at.isoformat() if self.email_verified_at else None,
            "created_at": self.created_at.isoformat(),
        }
