import json

from models.db import db
from utils.clock import utcnow


class OtpVerification(db.Model):
    __tablename__ = "otp_verifications"
    __table_args__ = (
        db.Index("ix_otp_verifications_identifier_code", "identifier", "code_hash"),
    )

    id = db.Column(db.Integer, primary_key=True)

    # normalized email; together with the code it is the natural key
    identifier = db.Column(db.String(255), nullable=False, index=True)
    code_hash = db.Column(db.String(128), nullable=False)

    issued_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)

    # false -> true once, never back
    consumed = db.Column(db.Boolean, default=False, nullable=False)
    consumed_at = db.Column(db.DateTime, nullable=True)

    account_type = db.Column(db.String(16), nullable=False)
    source_url = db.Column(db.String(2048), nullable=True)
    aux_metadata_json = db.Column(db.Text, nullable=True)

    @property
    def aux_metadata(self) -> dict:
        if not self.aux_metadata_json:
            return {}
        return json.loads(self.aux_metadata_json)

    @aux_metadata.setter
    def aux_metadata(self, value):
        self.aux_metadata_json = json.dumps(value) if value else None
