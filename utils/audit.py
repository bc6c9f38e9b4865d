import json

from flask import current_app, has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.audit_log import AuditLog


def log_event(action: str, email=None, metadata=None):
    """
    Append an audit row and mirror it to the app logger.

    This is a side channel: if the audit table cannot be written the failure
    is logged and the caller carries on as if nothing happened.
    """
    ip = None
    user_agent = ""
    if has_request_context():
        ip = request.headers.get("X-Forwarded-For", request.remote_addr)
        user_agent = request.headers.get("User-Agent", "")

    current_app.logger.info("%s email=%s metadata=%s", action, email, metadata or {})

    row = AuditLog(
        action=action,
        email=email,
        ip=ip,
        user_agent=user_agent[:255] if user_agent else None,
        metadata_json=json.dumps(metadata, default=str) if metadata else None
    )
    try:
        db.session.add(row)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning("Audit write failed for %s", action, exc_info=True)
