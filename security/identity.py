import json
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from models.user import User
from security.errors import AlreadyExists, StoreUnavailable
from utils.clock import utcnow

logger = logging.getLogger(__name__)


def identity_exists(email: str) -> bool:
    try:
        return User.query.filter_by(email=email).first() is not None
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreUnavailable() from exc


def create_identity(email: str, password_hash: str, metadata: dict, now=None) -> User:
    """
    Create the account behind a verified signup. An existing email is a
    terminal conflict (AlreadyExists); accounts are never merged.
    """
    now = now or utcnow()
    metadata = dict(metadata or {})

    user = User(
        email=email,
        password_hash=password_hash,
        account_type=metadata.get("account_type"),
        signup_source=metadata.get("signup_source"),
        source_url=metadata.get("source_url"),
        metadata_json=json.dumps(metadata, default=str),
        email_verified_at=now,
        created_at=now,
    )
    try:
        db.session.add(user)
        db.session.commit()
    except IntegrityError as exc:
        # unique(email) lost, possibly to a concurrent signup
        db.session.rollback()
        raise AlreadyExists() from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Could not create identity for %s: %s", email, exc)
        raise StoreUnavailable() from exc

    return user
