import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.otp_verification import OtpVerification
from security.errors import DeliveryFailed, InvalidOrExpired, StoreUnavailable
from utils import emailer
from utils.clock import utcnow

logger = logging.getLogger(__name__)

OTP_DIGITS = 6
_CODE_LOW = 10 ** (OTP_DIGITS - 1)   # 100000
_CODE_SPAN = 9 * _CODE_LOW           # 900000 values up to 999999


@dataclass(frozen=True)
class IssuedOtp:
    record: OtpVerification
    code: str


def generate_otp_code() -> str:
    return f"{_CODE_LOW + secrets.randbelow(_CODE_SPAN):0{OTP_DIGITS}d}"


def hash_code(identifier: str, code: str) -> str:
    # Deterministic keyed hash so the (identifier, code) pair is still a lookup key.
    key = current_app.config["SECRET_KEY"].encode("utf-8")
    return hmac.new(key, f"{identifier}:{code}".encode("utf-8"), hashlib.sha256).hexdigest()


def normalize_code(code) -> str:
    return str(code or "").strip()


def _ttl() -> timedelta:
    return timedelta(minutes=current_app.config.get("OTP_TTL_MINUTES", 10))


def issue(identifier: str, account_type: str, aux_metadata=None, source_url=None, now=None) -> IssuedOtp:
    """
    Create, persist and email a fresh code.

    The row is committed before delivery is attempted, so when delivery fails
    (DeliveryFailed) the code is still valid and a resend simply adds
    another live one. Earlier codes for the identifier are left alone.
    """
    now = now or utcnow()
    code = generate_otp_code()

    record = OtpVerification(
        identifier=identifier,
        code_hash=hash_code(identifier, code),
        issued_at=now,
        expires_at=now + _ttl(),
        consumed=False,
        account_type=account_type,
        source_url=source_url,
    )
    record.aux_metadata = aux_metadata or {}

    try:
        db.session.add(record)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Could not store OTP for %s: %s", identifier, exc)
        raise StoreUnavailable() from exc

    ttl_minutes = current_app.config.get("OTP_TTL_MINUTES", 10)
    ok, error = emailer.send_email(
        identifier,
        current_app.config.get("OTP_EMAIL_SUBJECT", "Your Verification Code"),
        emailer.render_otp_email(code, ttl_minutes),
    )
    if not ok:
        logger.warning("OTP delivery to %s failed: %s", identifier, error)
        raise DeliveryFailed()

    return IssuedOtp(record=record, code=code)


def _consume(record_id: int, now) -> bool:
    """
    Conditional write: only flips a row that is still unconsumed at update
    time. Returns False when a concurrent verify got there first.
    """
    updated = (
        OtpVerification.query
        .filter_by(id=record_id, consumed=False)
        .update({"consumed": True, "consumed_at": now}, synchronize_session=False)
    )
    db.session.commit()
    return updated == 1


def verify(identifier: str, code, now=None) -> OtpVerification:
    now = now or utcnow()
    code = normalize_code(code)
    if len(code) != OTP_DIGITS or not code.isdigit():
        raise InvalidOrExpired()

    try:
        record = (
            OtpVerification.query
            .filter(
                OtpVerification.identifier == identifier,
                OtpVerification.code_hash == hash_code(identifier, code),
                OtpVerification.consumed.is_(False),
                OtpVerification.expires_at > now,
            )
            .order_by(OtpVerification.issued_at.desc(), OtpVerification.id.desc())
            .first()
        )
        if record is None or not _consume(record.id, now):
            raise InvalidOrExpired()
        db.session.refresh(record)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Could not verify OTP for %s: %s", identifier, exc)
        raise StoreUnavailable() from exc

    return record


def latest_pending(identifier: str):
    """Newest unconsumed record for the identifier (expired or not), or None."""
    try:
        return (
            OtpVerification.query
            .filter_by(identifier=identifier, consumed=False)
            .order_by(OtpVerification.issued_at.desc(), OtpVerification.id.desc())
            .first()
        )
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreUnavailable() from exc


def purge_stale(now=None) -> int:
    """Housekeeping: drop rows that can never verify again."""
    now = now or utcnow()
    deleted = (
        OtpVerification.query
        .filter(or_(OtpVerification.consumed.is_(True), OtpVerification.expires_at <= now))
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted
