"""
Signup flow: account resolution -> throttle -> OTP issue -> OTP verify ->
identity creation -> redirect.

Each HTTP request drives one AuthFlow instance; nothing is kept in process
between requests, so a verify request starts from AWAITING_OTP and relies on
the OTP row written by the signup request.
"""
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Optional

from flask import current_app

from models.user import User
from security import identity, otp, rate_limit
from security.errors import AlreadyExists, DeliveryFailed, InvalidOrExpired, RateLimited, ValidationError
from security.password import hash_password
from utils.account_context import (
    ACCOUNT_TYPES,
    ACCOUNT_UNKNOWN,
    AccountContext,
    resolve_account_context,
    resolve_oauth_account_type,
)
from utils.audit import log_event
from utils.clock import utcnow
from utils.redirection import NavigationTarget, resolve_destination
from utils.validation import is_valid_email, normalize_email

ACTION_SIGNUP = "signup"
ACTION_VERIFY = "otp_verify"


class AuthState(StrEnum):
    IDLE = "idle"
    AWAITING_OTP = "awaiting_otp"
    VERIFIED = "verified"
    IDENTITY_CREATED = "identity_created"
    REDIRECTED = "redirected"
    BLOCKED = "blocked"
    ABORTED = "aborted"


_TRANSITIONS = {
    AuthState.IDLE: {AuthState.AWAITING_OTP, AuthState.BLOCKED},
    AuthState.AWAITING_OTP: {AuthState.AWAITING_OTP, AuthState.VERIFIED, AuthState.BLOCKED},
    AuthState.VERIFIED: {AuthState.IDENTITY_CREATED, AuthState.ABORTED},
    AuthState.IDENTITY_CREATED: {AuthState.REDIRECTED},
    AuthState.REDIRECTED: set(),
    AuthState.BLOCKED: set(),
    AuthState.ABORTED: set(),
}


class IllegalTransition(RuntimeError):
    pass


@dataclass
class AuthOutcome:
    state: AuthState
    account_context: Optional[AccountContext] = None
    user: Optional[User] = None
    destination: Optional[NavigationTarget] = None
    history: list = field(default_factory=list)


def _domains() -> dict:
    return {
        "user_domain": current_app.config["USER_APP_DOMAIN"],
        "client_domain": current_app.config["CLIENT_APP_DOMAIN"],
    }


def _require_email(raw) -> str:
    if not isinstance(raw, str):
        raise ValidationError("A valid email is required")
    email = normalize_email(raw)
    if not is_valid_email(email):
        raise ValidationError("A valid email is required")
    return email


def _hash(password: str) -> str:
    try:
        return hash_password(password, current_app.config.get("BCRYPT_ROUNDS", 12))
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def _optional_url(value, name: str):
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    return value


def _oauth_email(user_metadata: dict):
    email = user_metadata.get("email")
    if not isinstance(email, str):
        return None
    return normalize_email(email) or None


class AuthFlow:
    def __init__(self, state: AuthState = AuthState.IDLE, now=None):
        self.state = state
        self.history = [state]
        self.now = now

    def _transition(self, new_state: AuthState):
        if new_state not in _TRANSITIONS[self.state]:
            raise IllegalTransition(f"{self.state} -> {new_state}")
        self.state = new_state
        self.history.append(new_state)

    def _outcome(self, **kwargs) -> AuthOutcome:
        return AuthOutcome(state=self.state, history=list(self.history), **kwargs)

    def _gate(self, email: str, action: str):
        result = rate_limit.check(email, action, now=self.now)
        if not result.allowed:
            self._transition(AuthState.BLOCKED)
            log_event(
                "RATE_LIMITED",
                email=email,
                metadata={"action": action, "blocked_until": result.blocked_until},
            )
            raise RateLimited(result)
        return result

    def _issue(self, email: str, account_type: str, aux_metadata: dict, source_url):
        try:
            otp.issue(email, account_type, aux_metadata, source_url=source_url, now=self.now)
        except DeliveryFailed:
            # The row exists; the way out is an explicit resend.
            self._transition(AuthState.AWAITING_OTP)
            log_event("OTP_DELIVERY_FAILED", email=email)
            raise
        self._transition(AuthState.AWAITING_OTP)

    def signup(self, email, password, source_url, referrer_url=None, signup_source=None) -> AuthOutcome:
        email = _require_email(email)
        if not password:
            raise ValidationError("Email and password are required")
        source_url = _optional_url(source_url, "source_url")
        referrer_url = _optional_url(referrer_url, "referrer_url")

        context = resolve_account_context(
            source_url,
            referrer_url,
            user_domain=current_app.config["USER_APP_DOMAIN"],
            is_new_user=True,
        )
        self._gate(email, ACTION_SIGNUP)

        if identity.identity_exists(email):
            log_event("SIGNUP_EMAIL_EXISTS", email=email)
            raise AlreadyExists()

        aux_metadata = {
            "password_hash": _hash(password),
            "signup_source": signup_source or "otp_signup",
            "referrer_url": referrer_url,
            "source_signal": context.source_signal,
        }
        self._issue(email, context.account_type, aux_metadata, source_url)

        log_event(
            "OTP_ISSUED",
            email=email,
            metadata={"account_type": context.account_type, "source_signal": context.source_signal},
        )
        return self._outcome(account_context=context)

    def resend(self, email) -> AuthOutcome:
        """Issue another code bound to the same account type as the pending signup."""
        email = _require_email(email)
        pending = otp.latest_pending(email)
        if pending is None:
            raise ValidationError("No verification request found. Please sign up again.")

        self._gate(email, ACTION_SIGNUP)
        if identity.identity_exists(email):
            log_event("SIGNUP_EMAIL_EXISTS", email=email)
            raise AlreadyExists()

        self._issue(email, pending.account_type, pending.aux_metadata, pending.source_url)

        log_event("OTP_RESENT", email=email, metadata={"account_type": pending.account_type})
        context = AccountContext(pending.account_type, True, pending.aux_metadata.get("source_signal", "default"))
        return self._outcome(account_context=context)

    def verify(self, email, code, password=None) -> AuthOutcome:
        # Checked before the code is touched so an out of order call cannot burn it.
        if AuthState.VERIFIED not in _TRANSITIONS[self.state]:
            raise IllegalTransition(f"{self.state} -> {AuthState.VERIFIED}")
        email = _require_email(email)
        if not code:
            raise ValidationError("OTP is required for verification")
        override_hash = _hash(password) if password else None

        self._gate(email, ACTION_VERIFY)

        now = self.now or utcnow()
        try:
            record = otp.verify(email, code, now=now)
        except InvalidOrExpired:
            log_event("OTP_VERIFY_FAIL", email=email)
            raise
        self._transition(AuthState.VERIFIED)

        aux = record.aux_metadata
        password_hash = override_hash or aux.get("password_hash")
        if not password_hash:
            self._transition(AuthState.ABORTED)
            raise ValidationError("Password is required")

        metadata = {
            "account_type": record.account_type,
            "signup_source": aux.get("signup_source"),
            "source_url": record.source_url,
            "referrer_url": aux.get("referrer_url"),
            "email_verified": True,
            "otp_verified_at": now.isoformat(),
        }
        try:
            user = identity.create_identity(email, password_hash, metadata, now=now)
        except AlreadyExists:
            self._transition(AuthState.ABORTED)
            log_event("IDENTITY_CONFLICT", email=email)
            raise
        self._transition(AuthState.IDENTITY_CREATED)

        destination = resolve_destination(record.account_type, is_new_user=True, **_domains())
        self._transition(AuthState.REDIRECTED)

        log_event(
            "IDENTITY_CREATED",
            email=email,
            metadata={"account_type": record.account_type, "redirect": destination.url},
        )
        return self._outcome(
            account_context=AccountContext(record.account_type, True, aux.get("source_signal", "default")),
            user=user,
            destination=destination,
        )


def oauth_destination(oauth_state, user_metadata):
    """Route a federated (Google) sign-in; always lands on profile completion."""
    if not isinstance(oauth_state, dict) or not oauth_state or not isinstance(user_metadata, dict):
        raise ValidationError("OAuth state and user metadata required")
    _optional_url(oauth_state.get("source_url"), "source_url")
    _optional_url(oauth_state.get("referrer_url"), "referrer_url")

    context = resolve_oauth_account_type(
        oauth_state, user_metadata, user_domain=current_app.config["USER_APP_DOMAIN"]
    )
    destination = resolve_destination(
        context.account_type, is_new_user=True, is_google_auth=True, **_domains()
    )
    log_event(
        "OAUTH_CALLBACK",
        email=_oauth_email(user_metadata),
        metadata={"account_type": context.account_type, "source_signal": context.source_signal},
    )
    return context, destination


def post_login_destination(account_type, is_new_user=False, is_google_auth=False, current_host=None):
    if account_type is not None and account_type not in (*ACCOUNT_TYPES, ACCOUNT_UNKNOWN):
        raise ValidationError("Unknown account type")
    current_host = _optional_url(current_host, "current_host")
    return resolve_destination(
        account_type,
        is_new_user=is_new_user,
        is_google_auth=is_google_auth,
        current_host=current_host,
        **_domains(),
    )
