from flask import Blueprint, request, jsonify

from security.errors import AuthError, ValidationError
from services.auth_flow import AuthFlow, AuthState, oauth_destination, post_login_destination


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

_ISSUE_ACTIONS = {"signup", "generate"}


@auth_bp.errorhandler(AuthError)
def _auth_error(exc: AuthError):
    return jsonify(exc.to_dict()), exc.status_code


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid request")
    return data


def _signup(data):
    outcome = AuthFlow().signup(
        email=data.get("email"),
        password=data.get("password") or "",
        source_url=data.get("source_url") or data.get("sourceUrl"),
        referrer_url=data.get("referrer_url"),
        signup_source=data.get("signup_source"),
    )
    return jsonify(
        success=True,
        message="Verification code sent",
        account_type=outcome.account_context.account_type,
    ), 200


def _resend(data):
    AuthFlow(state=AuthState.AWAITING_OTP).resend(email=data.get("email"))
    return jsonify(success=True, message="Verification code resent"), 200


def _verify(data):
    outcome = AuthFlow(state=AuthState.AWAITING_OTP).verify(
        email=data.get("email"),
        code=data.get("otp"),
        password=data.get("password"),
    )
    return jsonify(
        success=True,
        user=outcome.user.to_dict(),
        is_new_user=True,
        account_type=outcome.user.account_type,
        redirect=outcome.destination.to_dict(),
    ), 200


@auth_bp.post("/otp")
def otp():
    data = _json_body()
    action = data.get("action")

    if action in _ISSUE_ACTIONS:
        return _signup(data)
    if action == "resend":
        return _resend(data)
    if action == "verify":
        return _verify(data)
    raise ValidationError("Invalid action")


@auth_bp.post("/oauth/callback")
def oauth_callback():
    data = _json_body()
    context, destination = oauth_destination(data.get("oauth_state"), data.get("user_metadata"))
    return jsonify(
        success=True,
        account_type=context.account_type,
        redirect=destination.to_dict(),
    ), 200


@auth_bp.post("/destination")
def destination():
    data = _json_body()
    target = post_login_destination(
        data.get("account_type"),
        is_new_user=bool(data.get("is_new_user")),
        is_google_auth=bool(data.get("is_google_auth")),
        current_host=data.get("current_host") or request.host,
    )
    return jsonify(redirect=target.to_dict()), 200
