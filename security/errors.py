class AuthError(Exception):
    """Base for every failure the auth endpoints report to the caller."""

    status_code = 400
    message = "Request failed"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(AuthError):
    message = "Invalid request"


class RateLimited(AuthError):
    message = "Too many attempts. Please try again later."

    def __init__(self, result, message=None):
        super().__init__(message)
        self.result = result

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["reset_time"] = self.result.reset_time.isoformat()
        if self.result.blocked_until:
            data["blocked_until"] = self.result.blocked_until.isoformat()
        return data


class InvalidOrExpired(AuthError):
    # Wrong, expired and already-used codes all look the same from outside.
    message = "Invalid or expired verification code"


class DeliveryFailed(AuthError):
    message = "Failed to send verification code. Please request a new one."


class AlreadyExists(AuthError):
    message = "This email is already registered. Please sign in instead."


class StoreUnavailable(AuthError):
    status_code = 500
    message = "Service temporarily unavailable"
