from .db import db
from .user import User
from .audit_log import AuditLog
from .otp_verification import OtpVerification
from .rate_limit_window import RateLimitWindow
