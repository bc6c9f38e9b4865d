import logging
import smtplib
from email.message import EmailMessage

from flask import current_app

logger = logging.getLogger(__name__)


def smtp_enabled() -> bool:
    mode = str(current_app.config.get("SMTP_ENABLED", "auto")).lower()
    if mode == "false":
        return False
    if mode == "true":
        return True
    return bool(current_app.config.get("SMTP_HOST"))


def render_otp_email(code: str, ttl_minutes: int) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2 style="color: #333; text-align: center;">Your Verification Code</h2>
      <p style="font-size: 16px; color: #666; text-align: center;">
        Use this code to complete your verification:
      </p>
      <div style="background: #f8f9fa; padding: 20px; text-align: center; margin: 20px 0; border-radius: 8px;">
        <span style="font-size: 32px; font-weight: bold; color: #333; letter-spacing: 4px;">{code}</span>
      </div>
      <p style="font-size: 14px; color: #999; text-align: center;">
        This code will expire in {ttl_minutes} minutes.
      </p>
    </div>
    """


def send_email(to_email: str, subject: str, body_html: str):
    """
    Returns (ok, error). Never raises: the caller decides what a failed
    delivery means.
    """
    if not smtp_enabled():
        # Dev mode: nothing leaves the box
        logger.info("[DEV] Would send email to %s: %s", to_email, subject)
        return True, None

    host = current_app.config.get("SMTP_HOST")
    port = current_app.config.get("SMTP_PORT", 587)
    username = current_app.config.get("SMTP_USERNAME")
    password = current_app.config.get("SMTP_PASSWORD")
    from_email = current_app.config.get("SMTP_FROM_EMAIL") or username
    use_tls = current_app.config.get("SMTP_USE_TLS", True)

    if not host or not from_email:
        return False, "Email not configured"

    msg = EmailMessage()
    msg["From"] = from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content("Open this message in an HTML capable mail client to see your code.")
    msg.add_alternative(body_html, subtype="html")

    try:
        with smtplib.SMTP(host, port, timeout=10) as server:
            if use_tls:
                server.starttls()
            if username and password:
                server.login(username, password)
            server.send_message(msg)
        return True, None
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning("SMTP delivery to %s failed: %s", to_email, exc)
        return False, str(exc)
