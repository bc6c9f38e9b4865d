import logging

import click
from flask import Flask, jsonify
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from routes import health_bp, auth_bp

from models import db
from security import otp, rate_limit
from utils.validation import normalize_email


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    logging.getLogger("security").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    @app.errorhandler(Exception)
    def _unhandled(exc):
        if isinstance(exc, HTTPException):
            return jsonify(error=exc.description), exc.code
        app.logger.exception("Unhandled error")
        # no stack traces or internals to the caller
        return jsonify(error="Internal server error"), 500

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp


    register_cli(app)


    return app

#-------------------------

def register_cli(app):
    @app.cli.command("purge-otps")
    def purge_otps():
        """Delete expired or already used OTP records."""
        count = otp.purge_stale()
        click.echo(f"Purged {count} OTP record(s)")

    @app.cli.command("reset-rate-limit")
    @click.argument("email")
    @click.argument("action")
    def reset_rate_limit(email, action):
        """Clear the throttle window for EMAIL and ACTION (signup, otp_verify)."""
        if rate_limit.reset(normalize_email(email), action):
            click.echo(f"Rate limit for {action} reset for {email}")
        else:
            click.echo("No rate limit window found")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        db.create_all()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
