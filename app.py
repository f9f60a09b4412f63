import logging

from flask import Flask, request, g, redirect, url_for
from flask_migrate import Migrate
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from config import Config
from routes import health_bp, auth_bp, admin_bp, booking_bp, services_bp, pages_bp

from models import db
from security.auth_provider import AuthProvider
from security.csrf import CsrfFailed, require_csrf
from security.rate_limit import RateLimiter
from services.bookings import build_transition_policy
from services.errors import ServiceError
from utils.auth_context import load_current_identity
from utils.responses import error_response, fail, is_form_submission


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Only trust X-Forwarded-For when a known number of proxies sits in front
    proxies = app.config.get("TRUSTED_PROXY_COUNT", 0)
    if proxies:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=proxies)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(services_bp)
    app.register_blueprint(pages_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Process-wide components, owned here and looked up by handlers through app.extensions.
    # Rate limiter counters live in this process only: a multi-instance deployment under-counts.
    window = app.config.get("RATE_LIMIT_WINDOW_SECONDS", 60)
    cleanup = app.config.get("RATE_LIMIT_CLEANUP_SECONDS", 300)
    app.extensions["rate_limiters"] = {
        "booking": RateLimiter(window_seconds=window, cleanup_interval=cleanup),
        "admin": RateLimiter(window_seconds=window, cleanup_interval=cleanup),
    }
    app.extensions["auth_provider"] = AuthProvider()
    app.extensions["transition_policy"] = build_transition_policy(
        app.config.get("BOOKING_TRANSITION_POLICY", "permissive")
    )

    @app.before_request
    def _load_identity():
        load_current_identity()

    CSRF_EXEMPT_PATHS = {
        "/auth/login",
        "/auth/register",
        "/health",
    }

    @app.before_request
    def _csrf_protect():
        # Only protect state-changing requests
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # Exempt auth bootstrap endpoints
            if request.path in CSRF_EXEMPT_PATHS:
                return None

            # Bearer tokens are not sent automatically by browsers, cookies are
            if getattr(g, "auth_source", None) != "cookie":
                return None
            try:
                require_csrf()
            except CsrfFailed as exc:
                # the public booking form lands on the error page like its other failures
                if request.endpoint == "booking.create_booking" and is_form_submission():
                    return redirect(url_for("pages.error_page", reason=exc.code), 303)
                raise

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_error_handlers(app)
    register_cli(app)

    return app


def register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def _service_error(exc):
        return error_response(exc)

    @app.errorhandler(HTTPException)
    def _http_error(exc):
        if exc.code == 405:
            return fail("METHOD_NOT_ALLOWED", f"{request.method} method not allowed.", 405)
        if exc.code == 404:
            return fail("NOT_FOUND", "Resource not found", 404)
        return fail(exc.name.upper().replace(" ", "_"), exc.description or exc.name, exc.code)

    @app.errorhandler(SQLAlchemyError)
    def _database_error(exc):
        db.session.rollback()
        app.logger.exception("Database error on %s %s", request.method, request.path)
        return fail("DATABASE_ERROR", "A database error occurred", 500)

    @app.errorhandler(Exception)
    def _unexpected_error(exc):
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return fail("SERVER_ERROR", "Something went wrong", 500)

#-------------------------
import click
from models.user import User, ROLE_ADMIN
from utils.seed import seed_demo_business

def register_cli(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables (development; use `flask db upgrade` elsewhere)."""
        db.create_all()
        click.echo("Tables created")

    @app.cli.command("seed-demo")
    @click.option("--owner-email", default="sarah@sparkleclean.com", show_default=True)
    @click.option("--owner-password", default="admin123", show_default=True)
    def seed_demo(owner_email, owner_password):
        """Create the demo cleaning business, its services and an ADMIN owner."""
        business, created = seed_demo_business(owner_email, owner_password)
        if created:
            click.echo(f"Seeded {business.name} ({business.slug})")
        else:
            click.echo(f"{business.slug} already exists")

    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        if user.role != ROLE_ADMIN:
            user.role = ROLE_ADMIN
            db.session.commit()

        click.echo(f"{user.email} promoted to ADMIN")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
