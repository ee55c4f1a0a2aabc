import logging

import click
from flask import Flask, request, g, jsonify

from config import Config
from routes import health_bp, auth_bp, slots_bp, swaps_bp

from models import db
from models.errors import SlotSwapError
from flask_migrate import Migrate
from services.invariants import find_violations
from utils.auth_context import load_current_user
from security.csrf import require_csrf

logger = logging.getLogger(__name__)

CSRF_EXEMPT_PATHS = {
    "/api/auth/login",
    "/api/auth/signup",
    "/health",
}


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(slots_bp)
    app.register_blueprint(swaps_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    @app.before_request
    def _load_user():
        load_current_user()

    @app.before_request
    def _csrf_protect():
        # Only protect state-changing requests
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if request.path in CSRF_EXEMPT_PATHS:
                return None

            # Bearer-token clients are not exposed to CSRF; cookie sessions are
            if getattr(g, "user", None) is not None and g.auth_scheme == "cookie":
                failure = require_csrf()
                if failure:
                    return failure

    @app.errorhandler(SlotSwapError)
    def _slotswap_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    logger.info("SlotSwapper app created (database: %s)", app.config["SQLALCHEMY_DATABASE_URI"].split(":", 1)[0])
    return app

#-------------------------

def register_cli(app):
    @app.cli.command("create-db")
    def create_db():
        """Create all tables without migrations (local development)."""
        db.create_all()
        click.echo("Tables created")

    @app.cli.command("check-invariants")
    def check_invariants():
        """Report slots and swap requests whose statuses disagree."""
        violations = find_violations()
        if not violations:
            click.echo("OK: no invariant violations")
            return

        for v in violations:
            details = ", ".join(f"{k}={v[k]}" for k in v if k != "rule")
            click.echo(f"{v['rule']}: {details}")
        raise click.exceptions.Exit(1)

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=3000)
