import logging
from datetime import date, timedelta

import click
from flask import Flask, request, g, jsonify
from flask_migrate import Migrate
from sqlalchemy import inspect
from werkzeug.exceptions import HTTPException

from config import Config
from models import db
from routes import ALL_BLUEPRINTS
from scheduling.errors import InvariantViolation, SchedulingError
from security.csrf import csrf_failure
from utils.auth_context import load_current_user
from utils.seed import seed_roles

logger = logging.getLogger(__name__)

CSRF_EXEMPT_PATHS = {
    "/auth/login",
    "/auth/register",
    "/contact",
    "/health",
}


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    logging.getLogger("scheduling").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    for bp in ALL_BLUEPRINTS:
        app.register_blueprint(bp)

    db.init_app(app)
    Migrate(app, db)

    with app.app_context():
        if app.config.get("TESTING"):
            db.create_all()
        # Seed default roles at startup (safe & idempotent); skipped until `flask db upgrade` ran
        if inspect(db.engine).has_table("roles"):
            seed_roles()
        else:
            logger.warning("roles table missing, run `flask db upgrade`")

    @app.before_request
    def _load_user():
        load_current_user()

    @app.before_request
    def _csrf_protect():
        # cookie-authenticated state changes only
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if request.path in CSRF_EXEMPT_PATHS:
                return None
            if getattr(g, "user", None) is not None:
                return csrf_failure()
        return None

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_error_handlers(app)
    register_cli(app)

    return app


def register_error_handlers(app):
    @app.errorhandler(SchedulingError)
    def _scheduling_error(err):
        if isinstance(err, InvariantViolation):
            app.logger.warning("Invalid transition on %s %s: %s", request.method, request.path, err.message)
        return jsonify(err.to_dict()), err.http_status

    @app.errorhandler(Exception)
    def _unexpected_error(err):
        if isinstance(err, HTTPException):
            return jsonify(error=err.description), err.code
        db.session.rollback()
        app.logger.error("Unhandled error on %s %s", request.method, request.path, exc_info=err)
        return jsonify(error="Internal server error", kind="internal"), 500


#-------------------------
from models.service import Service
from models.slot import Slot
from models.user import User, Role
from scheduling.normalize import normalize_time_slot


def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Grant ADMIN to a registered user (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        admin_role = Role.query.filter_by(name="ADMIN").first()
        if not admin_role:
            admin_role = Role(name="ADMIN")
            db.session.add(admin_role)

        if admin_role not in user.roles:
            user.roles.append(admin_role)
        db.session.commit()

        click.echo(f"{user.email} promoted to ADMIN")

    @app.cli.command("seed-roles")
    def seed_roles_command():
        """Create missing default roles."""
        created = seed_roles()
        click.echo(f"Created roles: {', '.join(created) or 'none'}")

    @app.cli.command("populate-availability")
    @click.option("--days", type=int, default=None, help="How many days ahead, starting today.")
    def populate_availability(days):
        """Materialize available slots for every service at the default times."""
        days = days or app.config.get("AVAILABILITY_DAYS_AHEAD", 30)
        times = [normalize_time_slot(t) for t in app.config.get("DEFAULT_TIME_SLOTS", [])]
        services = Service.query.all()
        if not services:
            click.echo("No services found. Please add services first.")
            return

        existing = {
            (s.service_id, s.date, s.time_slot)
            for s in Slot.query.filter(Slot.date >= date.today()).all()
        }
        inserted = skipped = 0
        for service in services:
            for offset in range(days):
                day = date.today() + timedelta(days=offset)
                for at in times:
                    if (service.id, day, at) in existing:
                        skipped += 1
                        continue
                    db.session.add(Slot(service_id=service.id, date=day, time_slot=at, available=True))
                    inserted += 1
        db.session.commit()

        click.echo(f"Inserted: {inserted} slots")
        click.echo(f"Skipped (already exists): {skipped} slots")

#-------------------------


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
