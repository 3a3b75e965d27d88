import logging

from flask import Flask, current_app, jsonify
from config import Config
from routes import health_bp, reservations_bp, availability_bp, verify_pages_bp, audit_bp

from models import db
from flask_migrate import Migrate
from booking.service import init_booking, get_reaper
from booking.types import StorageUnavailable


def create_app(config_object=Config, clock=None):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(level=logging.DEBUG if app.config.get("DEBUG") else logging.INFO)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(reservations_bp)
    app.register_blueprint(availability_bp)
    app.register_blueprint(verify_pages_bp)
    app.register_blueprint(audit_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Clock + policy for the booking engine
    init_booking(app, clock=clock)

    @app.errorhandler(StorageUnavailable)
    def _storage_unavailable(exc):
        retry_after = current_app.config.get("STORAGE_RETRY_AFTER_SECONDS", 5)
        resp = jsonify(error="Service temporarily unavailable", retry_after_seconds=retry_after)
        resp.headers["Retry-After"] = str(retry_after)
        return resp, 503

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        return resp

    register_cli(app)

    if app.config.get("RESERVATION_SCHEDULER_ENABLED"):
        from booking.reaper import register_scheduler
        register_scheduler(app, get_reaper)

    return app

#-------------------------
import click
from datetime import date
from flask.cli import AppGroup
from booking.overrides import OverrideStore
from utils.audit import log_event


def register_cli(app):
    reservations_cli = AppGroup("reservations", help="Reservation maintenance.")
    availability_cli = AppGroup("availability", help="Per-day availability overrides.")

    @reservations_cli.command("expire-pending")
    def expire_pending():
        """Cancel pending reservations whose verification link has lapsed."""
        report = get_reaper().expire_sweep()
        if report.changed:
            log_event("RESERVATION_EXPIRE_SWEEP", actor="reaper", entity="reservation",
                      metadata={"ids": report.ids})
        click.echo(f"Cancelled {report.changed} expired pending reservations (examined {report.examined}).")

    @reservations_cli.command("mark-done")
    def mark_done():
        """Move booked reservations whose slot has ended to done."""
        report = get_reaper().complete_sweep()
        if report.changed:
            log_event("RESERVATION_COMPLETE_SWEEP", actor="reaper", entity="reservation",
                      metadata={"ids": report.ids})
        click.echo(f"Marked done: {report.changed} (examined {report.examined}).")

    @availability_cli.command("set")
    @click.argument("day")
    @click.option("--open/--closed", "is_open", required=True, help="Open or close the day.")
    def set_override(day, is_open):
        """Force DAY (YYYY-MM-DD) open or closed."""
        try:
            parsed = date.fromisoformat(day)
        except ValueError:
            raise click.BadParameter("Use YYYY-MM-DD", param_hint="DAY")
        OverrideStore().set(parsed, is_open)
        log_event("OVERRIDE_SET", actor="admin", entity="availability_override", entity_id=day,
                  metadata={"open": is_open})
        click.echo(f"{day} {'open' if is_open else 'closed'}")

    @availability_cli.command("clear")
    @click.argument("day")
    def clear_override(day):
        """Remove the override for DAY, returning it to the default rules."""
        try:
            parsed = date.fromisoformat(day)
        except ValueError:
            raise click.BadParameter("Use YYYY-MM-DD", param_hint="DAY")
        if OverrideStore().clear(parsed):
            log_event("OVERRIDE_CLEAR", actor="admin", entity="availability_override", entity_id=day)
            click.echo(f"{day} override removed")
        else:
            click.echo(f"No override for {day}")

    app.cli.add_command(reservations_cli)
    app.cli.add_command(availability_cli)

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
