import os
import logging

import click
from flask import Flask, jsonify

from playground.config import config_by_name
from playground.extensions import db, migrate, limiter


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from playground import models  # noqa: F401

    # --- Event store (one per app, shared by all handlers) ---
    from playground.services.event_store import EventStore
    app.extensions["event_store"] = EventStore(
        db, max_events=app.config["MAX_EVENTS"]
    )

    # --- Register blueprints ---
    from playground.blueprints.capture import capture_bp
    from playground.blueprints.events import events_bp
    from playground.blueprints.replay import replay_bp

    app.register_blueprint(capture_bp)
    app.register_blueprint(events_bp)
    app.register_blueprint(replay_bp)

    # --- Health ---
    @app.route("/health")
    def health():
        store = app.extensions["event_store"]
        return jsonify({
            "status": "ok",
            "eventCount": store.count(),
            "maxEvents": store.max_events,
        })

    # --- Error handlers (JSON everywhere) ---
    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(429)
    def rate_limited(e):
        return jsonify({"error": f"Rate limit exceeded: {e.description}"}), 429

    @app.errorhandler(500)
    def server_error(e):
        return jsonify({"error": "Internal server error"}), 500

    # --- CLI commands ---
    register_cli(app)

    # --- Response headers ---
    @app.after_request
    def add_response_headers(response):
        """CORS for the event list UI + basic hardening."""
        response.headers["Access-Control-Allow-Origin"] = app.config["CORS_ORIGIN"]
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("clear-events")
    @click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
    def clear_events(yes):
        """Delete every captured event and its replay attempts.

        Usage:
            flask clear-events
            flask clear-events --yes
        """
        store = app.extensions["event_store"]
        count = store.count()
        if count == 0:
            click.echo("No events to clear.")
            return
        if not yes and not click.confirm(f"Delete {count} events?"):
            click.echo("Aborted.")
            return
        removed = store.clear_all()
        click.echo(f"Cleared {removed} events")

    @app.cli.command("sign-payload")
    @click.argument("payload_file", type=click.File("rb"))
    @click.option("--secret", default=None, help="Signing secret (defaults to STRIPE_WEBHOOK_SECRET).")
    @click.option("--timestamp", type=int, default=None, help="Unix timestamp (defaults to now).")
    def sign_payload(payload_file, secret, timestamp):
        """Print a Stripe-Signature header value for a payload file.

        Handy for sending signed test webhooks to /webhook/stripe:

            flask sign-payload event.json
            curl -H "Stripe-Signature: $(flask sign-payload event.json)" \\
                 --data-binary @event.json http://localhost:5001/webhook/stripe
        """
        from playground.services.signature_service import build_signature_header

        secret = secret or app.config.get("STRIPE_WEBHOOK_SECRET")
        if not secret:
            raise click.UsageError("No secret given and STRIPE_WEBHOOK_SECRET is not set.")

        payload = payload_file.read()
        click.echo(build_signature_header(payload, secret, timestamp=timestamp))

    @app.cli.command("replay")
    @click.argument("event_id", type=int)
    @click.argument("target_url")
    def replay(event_id, target_url):
        """Replay a captured event to TARGET_URL and print the outcome.

        Usage:
            flask replay 42 http://localhost:3000/webhooks
        """
        from playground.services.replay_service import (
            EventNotFoundError,
            ReplayValidationError,
            replay_event,
        )

        store = app.extensions["event_store"]
        try:
            outcome = replay_event(
                store, event_id, target_url,
                timeout=app.config.get("REPLAY_TIMEOUT"),
            )
        except (EventNotFoundError, ReplayValidationError) as e:
            raise click.ClickException(str(e))

        if outcome["success"]:
            click.echo(f"OK  HTTP {outcome['status']} {outcome['statusText']}")
        else:
            click.echo(f"FAILED  {outcome['error']}")
        if outcome.get("responseBody"):
            click.echo(outcome["responseBody"])
