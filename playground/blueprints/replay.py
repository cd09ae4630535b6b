"""Replay blueprint — /api/replay/*

Route Map:
  POST /api/replay/<id>           — Resend event <id> to {"targetUrl": ...}
  GET  /api/replay/history/<id>   — Replay attempts for event <id>, newest first

The replay route makes an outbound request to a caller-chosen host, so it is
rate limited (REPLAY_RATE_LIMIT).
"""

from flask import Blueprint, current_app, jsonify, request

from playground.blueprints.events import parse_event_id
from playground.extensions import get_event_store, limiter
from playground.services.replay_service import (
    EventNotFoundError,
    ReplayValidationError,
    replay_event,
)

replay_bp = Blueprint("replay", __name__, url_prefix="/api/replay")


def _replay_rate_limit():
    return current_app.config.get("REPLAY_RATE_LIMIT", "30 per minute")


@replay_bp.route("/<event_id>", methods=["POST"])
@limiter.limit(_replay_rate_limit)
def replay(event_id):
    """Replay a stored event.

    200: the target answered (success reflects 2xx or not).
    500: the target couldn't be reached; the failed attempt is still recorded.
    """
    event_id = parse_event_id(event_id)
    if event_id is None:
        return jsonify({"error": "Invalid event ID"}), 400

    data = request.get_json(silent=True) or {}
    target_url = data.get("targetUrl") if isinstance(data, dict) else None

    try:
        outcome = replay_event(
            get_event_store(),
            event_id,
            target_url,
            timeout=current_app.config.get("REPLAY_TIMEOUT"),
        )
    except EventNotFoundError:
        return jsonify({"error": "Event not found"}), 404
    except ReplayValidationError as e:
        return jsonify({"error": str(e)}), 400

    if "status" not in outcome:
        return jsonify(outcome), 500
    return jsonify(outcome), 200


@replay_bp.route("/history/<event_id>", methods=["GET"])
def history(event_id):
    event_id = parse_event_id(event_id)
    if event_id is None:
        return jsonify({"error": "Invalid event ID"}), 400

    attempts = get_event_store().list_replay_attempts(event_id)
    return jsonify({
        "attempts": [a.to_dict() for a in attempts],
        "total": len(attempts),
    })
