"""Events blueprint — /api/events/*

Read and clear captured webhooks.

Route Map:
  GET    /api/events          — List events (?provider=, ?verified=true|false)
  DELETE /api/events          — Clear all events (and their replay attempts)
  GET    /api/events/<id>     — Single event
"""

from flask import Blueprint, jsonify, request

from playground.extensions import get_event_store

events_bp = Blueprint("events", __name__, url_prefix="/api/events")


def parse_event_id(raw_id):
    """Return raw_id as an int, or None if it isn't one."""
    try:
        return int(raw_id)
    except (TypeError, ValueError):
        return None


@events_bp.route("", methods=["GET"])
def list_events():
    """List events newest-first with optional provider / verified filters."""
    provider = (request.args.get("provider") or "").strip() or None

    verified = None
    verified_arg = request.args.get("verified")
    if verified_arg is not None and verified_arg != "":
        verified_arg = verified_arg.lower()
        if verified_arg not in ("true", "false"):
            return jsonify({"error": "verified must be 'true' or 'false'"}), 400
        verified = verified_arg == "true"

    events = get_event_store().list_events(provider=provider, verified=verified)
    return jsonify({
        "events": [e.to_dict() for e in events],
        "total": len(events),
    })


@events_bp.route("", methods=["DELETE"])
def clear_events():
    count = get_event_store().clear_all()
    return jsonify({
        "success": True,
        "count": count,
        "message": f"Cleared {count} events",
    })


@events_bp.route("/<event_id>", methods=["GET"])
def get_event(event_id):
    event_id = parse_event_id(event_id)
    if event_id is None:
        return jsonify({"error": "Invalid event ID"}), 400

    event = get_event_store().get_event(event_id)
    if event is None:
        return jsonify({"error": "Event not found"}), 404
    return jsonify(event.to_dict())
