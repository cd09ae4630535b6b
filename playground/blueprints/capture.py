"""Capture blueprint — /webhook[/<provider>]

Open endpoint that third-party senders post to. Every POST is stored, even
when the body isn't JSON or the signature doesn't check out.

Raw body is read untouched (no form/JSON parsing) so replays and signature
checks see the exact bytes that arrived.
"""

from flask import Blueprint, current_app, jsonify, request

from playground.extensions import get_event_store
from playground.services.ingest_service import ingest_webhook

capture_bp = Blueprint("capture", __name__)

DEFAULT_PROVIDER = "generic"


def headers_to_dict(headers):
    """Flatten Werkzeug headers to {lower-cased name: value or [values]}."""
    result = {}
    for name, value in headers.items():
        key = name.lower()
        if key in result:
            existing = result[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                result[key] = [existing, value]
        else:
            result[key] = value
    return result


@capture_bp.route("/webhook", methods=["POST"])
@capture_bp.route("/webhook/<provider>", methods=["POST"])
def receive_webhook(provider=None):
    """Capture one webhook.

    1. Read the raw body (cache=False: nothing else needs request.data)
    2. Verify the signature if this is the signature provider
    3. Store the event (oldest evicted past MAX_EVENTS)
    4. Return 200 with the new event id
    """
    provider = provider or DEFAULT_PROVIDER
    raw_body = request.get_data(cache=False)
    headers = headers_to_dict(request.headers)

    event = ingest_webhook(
        get_event_store(),
        provider,
        raw_body,
        headers,
        secret=current_app.config.get("STRIPE_WEBHOOK_SECRET"),
        signature_provider=current_app.config.get("SIGNATURE_PROVIDER", "stripe"),
        signature_header=current_app.config.get("SIGNATURE_HEADER", "Stripe-Signature"),
    )

    return jsonify({
        "success": True,
        "eventId": event.id,
        "message": "Webhook received successfully",
    }), 200
