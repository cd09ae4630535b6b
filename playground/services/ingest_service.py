"""Ingest service — turn one raw inbound request into a stored WebhookEvent.

Ingestion never rejects a webhook:
- A body that isn't JSON is kept as {"raw": "<text>"}.
- A missing or bad signature only means verified=False.
- Unknown providers are stored unverified.

Only the configured signature provider (Stripe by default) is verified.
"""

import json
import logging

from playground.models.webhook_event import WebhookEvent
from playground.services.signature_service import verify_signature

logger = logging.getLogger(__name__)


def _reject_constant(name):
    raise ValueError(f"Non-standard JSON constant: {name}")


def parse_body(raw_body):
    """Parse raw bytes as JSON.

    Returns (body, body_format): the decoded JSON value and "json", or
    {"raw": text} and "raw" when the bytes aren't valid JSON. NaN/Infinity
    and payloads nested too deeply to decode also fall back to raw.
    """
    try:
        body = json.loads(raw_body, parse_constant=_reject_constant)
        return body, WebhookEvent.BODY_JSON
    except (ValueError, TypeError, RecursionError):
        text = raw_body.decode("utf-8", errors="replace")
        return {"raw": text}, WebhookEvent.BODY_RAW


def body_field(body, name):
    """Return a top-level string field of a JSON object body, else None."""
    if not isinstance(body, dict):
        return None
    value = body.get(name)
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        return str(value)[:255]
    return None


def get_header(headers, name):
    """Case-insensitive lookup. Repeated headers return the first value."""
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            if isinstance(value, (list, tuple)):
                return value[0] if value else None
            return value
    return None


def ingest_webhook(store, provider, raw_body, headers, secret=None,
                   signature_provider="stripe",
                   signature_header="Stripe-Signature"):
    """Build, verify and store one captured webhook.

    Args:
        store: The app's EventStore.
        provider: Provider tag (URL path segment).
        raw_body: Request body exactly as received (bytes or str).
        headers: Mapping of header name -> value or list of values.
        secret: Signing secret for signature_provider, if configured.
        signature_provider: The one provider whose signatures are checked.
        signature_header: Header carrying that provider's signature.

    Returns:
        The stored WebhookEvent (id and received_at assigned).
    """
    if isinstance(raw_body, str):
        raw_body = raw_body.encode("utf-8")
    raw_body = raw_body or b""

    body, body_format = parse_body(raw_body)

    verified = False
    verification_details = {}

    if provider == signature_provider:
        signature = get_header(headers, signature_header)
        if signature and secret:
            verification_details = verify_signature(raw_body, signature, secret)
            verified = bool(verification_details.get("valid"))
            if not verified:
                logger.warning(
                    f"{provider} webhook failed verification: "
                    f"{verification_details.get('error')}"
                )

    event = WebhookEvent(
        provider=provider,
        headers=dict(headers),
        body=body,
        body_format=body_format,
        raw_body=raw_body,
        verified=verified,
        verification_details=verification_details,
        provider_event_id=body_field(body, "id"),
        event_type=body_field(body, "type"),
    )
    event = store.add(event)

    logger.info(f"Received {provider} webhook: {event.id}")
    return event
