"""Signature service — Stripe-style webhook signature verification.

Header format:  t=<unix timestamp>,v1=<hex signature>[,v1=<hex signature>...]
Signed string:  "<timestamp>.<raw payload>"
Algorithm:      HMAC-SHA256 keyed with the endpoint secret, hex encoded.

verify_signature() never raises: every failure comes back as
{"valid": False, "error": "..."} so ingestion can store the event anyway.

No freshness window is applied to the timestamp. A payload that was signed
once stays valid forever; callers that care can read "timestamp" from the
result.
"""

import hashlib
import hmac
import logging
import time

logger = logging.getLogger(__name__)

TIMESTAMP_KEY = "t"
SIGNATURE_KEY = "v1"


def _to_bytes(value):
    if isinstance(value, bytes):
        return value
    return str(value).encode("utf-8")


def compute_signature(payload, timestamp, secret):
    """Return the hex HMAC-SHA256 of "<timestamp>.<payload>" keyed by secret."""
    signed_payload = _to_bytes(timestamp) + b"." + _to_bytes(payload)
    return hmac.new(_to_bytes(secret), signed_payload, hashlib.sha256).hexdigest()


def build_signature_header(payload, secret, timestamp=None):
    """Build a header value in the format verify_signature() accepts.

    Used by the sign-payload CLI command and by tests.
    """
    if timestamp is None:
        timestamp = int(time.time())
    signature = compute_signature(payload, timestamp, secret)
    return f"{TIMESTAMP_KEY}={timestamp},{SIGNATURE_KEY}={signature}"


def _parse_header(signature_header):
    """Split "k=v,k=v" into (timestamp, [signatures]). Either may be empty."""
    timestamp = None
    signatures = []
    for token in signature_header.split(","):
        key, sep, value = token.strip().partition("=")
        if not sep:
            continue
        key = key.strip()
        value = value.strip()
        if key == TIMESTAMP_KEY and timestamp is None:
            timestamp = value
        elif key == SIGNATURE_KEY and value:
            signatures.append(value)
    return timestamp, signatures


def verify_signature(payload, signature_header, secret):
    """Verify a Stripe-style signature header against the raw payload.

    Args:
        payload: Raw request body (bytes or str), exactly as received.
        signature_header: Value of the signature header.
        secret: Endpoint signing secret.

    Returns a dict:
        valid: True only when a v1 signature matches.
        timestamp: The parsed "t" value, when present.
        error: Failure reason when valid is False.
    """
    if not secret or not signature_header:
        return {"valid": False, "error": "Missing secret or signature"}

    try:
        timestamp, signatures = _parse_header(signature_header)
        if not timestamp or not signatures:
            return {"valid": False, "error": "Invalid signature format"}

        expected = compute_signature(payload, timestamp, secret).encode("ascii")

        # compare_digest is constant-time for equal-length inputs; check
        # every candidate so the loop doesn't exit early on a match either.
        valid = False
        for candidate in signatures:
            if hmac.compare_digest(expected, _to_bytes(candidate)):
                valid = True

        if not valid:
            return {
                "valid": False,
                "timestamp": timestamp,
                "error": "Signature mismatch",
            }
        return {"valid": True, "timestamp": timestamp}

    except Exception as e:
        logger.warning(f"Signature verification error: {e}")
        return {"valid": False, "error": str(e) or e.__class__.__name__}
