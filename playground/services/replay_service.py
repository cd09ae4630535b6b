"""Replay service — resend a captured webhook to a new target URL.

The outbound request is:
  POST <target_url>
  Content-Type: application/json
  + every original header named x-* or user-agent (case-insensitive)
  body = the stored raw bytes, untouched

Everything else from the original request (Content-Type, Host,
Content-Length, signature headers, ...) is dropped.

One attempt per call, no retries. Every call that gets past validation
records exactly one ReplayAttempt, whether the target answered 2xx, answered
with an error status, or couldn't be reached at all. The store lock is never
held during the outbound call.

The one exception: if the event is evicted or cleared while the outbound call
is in flight, no attempt is stored (attempts never outlive their event) and
the outcome comes back with success=False and an error saying so.
"""

import logging

import requests

from playground.models.webhook_event import ReplayAttempt

logger = logging.getLogger(__name__)

FORWARDED_HEADER_PREFIX = "x-"
FORWARDED_HEADERS = {"user-agent"}

EVENT_REMOVED_ERROR = "Event {event_id} was removed during replay; attempt not recorded"


class EventNotFoundError(LookupError):
    """The event id doesn't resolve to a stored event."""


class ReplayValidationError(ValueError):
    """The replay request is missing something it needs (e.g. target URL)."""


def build_replay_headers(original_headers):
    """Pick the headers that travel with a replay.

    Returns a new dict with a fresh Content-Type plus the original x-* and
    user-agent headers. Repeated headers are joined with ", ".
    """
    headers = {"Content-Type": "application/json"}
    for name, value in (original_headers or {}).items():
        lowered = name.lower()
        if not (lowered.startswith(FORWARDED_HEADER_PREFIX) or lowered in FORWARDED_HEADERS):
            continue
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(v) for v in value)
        headers[name] = str(value)
    return headers


def replay_event(store, event_id, target_url, timeout=None):
    """Replay one stored event to target_url and record the attempt.

    Args:
        store: The app's EventStore.
        event_id: Id of the event to replay.
        target_url: Destination URL.
        timeout: Passed to requests; None means the transport default.

    Returns a dict:
        success: True only for a 2xx response.
        status, statusText, responseBody: When a response came back.
        error: Set whenever success is False.
        attemptId: Id of the recorded ReplayAttempt, None if the event was
            removed while the outbound call was in flight.

    Raises:
        EventNotFoundError: If event_id is unknown.
        ReplayValidationError: If target_url is empty.
    """
    event = store.get_event(event_id)
    if event is None:
        raise EventNotFoundError(f"Event {event_id} not found.")

    target_url = (target_url or "").strip()
    if not target_url:
        raise ReplayValidationError("Target URL is required")

    # Copy what the request needs before letting go of the row.
    stored_event_id = event.id
    raw_body = event.raw_body or b""
    headers = build_replay_headers(event.headers)

    try:
        response = requests.post(
            target_url, data=raw_body, headers=headers, timeout=timeout
        )
    except Exception as e:
        error = str(e) or e.__class__.__name__
        logger.warning(f"Replay of event {stored_event_id} to {target_url} failed: {error}")
        attempt = store.add_replay_attempt(ReplayAttempt(
            event_id=stored_event_id,
            target_url=target_url,
            success=False,
            error=error,
        ))
        outcome = {"success": False, "error": error}
        return _with_attempt(outcome, attempt, stored_event_id)

    success = 200 <= response.status_code < 300
    error = None if success else f"HTTP {response.status_code}: {response.reason}"

    attempt = store.add_replay_attempt(ReplayAttempt(
        event_id=stored_event_id,
        target_url=target_url,
        status_code=response.status_code,
        response_body=response.text,
        success=success,
        error=error,
    ))

    logger.info(
        f"Replayed event {stored_event_id} to {target_url}: "
        f"HTTP {response.status_code}"
    )

    outcome = {
        "success": success,
        "status": response.status_code,
        "statusText": response.reason,
        "responseBody": response.text,
    }
    if error:
        outcome["error"] = error
    return _with_attempt(outcome, attempt, stored_event_id)


def _with_attempt(outcome, attempt, event_id):
    """Attach the attempt id, or flag that the event vanished mid-replay."""
    if attempt is None:
        outcome["success"] = False
        outcome["error"] = EVENT_REMOVED_ERROR.format(event_id=event_id)
        outcome["attemptId"] = None
    else:
        outcome["attemptId"] = attempt.id
    return outcome
