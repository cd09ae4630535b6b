"""Captured webhook models.

- WebhookEvent: one inbound webhook exactly as it arrived. Rows are never
  updated after insert; they are only evicted (retention cap) or cleared.
- ReplayAttempt: one outbound replay of a WebhookEvent. Append-only.

All reads and writes go through services/event_store.EventStore.
"""

from datetime import datetime, timezone

from playground.extensions import db


def _utcnow():
    return datetime.now(timezone.utc)


class WebhookEvent(db.Model):
    __tablename__ = "webhook_events"

    # -- Body formats --
    BODY_JSON = "json"
    BODY_RAW = "raw"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    received_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, index=True
    )
    provider = db.Column(
        db.Text, nullable=False, index=True
    )  # e.g. "stripe", "github", "generic"
    headers = db.Column(db.JSON, nullable=False, default=dict)
    body = db.Column(db.JSON, nullable=True)  # parsed JSON or {"raw": text}
    body_format = db.Column(
        db.String(10), nullable=False, default=BODY_JSON
    )  # json | raw
    raw_body = db.Column(
        db.LargeBinary, nullable=False, default=b""
    )  # exact bytes received, used for replay + signature checks
    verified = db.Column(db.Boolean, nullable=False, default=False, index=True)
    verification_details = db.Column(db.JSON, nullable=False, default=dict)
    provider_event_id = db.Column(db.String(255), nullable=True)  # e.g. "evt_1Abc..."
    event_type = db.Column(db.String(255), nullable=True)  # e.g. "charge.succeeded"

    # --- Relationships ---
    replay_attempts = db.relationship(
        "ReplayAttempt",
        back_populates="event",
        lazy="dynamic",
        passive_deletes=True,
    )

    @property
    def raw_text(self):
        """Raw body as text for display. Undecodable bytes are replaced."""
        return (self.raw_body or b"").decode("utf-8", errors="replace")

    def to_dict(self):
        return {
            "id": self.id,
            "receivedAt": _isoformat(self.received_at),
            "provider": self.provider,
            "headers": self.headers or {},
            "body": self.body,
            "bodyFormat": self.body_format,
            "rawBody": self.raw_text,
            "verified": bool(self.verified),
            "verificationDetails": self.verification_details or {},
            "providerEventId": self.provider_event_id,
            "eventType": self.event_type,
        }

    def __repr__(self):
        return f"<WebhookEvent {self.id} ({self.provider}, verified={self.verified})>"


class ReplayAttempt(db.Model):
    __tablename__ = "replay_attempts"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    event_id = db.Column(
        db.Integer,
        db.ForeignKey("webhook_events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    target_url = db.Column(db.Text, nullable=False)
    status_code = db.Column(db.Integer, nullable=True)  # absent on transport failure
    response_body = db.Column(db.Text, nullable=True)
    success = db.Column(db.Boolean, nullable=False, default=False)
    error = db.Column(db.Text, nullable=True)
    replayed_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow
    )

    # --- Relationships ---
    event = db.relationship("WebhookEvent", back_populates="replay_attempts")

    def to_dict(self):
        return {
            "id": self.id,
            "eventId": self.event_id,
            "targetUrl": self.target_url,
            "statusCode": self.status_code,
            "responseBody": self.response_body,
            "success": bool(self.success),
            "error": self.error,
            "replayedAt": _isoformat(self.replayed_at),
        }

    def __repr__(self):
        return f"<ReplayAttempt event={self.event_id} success={self.success}>"


def _isoformat(value):
    if value is None:
        return None
    # SQLite hands back naive datetimes; they were written as UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
