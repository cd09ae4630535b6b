"""Event store — bounded, ordered persistence of captured webhooks.

One EventStore is constructed per app in create_app() and shared by every
request handler (see extensions.get_event_store). Nothing else reads or
writes WebhookEvent / ReplayAttempt rows.

Writes (add, clear_all, add_replay_attempt) are serialized by a lock and each
commits as one transaction, so the evict-to-cap step of add() and clear_all()
can never interleave. Reads take no lock.

Retention: at most max_events events. Adding past the cap evicts the oldest
by received_at (ties broken by id) in the same transaction. Replay attempts
of evicted or cleared events are deleted with them.
"""

import logging
import threading
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from playground.models.webhook_event import ReplayAttempt, WebhookEvent

logger = logging.getLogger(__name__)

DEFAULT_MAX_EVENTS = 100


class EventStore:
    """Single source of truth for events and their replay attempts."""

    def __init__(self, db, max_events=DEFAULT_MAX_EVENTS):
        if max_events < 1:
            raise ValueError("max_events must be at least 1.")
        self.db = db
        self.max_events = max_events
        self._write_lock = threading.Lock()

    # ──────────────────────────────────────────────
    # Events
    # ──────────────────────────────────────────────

    def add(self, event):
        """Persist a new (unsaved) WebhookEvent and enforce the retention cap.

        Assigns id and received_at. Returns the stored event.
        """
        with self._write_lock:
            try:
                event.received_at = datetime.now(timezone.utc)
                self.db.session.add(event)
                self.db.session.flush()
                evicted = self._evict_over_cap()
                self.db.session.commit()
            except Exception:
                self.db.session.rollback()
                raise

        if evicted:
            logger.info(f"Evicted {evicted} old event(s) to stay at {self.max_events}")
        return event

    def _evict_over_cap(self):
        """Delete the oldest events beyond max_events. Caller holds the lock."""
        excess = WebhookEvent.query.count() - self.max_events
        if excess <= 0:
            return 0

        oldest = (
            self.db.session.query(WebhookEvent.id)
            .order_by(WebhookEvent.received_at.asc(), WebhookEvent.id.asc())
            .limit(excess)
            .all()
        )
        old_ids = [row.id for row in oldest]
        if not old_ids:
            return 0

        ReplayAttempt.query.filter(
            ReplayAttempt.event_id.in_(old_ids)
        ).delete(synchronize_session=False)
        WebhookEvent.query.filter(
            WebhookEvent.id.in_(old_ids)
        ).delete(synchronize_session=False)
        return len(old_ids)

    def list_events(self, provider=None, verified=None):
        """Return events newest-first, optionally filtered.

        Args:
            provider: Exact provider tag to match, or None for all.
            verified: True / False to filter on verification, None for all.
        """
        query = WebhookEvent.query
        if provider:
            query = query.filter(WebhookEvent.provider == provider)
        if verified is not None:
            query = query.filter(WebhookEvent.verified == bool(verified))
        return (
            query.order_by(WebhookEvent.received_at.desc(), WebhookEvent.id.desc())
            .limit(self.max_events)
            .all()
        )

    def get_event(self, event_id):
        """Return the event with this id, or None if it doesn't exist."""
        try:
            event_id = int(event_id)
        except (TypeError, ValueError):
            return None
        return self.db.session.get(WebhookEvent, event_id)

    def count(self):
        return WebhookEvent.query.count()

    def clear_all(self):
        """Delete every event and its replay attempts. Returns events removed."""
        with self._write_lock:
            try:
                removed = WebhookEvent.query.count()
                ReplayAttempt.query.delete(synchronize_session=False)
                WebhookEvent.query.delete(synchronize_session=False)
                self.db.session.commit()
            except Exception:
                self.db.session.rollback()
                raise

        logger.info(f"Cleared {removed} events")
        return removed

    # ──────────────────────────────────────────────
    # Replay attempts
    # ──────────────────────────────────────────────

    def add_replay_attempt(self, attempt):
        """Persist a new (unsaved) ReplayAttempt.

        Returns the stored attempt, or None when its event was evicted or
        cleared since the replay started. Attempts never outlive their event.
        """
        with self._write_lock:
            exists = (
                self.db.session.query(WebhookEvent.id)
                .filter(WebhookEvent.id == attempt.event_id)
                .first()
            )
            if exists is None:
                logger.warning(
                    f"Event {attempt.event_id} was removed during replay; "
                    f"attempt not recorded"
                )
                return None
            try:
                attempt.replayed_at = datetime.now(timezone.utc)
                self.db.session.add(attempt)
                self.db.session.commit()
            except IntegrityError:
                # Removed by another process between the check and the insert.
                self.db.session.rollback()
                logger.warning(
                    f"Event {attempt.event_id} was removed during replay; "
                    f"attempt not recorded"
                )
                return None
            except Exception:
                self.db.session.rollback()
                raise
        return attempt

    def list_replay_attempts(self, event_id):
        """Return the replay attempts for one event, newest-first."""
        return (
            ReplayAttempt.query.filter_by(event_id=event_id)
            .order_by(ReplayAttempt.replayed_at.desc(), ReplayAttempt.id.desc())
            .all()
        )
