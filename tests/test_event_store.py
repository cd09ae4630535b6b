"""Tests for the EventStore.

Covers:
- id / received_at assignment
- Retention cap (exact most-recent N kept, oldest evicted)
- Newest-first listing with provider / verified filters
- Absent lookups
- clear_all (count returned, attempts cascaded)
- Replay attempts (append, newest-first, removed with evicted events)
"""

import pytest

from playground.extensions import db
from playground.models.webhook_event import ReplayAttempt, WebhookEvent
from playground.services.event_store import EventStore


def _event(provider="generic", verified=False, raw_body=b"{}"):
    return WebhookEvent(
        provider=provider,
        headers={},
        body={},
        raw_body=raw_body,
        verified=verified,
        verification_details={},
    )


class TestAdd:

    def test_assigns_id_and_received_at(self, store):
        event = store.add(_event())
        assert event.id is not None
        assert event.received_at is not None
        assert store.count() == 1

    def test_ids_increase(self, store):
        ids = [store.add(_event()).id for _ in range(5)]
        assert ids == sorted(ids)
        assert len(set(ids)) == 5

    def test_max_events_must_be_positive(self):
        with pytest.raises(ValueError):
            EventStore(db, max_events=0)


class TestRetention:

    def test_keeps_exactly_the_most_recent(self):
        small = EventStore(db, max_events=3)
        ids = [small.add(_event()).id for _ in range(7)]

        assert small.count() == 3
        kept = [e.id for e in small.list_events()]
        assert kept == list(reversed(ids[-3:]))
        for evicted_id in ids[:4]:
            assert small.get_event(evicted_id) is None

    def test_default_cap_drops_the_first_of_101(self, store):
        """101 events with MAX_EVENTS=100 -> 100 kept, the first one gone."""
        assert store.max_events == 100
        ids = [store.add(_event()).id for _ in range(101)]

        assert store.count() == 100
        listed = [e.id for e in store.list_events()]
        assert len(listed) == 100
        assert ids[0] not in listed
        assert ids[-1] == listed[0]

    def test_eviction_removes_replay_attempts(self):
        small = EventStore(db, max_events=1)
        first = small.add(_event())
        small.add_replay_attempt(ReplayAttempt(
            event_id=first.id, target_url="http://example.test", success=True,
        ))
        first_id = first.id

        small.add(_event())

        assert small.list_replay_attempts(first_id) == []
        assert ReplayAttempt.query.count() == 0


class TestListEvents:

    def test_newest_first(self, store):
        ids = [store.add(_event()).id for _ in range(3)]
        assert [e.id for e in store.list_events()] == list(reversed(ids))

    def test_provider_filter(self, store):
        store.add(_event(provider="stripe"))
        store.add(_event(provider="github"))
        store.add(_event(provider="stripe"))

        events = store.list_events(provider="stripe")
        assert len(events) == 2
        assert all(e.provider == "stripe" for e in events)

    def test_provider_filter_is_exact(self, store):
        store.add(_event(provider="stripe-test"))
        assert store.list_events(provider="stripe") == []

    def test_verified_filter(self, store):
        store.add(_event(verified=True))
        store.add(_event(verified=False))

        assert [e.verified for e in store.list_events(verified=True)] == [True]
        assert [e.verified for e in store.list_events(verified=False)] == [False]
        assert len(store.list_events()) == 2

    def test_combined_filters(self, store):
        store.add(_event(provider="stripe", verified=True))
        store.add(_event(provider="stripe", verified=False))
        store.add(_event(provider="github", verified=True))

        events = store.list_events(provider="stripe", verified=True)
        assert len(events) == 1
        assert events[0].provider == "stripe"
        assert events[0].verified is True


class TestGetEvent:

    def test_found(self, store):
        event = store.add(_event(raw_body=b"hello"))
        found = store.get_event(event.id)
        assert found is not None
        assert found.raw_body == b"hello"

    def test_unknown_id_is_none(self, store):
        assert store.get_event(999) is None

    def test_non_integer_id_is_none(self, store):
        assert store.get_event("abc") is None
        assert store.get_event(None) is None


class TestClearAll:

    def test_returns_count(self, store):
        for _ in range(4):
            store.add(_event())
        assert store.clear_all() == 4
        assert store.count() == 0
        assert store.list_events() == []

    def test_empty_store(self, store):
        assert store.clear_all() == 0

    def test_cascades_to_replay_attempts(self, store):
        event = store.add(_event())
        store.add_replay_attempt(ReplayAttempt(
            event_id=event.id, target_url="http://example.test", success=False,
            error="boom",
        ))
        event_id = event.id

        store.clear_all()

        assert store.list_replay_attempts(event_id) == []
        assert ReplayAttempt.query.count() == 0


class TestReplayAttempts:

    def test_newest_first(self, store):
        event = store.add(_event())
        first = store.add_replay_attempt(ReplayAttempt(
            event_id=event.id, target_url="http://one.test", success=True,
        ))
        second = store.add_replay_attempt(ReplayAttempt(
            event_id=event.id, target_url="http://two.test", success=False,
        ))

        attempts = store.list_replay_attempts(event.id)
        assert [a.id for a in attempts] == [second.id, first.id]
        assert attempts[0].replayed_at is not None

    def test_scoped_to_event(self, store):
        a = store.add(_event())
        b = store.add(_event())
        store.add_replay_attempt(ReplayAttempt(
            event_id=a.id, target_url="http://a.test", success=True,
        ))

        assert len(store.list_replay_attempts(a.id)) == 1
        assert store.list_replay_attempts(b.id) == []

    def test_unknown_event_not_recorded(self, store):
        attempt = store.add_replay_attempt(ReplayAttempt(
            event_id=999, target_url="http://gone.test", success=True,
        ))

        assert attempt is None
        assert ReplayAttempt.query.count() == 0

    def test_cleared_event_not_recorded(self, store):
        event = store.add(_event())
        event_id = event.id
        store.clear_all()

        attempt = store.add_replay_attempt(ReplayAttempt(
            event_id=event_id, target_url="http://gone.test", success=False,
        ))

        assert attempt is None
        assert ReplayAttempt.query.count() == 0
