"""Tests for the Flask CLI commands.

Covers:
- flask sign-payload (header verifies against the file contents)
- flask clear-events (--yes, empty store)
- flask replay (success, unknown event)
"""

from unittest.mock import MagicMock, patch

from playground.services.signature_service import verify_signature


class TestSignPayload:

    def test_signs_file(self, app, tmp_path):
        payload = b'{"type":"charge.succeeded"}'
        path = tmp_path / "event.json"
        path.write_bytes(payload)

        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "sign-payload", str(path), "--secret", "whsec_cli", "--timestamp", "1700000000",
        ])

        assert result.exit_code == 0
        header = result.output.strip()
        assert header.startswith("t=1700000000,v1=")
        assert verify_signature(payload, header, "whsec_cli")["valid"] is True

    def test_defaults_to_configured_secret(self, app, tmp_path):
        payload = b"{}"
        path = tmp_path / "event.json"
        path.write_bytes(payload)

        result = app.test_cli_runner().invoke(args=["sign-payload", str(path)])

        assert result.exit_code == 0
        header = result.output.strip()
        assert verify_signature(payload, header, app.config["STRIPE_WEBHOOK_SECRET"])["valid"] is True


class TestClearEvents:

    def test_clear_with_yes(self, app, store, make_event):
        make_event()
        make_event()

        result = app.test_cli_runner().invoke(args=["clear-events", "--yes"])

        assert result.exit_code == 0
        assert "Cleared 2 events" in result.output
        assert store.count() == 0

    def test_abort_on_no(self, app, store, make_event):
        make_event()

        result = app.test_cli_runner().invoke(args=["clear-events"], input="n\n")

        assert "Aborted." in result.output
        assert store.count() == 1

    def test_nothing_to_clear(self, app):
        result = app.test_cli_runner().invoke(args=["clear-events", "--yes"])
        assert "No events to clear." in result.output


class TestReplayCommand:

    @patch("playground.services.replay_service.requests.post")
    def test_replay(self, mock_post, app, store, make_event):
        event_id = make_event().id
        resp = MagicMock(status_code=200, reason="OK", text="thanks")
        mock_post.return_value = resp

        result = app.test_cli_runner().invoke(
            args=["replay", str(event_id), "http://localhost:3000/hook"]
        )

        assert result.exit_code == 0
        assert "OK  HTTP 200 OK" in result.output
        assert "thanks" in result.output
        assert len(store.list_replay_attempts(event_id)) == 1

    def test_unknown_event(self, app):
        result = app.test_cli_runner().invoke(
            args=["replay", "999", "http://localhost:3000/hook"]
        )
        assert result.exit_code != 0
        assert "Event 999 not found." in result.output
