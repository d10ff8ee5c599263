"""Unit tests for the CLI — Typer command registration and basic behavior.

Exercises command registration, help output, offline inspection and
provisioning via typer.testing.CliRunner.  Nothing here talks to Pub/Sub.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from userrelay.bridge.transport import TransportError
from userrelay.cli.app import app
from userrelay.cli.commands import run as run_module
from userrelay.cli.commands import setup_pubsub as setup_pubsub_module

runner = CliRunner()


# ---------------------------------------------------------------------------
# Test: CLI help and registration
# ---------------------------------------------------------------------------


class TestCliApp:
    """The CLI must register all expected commands and show help."""

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        # Typer's no_args_is_help may exit with 0 or 2 depending on version
        assert result.exit_code in (0, 2)
        assert "usage" in result.output.lower()

    def test_help_flag(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "run" in result.output
        assert "inspect" in result.output
        assert "setup-pubsub" in result.output

    @pytest.mark.parametrize("command", ["run", "inspect", "setup-pubsub"])
    def test_command_help(self, command):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0


# ---------------------------------------------------------------------------
# Test: inspect
# ---------------------------------------------------------------------------


class TestInspect:
    def test_outbound_event_is_shown(self, tmp_path, make_relational_payload, make_user_row):
        path = tmp_path / "create.json"
        path.write_bytes(make_relational_payload(after=make_user_row(), op="c"))

        result = runner.invoke(app, ["inspect", str(path), "--message-id", "m-42"])
        assert result.exit_code == 0
        assert "Outbound event m-42" in result.output
        assert "first_name" in result.output
        assert "password_hash" not in result.output

    def test_document_variant(self, tmp_path, make_document_payload, make_user_row):
        path = tmp_path / "create.json"
        path.write_bytes(make_document_payload(after=make_user_row(), op="c"))

        result = runner.invoke(app, ["inspect", str(path), "--variant", "document"])
        assert result.exit_code == 0
        assert "Outbound event" in result.output

    def test_ignored(self, tmp_path, make_relational_payload, make_user_row):
        path = tmp_path / "orders.json"
        path.write_bytes(make_relational_payload(after=make_user_row(), table="orders"))

        result = runner.invoke(app, ["inspect", str(path)])
        assert result.exit_code == 0
        assert "Ignored" in result.output

    def test_suppressed(self, tmp_path, make_relational_payload, make_user_row):
        path = tmp_path / "password.json"
        path.write_bytes(
            make_relational_payload(before=make_user_row(), after=make_user_row(password_hash="h2"))
        )

        result = runner.invoke(app, ["inspect", str(path)])
        assert result.exit_code == 0
        assert "Suppressed" in result.output

    def test_decode_error(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        result = runner.invoke(app, ["inspect", str(path)])
        assert result.exit_code == 1
        assert "Decode error" in result.output

    def test_unknown_variant(self, tmp_path):
        path = tmp_path / "any.json"
        path.write_text("{}")

        result = runner.invoke(app, ["inspect", str(path), "--variant", "graph"])
        assert result.exit_code == 2

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["inspect", str(tmp_path / "absent.json")])
        assert result.exit_code != 0


# ---------------------------------------------------------------------------
# Test: setup-pubsub
# ---------------------------------------------------------------------------


class TestSetupPubSub:
    def test_provisions_topology(self, monkeypatch):
        provision = MagicMock(
            return_value=[("projects/p/topics/t", "projects/p/subscriptions/s")]
        )
        monkeypatch.setattr(setup_pubsub_module.provisioning, "provision", provision)

        result = runner.invoke(app, ["setup-pubsub", "p,t:s"])
        assert result.exit_code == 0
        topology = provision.call_args.args[0]
        assert topology.project_id == "p"
        assert topology.topics == {"t": ["s"]}
        assert "projects/p/subscriptions/s" in result.output

    def test_invalid_topology(self, monkeypatch):
        provision = MagicMock()
        monkeypatch.setattr(setup_pubsub_module.provisioning, "provision", provision)

        result = runner.invoke(app, ["setup-pubsub", ",t:s"])
        assert result.exit_code == 2
        provision.assert_not_called()


# ---------------------------------------------------------------------------
# Test: run
# ---------------------------------------------------------------------------


class _FakeTransport:
    topic_path = "projects/p/topics/out"
    subscription_path = "projects/p/subscriptions/in"

    def __init__(self, subscribe_error: Exception | None = None) -> None:
        self.subscribe_error = subscribe_error
        self.closed = False
        self.config = None

    def publish(self, data, attributes=None):
        return "id"

    def subscribe(self, callback, stop):
        if self.subscribe_error is not None:
            raise self.subscribe_error

    def close(self):
        self.closed = True


@pytest.fixture
def fake_transport(monkeypatch):
    transport = _FakeTransport()

    def _from_config(config, **clients):
        transport.config = config
        return transport

    monkeypatch.setattr(run_module.PubSubTransport, "from_config", _from_config)
    monkeypatch.setattr(run_module, "_configure_logging", lambda level: None)
    monkeypatch.setattr(run_module.signal, "signal", MagicMock())
    return transport


class TestRun:
    def test_options_override_config(self, fake_transport):
        result = runner.invoke(
            app, ["run", "--variant", "document", "--entity", "accounts", "--project", "p9"]
        )
        assert result.exit_code == 0
        assert fake_transport.config.envelope_variant.value == "document"
        assert fake_transport.config.target_entity == "accounts"
        assert fake_transport.config.project_id == "p9"
        assert fake_transport.closed is True

    def test_subscription_failure_exits_nonzero(self, fake_transport):
        fake_transport.subscribe_error = TransportError("stream died")
        result = runner.invoke(app, ["run"])
        assert result.exit_code == 1
        assert fake_transport.closed is True

    def test_invalid_variant(self, fake_transport):
        result = runner.invoke(app, ["run", "--variant", "graph"])
        assert result.exit_code == 2
        assert fake_transport.config is None
