"""Tests for the colorvision command line."""

import pytest
from typer.testing import CliRunner

from colorvision_dashboard import cli
from colorvision_dashboard.config import get_settings

runner = CliRunner()


@pytest.fixture
def sweep_calls(monkeypatch):
    calls = []

    def fake_reconcile(session_factory, timeout_seconds):
        calls.append(timeout_seconds)
        return 2

    monkeypatch.setattr(cli, "configure_logging", lambda settings: None)
    monkeypatch.setattr(cli, "get_session_local", lambda: None)
    monkeypatch.setattr(cli, "reconcile_stale_jobs", fake_reconcile)
    return calls


class TestSweep:
    def test_default_timeout_comes_from_settings(self, sweep_calls):
        result = runner.invoke(cli.app, ["sweep"])

        assert result.exit_code == 0
        assert "Failed 2 stale job(s)" in result.output
        assert sweep_calls == [get_settings().processing_timeout_seconds]

    def test_explicit_timeout(self, sweep_calls):
        result = runner.invoke(cli.app, ["sweep", "--timeout", "30"])

        assert result.exit_code == 0
        assert sweep_calls == [30]

    def test_zero_timeout_is_honoured(self, sweep_calls):
        result = runner.invoke(cli.app, ["sweep", "--timeout", "0"])

        assert result.exit_code == 0
        assert sweep_calls == [0]
