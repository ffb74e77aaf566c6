"""Tests for the ``bandmate-ingest`` CLI."""

from __future__ import annotations

import sys

import pytest
from typer.testing import CliRunner

from bandmate_ingest import api
from bandmate_ingest.cli import app

runner = CliRunner()

_cli_collaborators = None


def build_collaborators(settings):
    return _cli_collaborators


@pytest.fixture
def cli_env(monkeypatch, collaborators):
    for name in ("INGEST_BROKER_URL", "REDIS_URL", "INGEST_COLLABORATORS_FACTORY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("INGEST_FANOUT_DELAY_SECONDS", "0")
    monkeypatch.setattr(api, "configure_logging", lambda **kwargs: None)
    monkeypatch.setattr(sys.modules[__name__], "_cli_collaborators", collaborators)
    return monkeypatch


def use_factory(env) -> None:
    env.setenv("INGEST_COLLABORATORS_FACTORY", f"{__name__}:build_collaborators")


class TestSubmitCommands:
    def test_artist_runs_to_completion(self, cli_env, store):
        use_factory(cli_env)

        result = runner.invoke(app, ["artist", "Test Artist", "--submitter", "user-1"])

        assert result.exit_code == 0, result.output
        assert len(store.works) == 3
        assert not api.is_configured()

    def test_song_with_force(self, cli_env, store):
        use_factory(cli_env)

        runner.invoke(app, ["song", "rec-1", "-s", "user-1"])
        result = runner.invoke(app, ["song", "rec-1", "-s", "user-2", "--force"])

        assert result.exit_code == 0, result.output
        (work_id,) = store.works
        assert [a.submitter_id for a in store.arrangements[work_id]] == ["user-1", "user-2"]

    def test_missing_factory_exits_2(self, cli_env):
        result = runner.invoke(app, ["artist", "Test Artist", "--submitter", "user-1"])
        assert result.exit_code == 2

    def test_submitter_required(self, cli_env):
        result = runner.invoke(app, ["artist", "Test Artist"])
        assert result.exit_code != 0


class TestProbe:
    def test_no_broker_reports_fallback(self, cli_env):
        result = runner.invoke(app, ["probe"])
        assert result.exit_code == 1
        assert "fallback" in result.output
