"""Unit tests for the command line entry point."""

from __future__ import annotations

import json

import pytest
import toml
from click.testing import CliRunner

from qbtui import __version__
from qbtui.cli.main import cli, initial_session
from qbtui.config.settings import SettingsStore
from qbtui.interface.session import InputFocus, ModeKind
from qbtui.models import Config

pytestmark = [pytest.mark.unit, pytest.mark.cli]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def store(tmp_path):
    return SettingsStore(tmp_path / "settings.json")


class TestCommand:
    """Tests for flag handling before the session starts."""

    def test_help(self, runner):
        result = runner.invoke(cli, ["-h"])
        assert result.exit_code == 0
        assert "--list-timezones" in result.output
        assert "--password" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_list_timezones(self, runner):
        result = runner.invoke(cli, ["--list-timezones"])
        assert result.exit_code == 0
        assert "Europe/London" in result.output
        assert "timezones available" in result.output

    def test_unknown_timezone_is_usage_error(self, runner, tmp_path):
        result = runner.invoke(cli, ["--timezone", "Mars/Olympus"])
        assert result.exit_code == 2
        assert "Unknown timezone" in result.output
        assert not (tmp_path / "settings.json").exists()

    def test_requires_terminal(self, runner, tmp_path):
        result = runner.invoke(cli, ["--timezone", "Europe/Paris", "--log-level", "debug"])
        assert result.exit_code == 1
        assert "interactive terminal" in result.output

        saved = json.loads((tmp_path / "settings.json").read_text())
        assert saved["timezone"] == "Europe/Paris"
        assert "qbtui 0.1.0 starting" in (tmp_path / "qbtui.log").read_text()

    def test_missing_config_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["--config", str(tmp_path / "nope.toml")])
        assert result.exit_code == 2

    def test_invalid_config_file(self, runner, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[ui]\nrefresh_interval = -1\n")
        result = runner.invoke(cli, ["--config", str(path)])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_print_config(self, runner, tmp_path):
        path = tmp_path / "qbtui.toml"
        path.write_text("[ui]\nrefresh_interval = 5.0\n")
        result = runner.invoke(
            cli, ["--config", str(path), "--print-config", "--log-level", "debug"]
        )
        assert result.exit_code == 0
        exported = toml.loads(result.output)
        assert exported["ui"]["refresh_interval"] == 5.0
        assert exported["observability"]["log_level"] == "DEBUG"
        assert not (tmp_path / "qbtui.log").exists()

    def test_bad_log_level(self, runner):
        result = runner.invoke(cli, ["--log-level", "chatty"])
        assert result.exit_code == 2


class TestInitialSession:
    """Tests for choosing the startup screen and prefilled fields."""

    def test_defaults(self, store):
        session = initial_session(Config(), store, None, None, None)
        assert session.mode.kind is ModeKind.CONNECTION_SETUP
        assert session.focus is InputFocus.URL
        assert session.buffers.url == "http://localhost:8080"
        assert session.buffers.username == ""

    def test_saved_connection_prefills(self, store):
        store.save("http://nas:8080", "admin")
        session = initial_session(Config(), store, None, None, None)
        assert session.buffers.url == "http://nas:8080"
        assert session.buffers.username == "admin"

    def test_flags_win_over_saved(self, store):
        store.save("http://nas:8080", "admin")
        session = initial_session(Config(), store, "http://other:9090", "bob", None)
        assert session.buffers.url == "http://other:9090"
        assert session.buffers.username == "bob"
        assert session.mode.kind is ModeKind.CONNECTION_SETUP

    def test_password_without_username_drops_saved_username(self, store):
        store.save("http://nas:8080", "admin")
        session = initial_session(Config(), store, None, None, "secret")
        assert session.buffers.username == ""
        assert session.mode.kind is ModeKind.CONNECTION_SETUP

    def test_credentials_skip_setup(self, store):
        session = initial_session(Config(), store, None, "admin", "secret")
        assert session.mode.kind is ModeKind.AUTHENTICATING
        assert session.buffers.password == "secret"
