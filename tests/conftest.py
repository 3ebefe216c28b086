"""Pytest configuration and shared fixtures for qbtui tests."""

from __future__ import annotations

import logging
import os

import pytest

from qbtui.config.config import reset_config
from qbtui.models import Torrent


def pytest_configure(config):
    """Register all project markers to avoid warnings when ini isn't loaded."""
    markers = [
        ("asyncio", "marks tests as async (deselect with '-m \"not asyncio\"')"),
        ("unit", "marks tests as unit tests"),
        ("interface", "marks tests of the interactive session"),
        ("client", "marks tests of the WebUI client"),
        ("config", "marks tests of configuration and settings"),
        ("cli", "marks tests as CLI tests"),
        ("property", "marks tests as property-based tests"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep tests away from the user's settings, config and log files."""
    for name in list(os.environ):
        if name.startswith("QBTUI_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("QBTUI_SETTINGS_FILE", str(tmp_path / "settings.json"))
    monkeypatch.setenv("QBTUI_LOG_FILE", str(tmp_path / "qbtui.log"))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    yield
    reset_config()


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Clean up logging handlers after each test to prevent closed file errors."""
    yield
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)


def make_torrent(index: int, **overrides) -> Torrent:
    """Build a torrent record with predictable fields."""
    data = {
        "hash": f"{index:040x}",
        "name": f"Torrent {index:03d}",
        "size": 1024 * 1024 * (index + 1),
        "progress": 0.5,
        "dlspeed": 1024,
        "upspeed": 0,
        "eta": 3600,
        "state": "downloading",
    }
    data.update(overrides)
    return Torrent.model_validate(data)


@pytest.fixture
def torrent_factory():
    """Factory fixture for torrent records."""
    return make_torrent


@pytest.fixture
def torrents():
    """Twenty-five downloading torrents."""
    return [make_torrent(i) for i in range(25)]
