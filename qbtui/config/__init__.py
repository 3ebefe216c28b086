"""Configuration management.

This module handles configuration loading and the settings remembered
between runs.
"""

from __future__ import annotations

from qbtui.config.config import ConfigManager, get_config, init_config
from qbtui.config.settings import Settings, SettingsStore
from qbtui.models import Config

__all__ = [
    "Config",
    "ConfigManager",
    "Settings",
    "SettingsStore",
    "get_config",
    "init_config",
]
