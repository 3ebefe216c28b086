"""Persisted settings: last connection info and preferred timezone.

A small JSON document kept apart from the TOML configuration because it
is written by the client itself after every successful login.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from qbtui.utils.exceptions import ConfigurationError
from qbtui.utils.timezones import DEFAULT_TIMEZONE, validate_timezone

logger = logging.getLogger(__name__)

SETTINGS_ENV = "QBTUI_SETTINGS_FILE"


def default_settings_path() -> Path:
    override = os.getenv(SETTINGS_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".qbtui" / "settings.json"


class Settings(BaseModel):
    """Values remembered between runs."""

    last_url: str | None = Field(None, description="Last WebUI URL that logged in")
    last_username: str | None = Field(None, description="Last username that logged in")
    timezone: str = Field(DEFAULT_TIMEZONE, description="Timezone for diagnostic logs")


class SettingsStore:
    """Load and save :class:`Settings` with default fallback."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path).expanduser() if path else default_settings_path()
        self._settings: Settings | None = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> Settings:
        """Read settings from disk; any problem yields defaults."""
        if not self.path.exists():
            self._settings = Settings()
            return self._settings
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            self._settings = Settings.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("Failed to read settings file %s: %s", self.path, e)
            self._settings = Settings()
        return self._settings

    def save(self, last_url: str, last_username: str) -> None:
        """Remember the connection that just logged in."""
        updated = self.settings.model_copy(
            update={"last_url": last_url, "last_username": last_username}
        )
        self._write(updated)

    def set_timezone(self, name: str) -> None:
        """Persist a validated timezone name."""
        validate_timezone(name)
        self._write(self.settings.model_copy(update={"timezone": name}))

    def _write(self, settings: Settings) -> None:
        # Write atomically (temp file, then rename)
        temp_file = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_file.write_text(
                json.dumps(settings.model_dump(mode="json"), indent=2),
                encoding="utf-8",
            )
            os.replace(temp_file, self.path)
        except OSError as e:
            msg = f"Failed to save settings: {e}"
            raise ConfigurationError(msg, {"path": str(self.path)}) from e
        self._settings = settings
        logger.debug("Saved settings to %s", self.path)
