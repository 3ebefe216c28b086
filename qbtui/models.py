"""Pydantic models for qbtui.

Provides validated records for the qBittorrent WebUI responses and the
configuration tree.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator

# qBittorrent reports this ETA for torrents that will never finish
ETA_INFINITY = 8640000

STATE_DOWNLOAD = frozenset(
    {"downloading", "forcedDL", "metaDL", "forcedMetaDL", "allocating"}
)
STATE_UPLOAD = frozenset({"uploading", "forcedUP"})
STATE_PAUSED = frozenset({"pausedDL", "pausedUP", "stoppedDL", "stoppedUP"})
STATE_QUEUED = frozenset({"queuedDL", "queuedUP", "queuedForChecking"})
STATE_STALLED = frozenset({"stalledDL", "stalledUP"})
STATE_ERROR = frozenset({"error", "missingFiles", "unknown"})
STATE_CHECKING = frozenset(
    {"checkingDL", "checkingUP", "checkingResumeData", "moving"}
)

# States for which an ETA is meaningful
STATE_ETA = frozenset({"downloading", "stalledDL", "queuedDL", "forcedDL", "metaDL"})


class StateGroup(str, Enum):
    """Coarse grouping of torrent state labels."""

    DOWNLOADING = "downloading"
    UPLOADING = "uploading"
    PAUSED = "paused"
    QUEUED = "queued"
    STALLED = "stalled"
    ERROR = "error"
    CHECKING = "checking"
    OTHER = "other"


def state_group(state: str) -> StateGroup:
    """Map a raw qBittorrent state label onto its group."""
    if state in STATE_DOWNLOAD:
        return StateGroup.DOWNLOADING
    if state in STATE_UPLOAD:
        return StateGroup.UPLOADING
    if state in STATE_PAUSED:
        return StateGroup.PAUSED
    if state in STATE_QUEUED:
        return StateGroup.QUEUED
    if state in STATE_STALLED:
        return StateGroup.STALLED
    if state in STATE_ERROR:
        return StateGroup.ERROR
    if state in STATE_CHECKING:
        return StateGroup.CHECKING
    return StateGroup.OTHER


class Torrent(BaseModel):
    """One torrent as reported by ``/api/v2/torrents/info``.

    Instances are immutable snapshots; a refresh replaces the whole list.
    """

    model_config = {"frozen": True, "extra": "ignore"}

    hash: str = Field(..., min_length=1, description="Info hash (identity)")
    name: str = Field("", description="Display name")
    size: int = Field(0, description="Total size in bytes")
    progress: float = Field(0.0, description="Completion fraction")
    dlspeed: int = Field(0, description="Download rate in bytes/sec")
    upspeed: int = Field(0, description="Upload rate in bytes/sec")
    eta: int | None = Field(None, description="Estimated seconds remaining")
    state: str = Field("unknown", description="State label")
    priority: int | None = Field(None, description="Queue position")
    num_seeds: int | None = Field(None, description="Connected seeds")
    num_leechs: int | None = Field(None, description="Connected peers")
    ratio: float | None = Field(None, description="Share ratio")
    category: str | None = Field(None, description="Category name")
    tags: str | None = Field(None, description="Comma separated tags")
    added_on: int | None = Field(None, description="Unix time added")
    completion_on: int | None = Field(None, description="Unix time completed")
    downloaded: int | None = Field(None, description="Bytes downloaded")
    uploaded: int | None = Field(None, description="Bytes uploaded")

    @field_validator("progress")
    @classmethod
    def clamp_progress(cls, v: float) -> float:
        """Keep progress inside [0, 1]; the daemon occasionally overshoots."""
        return min(1.0, max(0.0, v))

    @property
    def is_paused(self) -> bool:
        """Whether a toggle on this torrent should resume it."""
        return self.state in STATE_PAUSED

    @property
    def group(self) -> StateGroup:
        return state_group(self.state)


class ServerState(BaseModel):
    """Transfer summary from ``/api/v2/transfer/info``."""

    model_config = {"frozen": True, "extra": "ignore"}

    connection_status: str = Field("unknown", description="connected/firewalled/disconnected")
    dht_nodes: int | None = Field(None, description="DHT node count")
    dl_info_data: int = Field(0, description="Bytes downloaded this session")
    dl_info_speed: int = Field(0, description="Global download rate")
    dl_rate_limit: int | None = Field(None, description="Global download limit (0 = none)")
    up_info_data: int = Field(0, description="Bytes uploaded this session")
    up_info_speed: int = Field(0, description="Global upload rate")
    up_rate_limit: int | None = Field(None, description="Global upload limit (0 = none)")
    queueing: bool | None = Field(None, description="Queueing enabled")
    use_alt_speed_limits: bool | None = Field(None, description="Alternative limits active")
    refresh_interval: int | None = Field(None, description="Suggested refresh in ms")


class Category(BaseModel):
    """Torrent category."""

    model_config = {"frozen": True, "extra": "ignore", "populate_by_name": True}

    name: str
    save_path: str = Field("", alias="savePath")


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ConnectionConfig(BaseModel):
    """Remote WebUI connection configuration."""

    default_url: str = Field(
        default="http://localhost:8080",
        description="WebUI URL used when none was saved or passed",
    )
    request_timeout: float = Field(
        default=10.0,
        ge=0.5,
        le=300.0,
        description="Total timeout per HTTP request in seconds",
    )
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")


class UIConfig(BaseModel):
    """Interactive session configuration."""

    refresh_interval: float = Field(
        default=2.0,
        ge=0.5,
        le=3600.0,
        description="Seconds between automatic refreshes while browsing",
    )
    input_poll_interval: float = Field(
        default=0.1,
        ge=0.01,
        le=1.0,
        description="Longest wait for input before the refresh timer is checked",
    )
    min_width: int = Field(default=80, ge=20, description="Minimum usable terminal width")
    min_height: int = Field(default=24, ge=12, description="Minimum usable terminal height")


class ObservabilityConfig(BaseModel):
    """Logging configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    log_file: str | None = Field(
        default="~/.qbtui/qbtui-debug.log",
        description="Diagnostic log file path (empty disables file logging)",
    )
    structured_logging: bool = Field(
        default=False,
        description="Write JSON lines instead of plain text",
    )
    log_correlation_id: bool = Field(
        default=True,
        description="Include correlation IDs",
    )


class Config(BaseModel):
    """Main configuration model."""

    connection: ConnectionConfig = Field(
        default_factory=ConnectionConfig,
        description="Connection configuration",
    )
    ui: UIConfig = Field(
        default_factory=UIConfig,
        description="Interactive session configuration",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )
