"""Unit tests for the pydantic records."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from qbtui.models import (
    Category,
    Config,
    ServerState,
    StateGroup,
    Torrent,
    UIConfig,
    state_group,
)

pytestmark = [pytest.mark.unit]


class TestStateGroup:
    """Tests for state label grouping."""

    @pytest.mark.parametrize(
        ("state", "group"),
        [
            ("downloading", StateGroup.DOWNLOADING),
            ("metaDL", StateGroup.DOWNLOADING),
            ("uploading", StateGroup.UPLOADING),
            ("forcedUP", StateGroup.UPLOADING),
            ("pausedDL", StateGroup.PAUSED),
            ("stoppedUP", StateGroup.PAUSED),
            ("queuedDL", StateGroup.QUEUED),
            ("stalledUP", StateGroup.STALLED),
            ("missingFiles", StateGroup.ERROR),
            ("checkingResumeData", StateGroup.CHECKING),
            ("somethingNew", StateGroup.OTHER),
        ],
    )
    def test_mapping(self, state, group):
        assert state_group(state) is group


class TestTorrent:
    """Tests for the torrent record."""

    def test_minimal_record(self):
        torrent = Torrent.model_validate({"hash": "abc"})
        assert torrent.name == ""
        assert torrent.state == "unknown"
        assert torrent.eta is None

    def test_hash_required(self):
        with pytest.raises(ValidationError):
            Torrent.model_validate({"name": "x"})
        with pytest.raises(ValidationError):
            Torrent.model_validate({"hash": ""})

    def test_unknown_fields_ignored(self):
        torrent = Torrent.model_validate({"hash": "abc", "magnet_uri": "magnet:?", "seq_dl": True})
        assert not hasattr(torrent, "magnet_uri")

    @pytest.mark.parametrize(("raw", "clamped"), [(-0.1, 0.0), (0.25, 0.25), (1.0000002, 1.0)])
    def test_progress_clamped(self, raw, clamped):
        assert Torrent(hash="abc", progress=raw).progress == clamped

    def test_frozen(self):
        torrent = Torrent(hash="abc")
        with pytest.raises(ValidationError):
            torrent.name = "changed"

    @pytest.mark.parametrize(
        ("state", "paused"),
        [("pausedDL", True), ("stoppedDL", True), ("downloading", False), ("error", False)],
    )
    def test_is_paused(self, state, paused):
        assert Torrent(hash="abc", state=state).is_paused is paused


class TestOtherRecords:
    """Tests for summary, category and configuration records."""

    def test_server_state_defaults(self):
        state = ServerState.model_validate({})
        assert state.connection_status == "unknown"
        assert state.dl_info_speed == 0

    def test_category_alias(self):
        category = Category.model_validate({"name": "iso", "savePath": "/data"})
        assert category.save_path == "/data"
        assert Category(name="iso", save_path="/x").save_path == "/x"

    def test_config_defaults(self):
        config = Config()
        assert config.ui.min_width == 80
        assert config.ui.min_height == 24
        assert config.connection.request_timeout == 10.0

    def test_ui_bounds(self):
        with pytest.raises(ValidationError):
            UIConfig(refresh_interval=0)
        with pytest.raises(ValidationError):
            UIConfig(input_poll_interval=5)
