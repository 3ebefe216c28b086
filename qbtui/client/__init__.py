"""Remote control-API client."""

from __future__ import annotations

from qbtui.client.qbittorrent import QBittorrentClient, validate_endpoint

__all__ = ["QBittorrentClient", "validate_endpoint"]
