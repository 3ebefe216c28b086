"""Client for the qBittorrent WebUI API (v2).

Every method either returns a validated record or raises a
:class:`~qbtui.utils.exceptions.QBTUIError` subclass; aiohttp, JSON and
validation failures never escape untranslated.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import aiohttp
from pydantic import ValidationError

from qbtui.models import Category, ServerState, Torrent
from qbtui.utils.exceptions import (
    APIError,
    AuthenticationError,
    ConnectionFailedError,
    OperationError,
)
from qbtui.utils.logging_config import LoggingContext

logger = logging.getLogger(__name__)

API_BASE_PATH = "/api/v2"
LOGIN_OK = "Ok."
ADD_FAILED = "Fails."
TORRENT_MIME = "application/x-bittorrent"
# Body excerpt kept on errors
_BODY_EXCERPT = 200


def validate_endpoint(text: str) -> str:
    """Parse and normalize a WebUI endpoint.

    Args:
        text: User supplied URL such as ``http://localhost:8080``

    Returns:
        ``scheme://host[:port][/prefix]`` without a trailing slash

    Raises:
        ConnectionFailedError: If the text is not an http(s) URL with a host

    """
    candidate = (text or "").strip()
    try:
        parts = urlsplit(candidate)
        # Accessing .port validates it
        _ = parts.port
        if parts.hostname:
            # Hosts are resolved through the idna codec
            parts.hostname.encode("idna")
    except ValueError as e:
        msg = f"Invalid URL format: {candidate!r}"
        raise ConnectionFailedError(msg, {"reason": str(e)}) from e
    if parts.scheme not in {"http", "https"} or not parts.hostname:
        msg = (
            "Invalid URL format. Please enter a valid URL "
            "(e.g., http://localhost:8080)"
        )
        raise ConnectionFailedError(msg, {"url": candidate})
    path = parts.path.rstrip("/")
    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))


class QBittorrentClient:
    """Async client for one qBittorrent WebUI endpoint.

    The ``SID`` session cookie returned by ``login`` is the only credential
    and lives in this client's cookie jar.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        verify_ssl: bool = True,
        session: aiohttp.ClientSession | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: WebUI endpoint; validated with :func:`validate_endpoint`
            timeout: Total timeout per request in seconds
            verify_ssl: Verify TLS certificates for https endpoints
            session: Optional pre-built session (the client will not close it)

        """
        self.base_url = validate_endpoint(base_url)
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.verify_ssl = verify_ssl
        self.authenticated = False
        self._session = session
        self._owns_session = session is None

    def __repr__(self) -> str:
        return f"QBittorrentClient({self.base_url!r}, authenticated={self.authenticated})"

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure HTTP session is created."""
        if self._session is None or self._session.closed:
            # unsafe=True keeps cookies from bare IP hosts such as 127.0.0.1
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                cookie_jar=aiohttp.CookieJar(unsafe=True),
                headers={"Referer": self.base_url},
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close client connections."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
        self.authenticated = False

    async def __aenter__(self) -> QBittorrentClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}{API_BASE_PATH}{endpoint}"

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        data: Any = None,
    ) -> tuple[int, str]:
        """Issue a request and return ``(status, body)``.

        Raises:
            ConnectionFailedError: On connection failures and timeouts

        """
        session = await self._ensure_session()
        url = self._url(endpoint)
        kwargs: dict[str, Any] = {}
        if data is not None:
            kwargs["data"] = data
        if not self.verify_ssl:
            kwargs["ssl"] = False

        try:
            async with session.request(method, url, **kwargs) as resp:
                body = await resp.text()
                return resp.status, body
        except asyncio.TimeoutError as e:
            msg = f"Request to {self.base_url} timed out"
            raise ConnectionFailedError(msg, {"endpoint": endpoint}) from e
        except aiohttp.ClientConnectorError as e:
            msg = f"Cannot connect to qBittorrent at {self.base_url}"
            raise ConnectionFailedError(msg, {"reason": str(e)}) from e
        except aiohttp.ClientError as e:
            msg = f"Error communicating with qBittorrent: {e}"
            raise ConnectionFailedError(msg, {"endpoint": endpoint}) from e
        except ValueError as e:
            msg = f"Cannot connect to qBittorrent at {self.base_url}"
            raise ConnectionFailedError(msg, {"reason": str(e)}) from e

    @staticmethod
    def _raise_for_status(status: int, body: str, action: str) -> None:
        if 200 <= status < 300:
            return
        logger.debug("%s failed - Status: %s, Body: %s", action, status, body)
        if status in (401, 403):
            msg = f"access denied (HTTP {status})"
            raise AuthenticationError(msg, {"status": status})
        msg = f"HTTP {status}"
        raise APIError(msg, status=status, body=body[:_BODY_EXCERPT])

    async def _get_json(self, endpoint: str, action: str) -> Any:
        """Authenticated GET returning the decoded JSON payload."""
        await self._ensure_authenticated()
        status, body = await self._request("GET", endpoint)
        self._raise_for_status(status, body, action)
        try:
            return json.loads(body)
        except ValueError as e:
            msg = "unexpected response body"
            raise APIError(msg, status=status, body=body[:_BODY_EXCERPT]) from e

    async def _post_operation(
        self, endpoint: str, data: Any, action: str
    ) -> str:
        """Authenticated POST for a mutating operation."""
        await self._ensure_authenticated()
        status, body = await self._request("POST", endpoint, data=data)
        if not 200 <= status < 300:
            logger.debug("%s failed - Status: %s, Body: %s", action, status, body)
            msg = f"HTTP {status}"
            if body:
                msg = f"{msg} - {body[:_BODY_EXCERPT]}"
            raise OperationError(msg, {"status": status})
        return body

    async def _ensure_authenticated(self) -> None:
        if not self.authenticated:
            msg = "Not authenticated"
            raise AuthenticationError(msg)
        if not await self.check_session():
            self.authenticated = False
            msg = "Authentication session expired or invalid"
            raise AuthenticationError(msg)

    # Authentication

    async def login(self, username: str, password: str) -> None:
        """Log in and keep the session cookie.

        Raises:
            AuthenticationError: On rejected credentials or an unexpected body
            ConnectionFailedError: If the WebUI cannot be reached

        """
        with LoggingContext("login", url=self.base_url, username=username):
            status, body = await self._request(
                "POST",
                "/auth/login",
                data={"username": username, "password": password},
            )
            if status == 403:
                msg = "too many failed attempts, IP is banned"
                raise AuthenticationError(msg, {"status": status})
            if not 200 <= status < 300:
                msg = f"HTTP {status}"
                raise AuthenticationError(msg, {"status": status})
            if body.strip() != LOGIN_OK:
                self.authenticated = False
                msg = (
                    "invalid username or password"
                    if body.strip() == "Fails."
                    else f"unexpected response: {body.strip() or 'empty'}"
                )
                raise AuthenticationError(msg)
            self.authenticated = True

    async def check_session(self) -> bool:
        """Return True if the current cookie still grants API access."""
        status, _ = await self._request("GET", "/app/version")
        return 200 <= status < 300

    # Queries

    async def list_items(self) -> list[Torrent]:
        """List all torrents in server order."""
        data = await self._get_json("/torrents/info", "get torrents")
        if not isinstance(data, list):
            msg = "unexpected torrent list payload"
            raise APIError(msg)
        try:
            return [Torrent.model_validate(item) for item in data]
        except ValidationError as e:
            msg = "malformed torrent record"
            raise APIError(msg, details={"errors": e.error_count()}) from e

    async def fetch_summary(self) -> ServerState:
        """Fetch the global transfer summary."""
        data = await self._get_json("/transfer/info", "get server state")
        try:
            return ServerState.model_validate(data)
        except ValidationError as e:
            msg = "malformed transfer info"
            raise APIError(msg, details={"errors": e.error_count()}) from e

    async def fetch_categories(self) -> dict[str, Category]:
        """Fetch categories keyed by name."""
        data = await self._get_json("/torrents/categories", "get categories")
        if not isinstance(data, dict):
            msg = "unexpected categories payload"
            raise APIError(msg)
        try:
            return {
                key: Category.model_validate({"name": key, **value})
                for key, value in data.items()
            }
        except (TypeError, ValidationError) as e:
            msg = "malformed categories payload"
            raise APIError(msg) from e

    # Mutations

    async def set_running(self, info_hash: str, running: bool) -> None:
        """Resume (``running=True``) or pause a torrent."""
        action = "resume torrent" if running else "pause torrent"
        endpoint = "/torrents/start" if running else "/torrents/stop"
        with LoggingContext(action.replace(" ", "_"), info_hash=info_hash):
            await self._post_operation(endpoint, {"hashes": info_hash}, action)

    async def delete(self, info_hash: str, also_delete_data: bool) -> None:
        """Delete a torrent, optionally wiping its downloaded data."""
        with LoggingContext(
            "delete_torrent", info_hash=info_hash, delete_files=also_delete_data
        ):
            await self._post_operation(
                "/torrents/delete",
                {
                    "hashes": info_hash,
                    "deleteFiles": "true" if also_delete_data else "false",
                },
                "delete torrent",
            )

    async def add_from_bytes(self, payload: bytes, save_path: str | None = None) -> None:
        """Upload a .torrent file."""
        form = aiohttp.FormData()
        form.add_field(
            "torrents",
            payload,
            filename="torrent.torrent",
            content_type=TORRENT_MIME,
        )
        if save_path:
            form.add_field("savepath", save_path)
        with LoggingContext("add_torrent", size=len(payload), save_path=save_path):
            body = await self._post_operation("/torrents/add", form, "add torrent")
            if body.strip() == ADD_FAILED:
                msg = "rejected by qBittorrent (invalid torrent file?)"
                raise OperationError(msg)
