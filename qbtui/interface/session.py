"""Session aggregate and the modal state machine that mutates it.

:class:`SessionController` is the only writer of :class:`Session`. Every
handler either completes (including any awaited client call) before the
next event is looked at, or raises an unexpected error that ends the run.
Typed client failures are mapped here and nowhere else:

* connection, authentication, operation and local I/O errors become
  ``Mode.failed(message)``;
* a failed item-list fetch becomes ``refresh_error`` for that cycle;
* a failed summary or category fetch is only logged.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from qbtui.client.qbittorrent import QBittorrentClient, validate_endpoint
from qbtui.config.settings import SettingsStore
from qbtui.interface.events import Key, KeyEvent
from qbtui.interface.list_view import ListViewModel
from qbtui.models import Category, ServerState, Torrent
from qbtui.utils.exceptions import (
    AuthenticationError,
    ConfigurationError,
    LocalIOError,
    QBTUIError,
)
from qbtui.utils.logging_config import LoggingContext, log_exception

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], QBittorrentClient]


class ModeKind(str, Enum):
    """Which screen is active."""

    CONNECTION_SETUP = "connection_setup"
    AUTHENTICATING = "authenticating"
    BROWSING = "browsing"
    ADDING_ITEM = "adding_item"
    SEARCHING = "searching"
    CONFIRMING_DESTROY = "confirming_destroy"
    FAILED = "failed"


@dataclass(frozen=True)
class Mode:
    """Active mode; only ``FAILED`` carries a message."""

    kind: ModeKind
    message: str = ""

    @classmethod
    def failed(cls, message: str) -> Mode:
        return cls(ModeKind.FAILED, message)

    def __str__(self) -> str:
        if self.kind is ModeKind.FAILED:
            return f"failed({self.message})"
        return self.kind.value


CONNECTION_SETUP = Mode(ModeKind.CONNECTION_SETUP)
AUTHENTICATING = Mode(ModeKind.AUTHENTICATING)
BROWSING = Mode(ModeKind.BROWSING)
ADDING_ITEM = Mode(ModeKind.ADDING_ITEM)
SEARCHING = Mode(ModeKind.SEARCHING)
CONFIRMING_DESTROY = Mode(ModeKind.CONFIRMING_DESTROY)


class InputFocus(str, Enum):
    """Text buffer receiving character input; values name ``Buffers`` fields."""

    URL = "url"
    USERNAME = "username"
    PASSWORD = "password"
    PATH = "path"
    SAVE_PATH = "save_path"
    SEARCH = "search"
    NONE = "none"


@dataclass
class Buffers:
    """Editable text fields."""

    url: str = ""
    username: str = ""
    password: str = ""
    path: str = ""
    save_path: str = ""
    search: str = ""

    def get(self, focus: InputFocus) -> str:
        if focus is InputFocus.NONE:
            return ""
        return getattr(self, focus.value)

    def set(self, focus: InputFocus, value: str) -> None:
        if focus is not InputFocus.NONE:
            setattr(self, focus.value, value)


@dataclass
class Session:
    """Full mutable state of one running client."""

    mode: Mode = CONNECTION_SETUP
    focus: InputFocus = InputFocus.URL
    buffers: Buffers = field(default_factory=Buffers)
    view: ListViewModel[Torrent] = field(default_factory=ListViewModel)
    summary: ServerState | None = None
    categories: dict[str, Category] = field(default_factory=dict)
    pending_destroy_target: str | None = None
    last_refresh_at: float = 0.0
    refresh_error: str | None = None
    show_password: bool = False
    cols: int = 80
    rows: int = 24
    should_quit: bool = False


def new_session(
    url: str,
    username: str | None = None,
    password: str | None = None,
) -> Session:
    """Build the startup session.

    Supplying both ``username`` and ``password`` skips connection setup.
    """
    session = Session()
    session.buffers.url = url
    session.buffers.username = username or ""
    if username and password:
        session.buffers.password = password
        session.mode = AUTHENTICATING
        session.focus = InputFocus.USERNAME
    return session


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only copy of everything the presentation layer draws."""

    mode: Mode
    focus: InputFocus
    buffers: Buffers
    visible: tuple[Torrent, ...]
    selected: Torrent | None
    selected_index: int
    scroll_offset: int
    relative_selected_index: int
    viewport_rows: int
    active_count: int
    total_count: int
    filter_in_effect: bool
    summary: ServerState | None
    categories: dict[str, Category]
    pending_destroy: Torrent | None
    refresh_error: str | None
    show_password: bool
    endpoint: str
    cols: int
    rows: int


class SessionController:
    """Route events to per-mode handlers and drive the remote client."""

    def __init__(
        self,
        session: Session,
        client_factory: ClientFactory,
        settings_store: SettingsStore,
        refresh_interval: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the controller.

        Args:
            session: Aggregate owned by this controller from now on
            client_factory: Builds a client for a validated endpoint
            settings_store: Persisted settings written after login
            refresh_interval: Seconds between automatic refreshes while browsing
            clock: Monotonic time source

        """
        self.session = session
        self.client_factory = client_factory
        self.settings_store = settings_store
        self.refresh_interval = refresh_interval
        self.client: QBittorrentClient | None = None
        self._clock = clock
        self.session.last_refresh_at = clock()

        self.handlers: dict[ModeKind, Callable[[KeyEvent], Awaitable[None]]] = {
            ModeKind.CONNECTION_SETUP: self.on_connection_setup,
            ModeKind.AUTHENTICATING: self.on_authenticating,
            ModeKind.BROWSING: self.on_browsing,
            ModeKind.ADDING_ITEM: self.on_adding_item,
            ModeKind.SEARCHING: self.on_searching,
            ModeKind.CONFIRMING_DESTROY: self.on_confirming_destroy,
            ModeKind.FAILED: self.on_failed,
        }
        missing = set(ModeKind) - set(self.handlers)
        if missing:
            msg = f"No handler for modes: {sorted(m.value for m in missing)}"
            raise RuntimeError(msg)

    # Lifecycle

    async def start(self) -> None:
        """Bind the startup endpoint and log in when credentials were given."""
        if self.session.mode.kind is not ModeKind.AUTHENTICATING:
            return
        if not await self._bind_endpoint(self.session.buffers.url):
            return
        buffers = self.session.buffers
        if buffers.username and buffers.password:
            await self._attempt_login()

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
            self.client = None

    # Event entry points

    async def handle_event(self, event: KeyEvent) -> None:
        """Apply one key event to the session."""
        if event.is_ctrl("q") or event.is_ctrl("c"):
            logger.debug("Force quit from mode %s", self.session.mode)
            self.session.should_quit = True
            return
        await self.handlers[self.session.mode.kind](event)

    def report_viewport(self, list_rows: int, cols: int, rows: int) -> None:
        """Record terminal size and the number of list rows it leaves."""
        self.session.cols = cols
        self.session.rows = rows
        self.session.view.set_viewport_rows(list_rows)

    async def maybe_refresh(self) -> bool:
        """Refresh when browsing and the interval has elapsed."""
        if self.session.mode.kind is not ModeKind.BROWSING:
            return False
        if self._clock() - self.session.last_refresh_at < self.refresh_interval:
            return False
        await self.refresh()
        return True

    async def refresh(self) -> None:
        """Fetch items and summary; the timer restarts whatever the outcome."""
        session = self.session
        try:
            with LoggingContext("refresh"):
                items = await self._require_client().list_items()
        except QBTUIError as e:
            session.refresh_error = f"Failed to fetch torrents: {e.message}"
        else:
            session.view.replace_items(items)
            session.refresh_error = None

        if self.client is not None and self.client.authenticated:
            try:
                session.summary = await self.client.fetch_summary()
            except QBTUIError as e:
                logger.warning("Failed to fetch server state: %s", e)

        session.last_refresh_at = self._clock()

    def snapshot(self) -> SessionSnapshot:
        session = self.session
        view = session.view
        pending = None
        if session.pending_destroy_target is not None:
            pending = next(
                (t for t in view.items if t.hash == session.pending_destroy_target),
                None,
            )
        return SessionSnapshot(
            mode=session.mode,
            focus=session.focus,
            buffers=replace(session.buffers),
            visible=tuple(view.visible_slice()),
            selected=view.selected_item(),
            selected_index=view.selected_index,
            scroll_offset=view.scroll_offset,
            relative_selected_index=view.relative_selected_index,
            viewport_rows=view.viewport_rows,
            active_count=len(view),
            total_count=len(view.items),
            filter_in_effect=view.filter_in_effect,
            summary=session.summary,
            categories=dict(session.categories),
            pending_destroy=pending,
            refresh_error=session.refresh_error,
            show_password=session.show_password,
            endpoint=self.client.base_url if self.client else session.buffers.url,
            cols=session.cols,
            rows=session.rows,
        )

    # Mode handlers

    async def on_connection_setup(self, event: KeyEvent) -> None:
        if event.key is Key.ENTER:
            url = self.session.buffers.url.strip()
            if url and await self._bind_endpoint(url):
                self._set_mode(AUTHENTICATING, InputFocus.USERNAME)
        elif event.key is Key.ESCAPE:
            self.session.should_quit = True
        else:
            self._edit_focused(event)

    async def on_authenticating(self, event: KeyEvent) -> None:
        session = self.session
        if event.key is Key.TAB:
            session.focus = (
                InputFocus.PASSWORD
                if session.focus is InputFocus.USERNAME
                else InputFocus.USERNAME
            )
        elif event.key is Key.ENTER:
            if session.buffers.username and session.buffers.password:
                await self._attempt_login()
        elif event.key is Key.ESCAPE:
            session.should_quit = True
        elif event.is_ctrl("h"):
            session.show_password = not session.show_password
        else:
            self._edit_focused(event)

    async def on_browsing(self, event: KeyEvent) -> None:
        view = self.session.view
        if event.is_ctrl("f") or event.is_char("/"):
            self.session.buffers.search = ""
            view.activate_filter()
            self._set_mode(SEARCHING, InputFocus.SEARCH)
        elif event.is_ctrl("l"):
            await self._reconnect()
        elif event.is_char("r"):
            await self.refresh()
        elif event.is_char("a"):
            self.session.buffers.path = ""
            self.session.buffers.save_path = ""
            self._set_mode(ADDING_ITEM, InputFocus.PATH)
        elif event.key is Key.UP or event.is_char("k"):
            view.move_selection(-1)
        elif event.key is Key.DOWN or event.is_char("j"):
            view.move_selection(1)
        elif event.key is Key.PAGE_UP:
            view.page_up()
        elif event.key is Key.PAGE_DOWN:
            view.page_down()
        elif event.key is Key.HOME:
            view.jump_to_start()
        elif event.key is Key.END:
            view.jump_to_end()
        elif event.is_char(" "):
            await self._toggle_selected()
        elif event.key is Key.DELETE or event.is_char("d"):
            item = view.selected_item()
            if item is not None:
                self._set_mode(CONFIRMING_DESTROY)
                self.session.pending_destroy_target = item.hash

    async def on_adding_item(self, event: KeyEvent) -> None:
        session = self.session
        if event.key is Key.ENTER:
            if session.buffers.path.strip():
                await self._add_from_path()
        elif event.key is Key.ESCAPE:
            self._set_mode(BROWSING)
        elif event.key is Key.TAB:
            session.focus = (
                InputFocus.SAVE_PATH
                if session.focus is InputFocus.PATH
                else InputFocus.PATH
            )
        else:
            self._edit_focused(event)

    async def on_searching(self, event: KeyEvent) -> None:
        view = self.session.view
        if event.key is Key.ENTER:
            if not self.session.buffers.search:
                view.clear_filter()
            self._set_mode(BROWSING)
        elif event.key is Key.ESCAPE:
            self.session.buffers.search = ""
            view.clear_filter()
            self._set_mode(BROWSING)
        elif self._edit_focused(event):
            view.set_filter_query(self.session.buffers.search)

    async def on_confirming_destroy(self, event: KeyEvent) -> None:
        if event.is_char("y", "Y"):
            await self._destroy_pending(also_delete_data=event.shift)
        elif event.is_char("n", "N") or event.key is Key.ESCAPE:
            self._set_mode(BROWSING)

    async def on_failed(self, event: KeyEvent) -> None:
        if event.key not in (Key.ENTER, Key.ESCAPE):
            return
        if self.client is None:
            self._set_mode(CONNECTION_SETUP, InputFocus.URL)
        else:
            self._set_mode(BROWSING)

    # Transitions with I/O

    async def _bind_endpoint(self, text: str) -> bool:
        try:
            url = validate_endpoint(text)
            client = self.client_factory(url)
        except QBTUIError as e:
            log_exception(logger, e, "Rejected endpoint")
            self._set_mode(Mode.failed(e.message))
            return False
        await self.close()
        self.client = client
        logger.info("Bound endpoint %s", url)
        return True

    async def _attempt_login(self) -> None:
        client = self._require_client()
        buffers = self.session.buffers
        try:
            await client.login(buffers.username, buffers.password)
        except QBTUIError as e:
            self._set_mode(Mode.failed(f"Login failed: {e.message}"))
            return

        try:
            self.settings_store.save(client.base_url, buffers.username)
        except ConfigurationError as e:
            logger.warning("Failed to save settings: %s", e)
        else:
            logger.debug("Saved connection info for %s", client.base_url)

        self._set_mode(BROWSING)
        await self._load_categories()
        await self.refresh()

    async def _load_categories(self) -> None:
        try:
            self.session.categories = await self._require_client().fetch_categories()
        except QBTUIError as e:
            logger.warning("Failed to fetch categories: %s", e)

    async def _toggle_selected(self) -> None:
        item = self.session.view.selected_item()
        if item is None:
            return
        resume = item.is_paused
        logger.debug("Toggle %r in state %s (resume=%s)", item.name, item.state, resume)
        try:
            await self._require_client().set_running(item.hash, resume)
        except QBTUIError as e:
            verb = "resume" if resume else "pause"
            self._set_mode(Mode.failed(f"Failed to {verb} torrent: {e.message}"))
            return
        await self.refresh()

    async def _destroy_pending(self, also_delete_data: bool) -> None:
        target = self.session.pending_destroy_target
        if target is None:
            self._set_mode(BROWSING)
            return
        try:
            await self._require_client().delete(target, also_delete_data)
        except QBTUIError as e:
            self._set_mode(Mode.failed(f"Failed to delete torrent: {e.message}"))
            return
        self._set_mode(BROWSING)
        await self.refresh()

    async def _add_from_path(self) -> None:
        buffers = self.session.buffers
        try:
            payload = await read_torrent_file(buffers.path.strip())
        except LocalIOError as e:
            self._set_mode(Mode.failed(e.message))
            return
        try:
            await self._require_client().add_from_bytes(
                payload, buffers.save_path.strip() or None
            )
        except QBTUIError as e:
            self._set_mode(Mode.failed(f"Failed to add torrent: {e.message}"))
            return
        self._set_mode(BROWSING)
        await self.refresh()

    async def _reconnect(self) -> None:
        await self.close()
        session = self.session
        session.view.clear_filter()
        session.view.replace_items(())
        session.summary = None
        session.categories = {}
        session.refresh_error = None
        session.buffers.search = ""
        session.buffers.password = ""
        self._set_mode(CONNECTION_SETUP, InputFocus.URL)

    # Helpers

    def _require_client(self) -> QBittorrentClient:
        if self.client is None:
            msg = "Not connected (Ctrl+L to connect)"
            raise AuthenticationError(msg)
        return self.client

    def _set_mode(self, mode: Mode, focus: InputFocus = InputFocus.NONE) -> None:
        session = self.session
        if session.mode.kind is ModeKind.CONFIRMING_DESTROY:
            session.pending_destroy_target = None
        if mode.kind is ModeKind.FAILED:
            logger.info("Session failed: %s", mode.message)
        else:
            logger.debug("Mode %s -> %s", session.mode, mode)
        session.mode = mode
        session.focus = focus

    def _edit_focused(self, event: KeyEvent) -> bool:
        """Apply text input or backspace to the focused buffer."""
        focus = self.session.focus
        if focus is InputFocus.NONE:
            return False
        buffers = self.session.buffers
        if event.is_text:
            buffers.set(focus, buffers.get(focus) + event.char)
            return True
        if event.key is Key.BACKSPACE:
            buffers.set(focus, buffers.get(focus)[:-1])
            return True
        return False


async def read_torrent_file(path: str) -> bytes:
    """Read a .torrent file off the event loop.

    Raises:
        LocalIOError: If the file cannot be read

    """
    target = Path(path).expanduser()
    try:
        return await asyncio.to_thread(target.read_bytes)
    except OSError as e:
        msg = f"Failed to read file: {e.strerror or e}"
        raise LocalIOError(msg, {"path": str(target)}) from e
