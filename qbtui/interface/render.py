"""Presentation layer: builds rich renderables from session snapshots.

The view never mutates the session; it reads :class:`SessionSnapshot`
values and reports terminal size back through the controller. Frames go to
the textual widget attached with :meth:`SessionView.attach`, or to the
console when none is attached.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from rich import box
from rich.align import Align
from rich.console import Console, Group, RenderableType
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from textual.widgets import Static

from qbtui.interface.session import (
    InputFocus,
    ModeKind,
    SessionController,
    SessionSnapshot,
)
from qbtui.models import StateGroup, Torrent
from qbtui.utils.formatting import (
    eta_str,
    limit_str,
    progress_str,
    ratio_str,
    size_str,
    speed_str,
    timestamp_str,
    truncate,
)

logger = logging.getLogger(__name__)

HEADER_ROWS = 3
FOOTER_ROWS = 3
LIST_BORDER_ROWS = 2
COLUMN_HEADER_ROWS = 2

CURSOR = "█"
PASSWORD_MASK = "●"

STATE_STYLES = {
    StateGroup.DOWNLOADING: "green",
    StateGroup.UPLOADING: "blue",
    StateGroup.PAUSED: "yellow",
    StateGroup.QUEUED: "cyan",
    StateGroup.STALLED: "bright_black",
    StateGroup.ERROR: "red",
    StateGroup.CHECKING: "magenta",
    StateGroup.OTHER: "white",
}

BROWSE_HELP = (
    "Ctrl+Q: Quit | r: Refresh | ↑↓/jk: Navigate | PgUp/PgDn | Home/End | "
    "Space: Pause/Resume | d/Del: Delete | a: Add | Ctrl+F or /: Search | "
    "Ctrl+L: Reconnect"
)


def list_rows_for_height(height: int) -> int:
    """Rows left for torrents once header, footer and list chrome are drawn."""
    chrome = HEADER_ROWS + FOOTER_ROWS + LIST_BORDER_ROWS + COLUMN_HEADER_ROWS
    return max(1, height - chrome)


def input_line(label: str, value: str, focused: bool, placeholder: str = "") -> Text:
    marker = "▶ " if focused else "  "
    line = Text(marker, style="bold yellow" if focused else "")
    line.append(f"{label}: ", style="cyan")
    if value:
        line.append(value, style="bold white" if focused else "white")
    elif placeholder:
        line.append(placeholder, style="dim")
    if focused:
        line.append(CURSOR, style="blink")
    return line


class SessionView:
    """Full-screen renderer for one session."""

    def __init__(
        self,
        controller: SessionController,
        console: Console | None = None,
        min_width: int = 80,
        min_height: int = 24,
        default_url: str = "http://localhost:8080",
        timezone: str | None = None,
    ):
        self.controller = controller
        self.console = console or Console()
        self.min_width = min_width
        self.min_height = min_height
        self.default_url = default_url
        self.timezone = timezone
        self.target: Static | None = None

        self.screens: dict[ModeKind, Callable[[SessionSnapshot], RenderableType]] = {
            ModeKind.CONNECTION_SETUP: self.render_connection_setup,
            ModeKind.AUTHENTICATING: self.render_login,
            ModeKind.BROWSING: self.render_main,
            ModeKind.ADDING_ITEM: self.render_main,
            ModeKind.SEARCHING: self.render_main,
            ModeKind.CONFIRMING_DESTROY: self.render_main,
            ModeKind.FAILED: self.render_main,
        }

    def attach(self, target: Static) -> None:
        self.target = target

    # Presenter protocol

    def report_viewport(self, cols: int, rows: int) -> None:
        self.controller.report_viewport(list_rows_for_height(rows), cols, rows)

    def draw(self, snapshot: SessionSnapshot) -> None:
        renderable = self.render(snapshot)
        if self.target is not None:
            self.target.update(renderable)
        else:
            self.console.print(renderable)

    # Screens

    def render(self, snapshot: SessionSnapshot) -> RenderableType:
        if snapshot.cols < self.min_width or snapshot.rows < self.min_height:
            return self.render_too_small(snapshot)
        return self.screens[snapshot.mode.kind](snapshot)

    def render_too_small(self, snapshot: SessionSnapshot) -> RenderableType:
        body = Text(justify="center", style="red")
        body.append("Terminal too small!\n\n", style="bold red")
        body.append("Minimum size required:\n")
        body.append(f"Width: {self.min_width} characters\n")
        body.append(f"Height: {self.min_height} lines\n\n")
        body.append(f"Current: {snapshot.cols}x{snapshot.rows}\n\n")
        body.append("Please resize your terminal.\nPress Ctrl+Q to quit.")
        panel = Panel(body, title="Terminal Size Warning", border_style="red")
        return Align.center(panel, vertical="middle")

    def render_connection_setup(self, snapshot: SessionSnapshot) -> RenderableType:
        field = input_line(
            "URL",
            snapshot.buffers.url,
            focused=True,
            placeholder=self.default_url,
        )
        body = Group(
            Text("Enter the qBittorrent WebUI URL", style="bold"),
            Text(""),
            Panel(field, border_style="yellow"),
            Text("Enter: Connect | Esc: Quit | Ctrl+Q: Force quit", style="dim"),
        )
        return self._dialog(body, "qBittorrent TUI - Connect", width=72)

    def render_login(self, snapshot: SessionSnapshot) -> RenderableType:
        buffers = snapshot.buffers
        password = buffers.password
        if not snapshot.show_password:
            password = PASSWORD_MASK * len(password)
        body = Group(
            Text(f"Server: {snapshot.endpoint}", style="cyan"),
            Text(""),
            input_line(
                "Username",
                buffers.username,
                focused=snapshot.focus is InputFocus.USERNAME,
            ),
            input_line(
                "Password",
                password,
                focused=snapshot.focus is InputFocus.PASSWORD,
            ),
            Text(""),
            Text(
                "Tab: Switch | Enter: Login | Esc: Quit | "
                "Ctrl+H: Show/Hide | Ctrl+Q: Force quit",
                style="dim",
            ),
        )
        return self._dialog(body, "qBittorrent TUI - Login", width=72)

    def render_main(self, snapshot: SessionSnapshot) -> RenderableType:
        layout = Layout()
        layout.split_column(
            Layout(self.render_header(snapshot), name="header", size=HEADER_ROWS),
            Layout(self.render_body(snapshot), name="body", ratio=1),
            Layout(self.render_footer(snapshot), name="footer", size=FOOTER_ROWS),
        )
        return layout

    # Main screen parts

    def render_header(self, snapshot: SessionSnapshot) -> RenderableType:
        state = snapshot.summary
        line = Text(justify="center")
        if state is None:
            line.append(f"Connecting to {snapshot.endpoint}...", style="dim")
        else:
            line.append("Status: ", style="cyan")
            line.append(state.connection_status)
            line.append("  |  ")
            line.append("Down: ", style="green")
            line.append(speed_str(state.dl_info_speed) or "0 B/s")
            if state.dl_rate_limit:
                line.append(f" [{limit_str(state.dl_rate_limit)}]", style="dim")
            line.append("  |  ")
            line.append("Up: ", style="red")
            line.append(speed_str(state.up_info_speed) or "0 B/s")
            if state.up_rate_limit:
                line.append(f" [{limit_str(state.up_rate_limit)}]", style="dim")
            if state.dht_nodes is not None:
                line.append("  |  ")
                line.append("DHT: ", style="magenta")
                line.append(str(state.dht_nodes))
        line.append("  |  ")
        line.append("Torrents: ", style="yellow")
        line.append(str(snapshot.total_count))
        return Panel(line, title="qBittorrent TUI")

    def render_body(self, snapshot: SessionSnapshot) -> RenderableType:
        kind = snapshot.mode.kind
        if kind is ModeKind.FAILED:
            return self.render_failed(snapshot)
        if kind is ModeKind.ADDING_ITEM:
            return self.render_add(snapshot)
        return self.render_list(snapshot)

    def render_list(self, snapshot: SessionSnapshot) -> RenderableType:
        title = f"Torrents ({snapshot.active_count})"
        viewport = snapshot.viewport_rows
        if snapshot.active_count > viewport:
            last = min(snapshot.scroll_offset + viewport, snapshot.active_count)
            title += f" [{snapshot.scroll_offset + 1}-{last}/{snapshot.active_count}]"

        if not snapshot.visible:
            if snapshot.filter_in_effect:
                message = f"No torrents match {snapshot.buffers.search!r}"
            else:
                message = "No torrents found\n\nPress 'a' to add a torrent"
            empty = Align.center(Text(message, style="bright_black"), vertical="middle")
            return Panel(empty, title=title)

        # Fixed columns fit an 80 column terminal; Name takes the rest
        table = Table(
            box=box.SIMPLE_HEAD,
            show_edge=False,
            expand=True,
            pad_edge=False,
            header_style="bold cyan",
        )
        table.add_column("Name", no_wrap=True, ratio=1)
        table.add_column("Done", justify="right", width=6, no_wrap=True, style="green")
        table.add_column("Size", justify="right", width=10, no_wrap=True)
        table.add_column("Down", justify="right", width=12, no_wrap=True)
        table.add_column("Up", justify="right", width=12, no_wrap=True)
        table.add_column("State", width=10, no_wrap=True)
        table.add_column("ETA", justify="right", width=6, no_wrap=True, style="magenta")

        for offset, torrent in enumerate(snapshot.visible):
            selected = offset == snapshot.relative_selected_index
            table.add_row(
                *self.torrent_cells(torrent, selected),
                style="bold on grey23" if selected else None,
            )

        subtitle = self.detail_line(snapshot.selected, snapshot)
        return Panel(table, title=title, subtitle=subtitle, padding=(0, 0))

    def torrent_cells(self, torrent: Torrent, selected: bool) -> list[RenderableType]:
        prefix = "→ " if selected else "  "
        return [
            Text(prefix + torrent.name, overflow="ellipsis", no_wrap=True),
            progress_str(torrent.progress),
            size_str(torrent.size),
            speed_str(torrent.dlspeed),
            speed_str(torrent.upspeed),
            Text(torrent.state, style=STATE_STYLES[torrent.group]),
            eta_str(torrent.eta, torrent.state),
        ]

    def detail_line(self, torrent: Torrent | None, snapshot: SessionSnapshot) -> str | None:
        if torrent is None:
            return None
        parts = []
        if torrent.category:
            category = snapshot.categories.get(torrent.category)
            where = f" → {category.save_path}" if category and category.save_path else ""
            parts.append(f"{torrent.category}{where}")
        parts.append(f"ratio {ratio_str(torrent.ratio)}")
        if torrent.num_seeds is not None:
            parts.append(f"seeds {torrent.num_seeds}")
        if torrent.num_leechs is not None:
            parts.append(f"peers {torrent.num_leechs}")
        parts.append(f"added {timestamp_str(torrent.added_on, self.timezone)}")
        return truncate(" · ".join(parts), max(10, snapshot.cols - 6))

    def render_add(self, snapshot: SessionSnapshot) -> RenderableType:
        buffers = snapshot.buffers
        body = Group(
            Text("Path to a .torrent file on this machine", style="bold"),
            Text(""),
            input_line("File", buffers.path, focused=snapshot.focus is InputFocus.PATH),
            input_line(
                "Save to",
                buffers.save_path,
                focused=snapshot.focus is InputFocus.SAVE_PATH,
                placeholder="(server default)",
            ),
            Text(""),
            Text("Enter: Add | Tab: Switch field | Esc: Cancel", style="dim"),
        )
        return self._dialog(body, "Add Torrent", width=72, border_style="green")

    def render_failed(self, snapshot: SessionSnapshot) -> RenderableType:
        body = Group(
            Text(snapshot.mode.message, style="red"),
            Text(""),
            Text("Press Enter or Esc to continue", style="dim"),
        )
        return self._dialog(body, "Error", width=72, border_style="red")

    def render_footer(self, snapshot: SessionSnapshot) -> RenderableType:
        kind = snapshot.mode.kind
        if kind is ModeKind.SEARCHING:
            title = "Search Torrents"
            if snapshot.filter_in_effect:
                title += f" ({snapshot.active_count})"
            field = input_line("Filter", snapshot.buffers.search, focused=True)
            field.append("   Enter: Keep filter | Esc: Clear", style="dim")
            return Panel(field, title=title, border_style="yellow")

        if kind is ModeKind.CONFIRMING_DESTROY:
            target = snapshot.pending_destroy
            name = target.name if target is not None else "selected torrent"
            line = Text("Delete ", style="bold")
            line.append(truncate(name, max(10, snapshot.cols - 70)), style="bold yellow")
            line.append("?  y: Torrent only | Y: With files | n/Esc: Cancel")
            return Panel(line, title="Confirm Delete", border_style="red")

        subtitle = None
        if snapshot.refresh_error:
            subtitle = Text(
                truncate(snapshot.refresh_error, max(10, snapshot.cols - 6)),
                style="red",
            )
        help_text = Text(truncate(BROWSE_HELP, max(10, snapshot.cols - 4)), style="dim")
        return Panel(help_text, title="Controls", subtitle=subtitle)

    @staticmethod
    def _dialog(
        body: RenderableType,
        title: str,
        width: int,
        border_style: str = "blue",
    ) -> RenderableType:
        panel = Panel(body, title=title, width=width, border_style=border_style)
        return Align.center(panel, vertical="middle")
