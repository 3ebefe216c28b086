"""Textual application hosting one interactive session.

Textual owns the terminal: raw input, key decoding and resize notifications.
:class:`SessionApp` turns its key and resize events into immutable
:class:`~qbtui.interface.events.KeyEvent` and
:class:`~qbtui.interface.events.ResizeEvent` values for the
:class:`~qbtui.interface.event_loop.EventMerger`, which stays the only
consumer driving the session controller.
"""

from __future__ import annotations

import logging
from typing import ClassVar

from textual import events
from textual.app import App, ComposeResult
from textual.widgets import Static

from qbtui.interface.event_loop import EventMerger
from qbtui.interface.events import Key, KeyEvent, ResizeEvent
from qbtui.interface.render import SessionView
from qbtui.interface.session import SessionController

logger = logging.getLogger(__name__)

# Textual names of the non-character keys the session understands
NAMED_KEYS = {
    "enter": Key.ENTER,
    "escape": Key.ESCAPE,
    "backspace": Key.BACKSPACE,
    "tab": Key.TAB,
    "up": Key.UP,
    "down": Key.DOWN,
    "left": Key.LEFT,
    "right": Key.RIGHT,
    "home": Key.HOME,
    "end": Key.END,
    "pageup": Key.PAGE_UP,
    "pagedown": Key.PAGE_DOWN,
    "delete": Key.DELETE,
}


def translate_key(key: str, character: str | None) -> KeyEvent | None:
    """Map a textual key to a session key event, or None to ignore it.

    Ctrl+letter chords keep their letter; printable characters (with or
    without Shift) become text. Alt chords and other modifier combinations
    are dropped. Terminals without extended key reporting deliver Ctrl+H as
    ``backspace``.
    """
    named = NAMED_KEYS.get(key)
    if named is not None:
        return KeyEvent(named)
    modifiers, _, base = key.rpartition("+")
    if modifiers == "ctrl":
        if len(base) == 1 and base.isalpha():
            return KeyEvent.ctrl_of(base)
        return None
    if modifiers not in ("", "shift"):
        return None
    if not character or len(character) != 1 or not character.isprintable():
        return None
    return KeyEvent.of(character)


class SessionApp(App[None], inherit_bindings=False):
    """Full-screen host for one session controller.

    No textual bindings are active: every key is forwarded to the session,
    including Ctrl+Q and Ctrl+C.
    """

    CSS = """
    Screen {
        overflow: hidden;
    }

    #frame {
        width: 1fr;
        height: 1fr;
    }
    """

    ENABLE_COMMAND_PALETTE: ClassVar[bool] = False

    def __init__(
        self,
        controller: SessionController,
        view: SessionView,
        poll_interval: float = 0.1,
    ) -> None:
        super().__init__()
        self.controller = controller
        self.view = view
        self.poll_interval = poll_interval
        self.merger: EventMerger | None = None

    def compose(self) -> ComposeResult:
        yield Static(id="frame")

    async def on_mount(self) -> None:
        """Attach the renderer and start the session loop."""
        self.view.attach(self.query_one("#frame", Static))
        self.merger = EventMerger(
            self.controller, self.view, poll_interval=self.poll_interval
        )
        self.merger.post(ResizeEvent(self.size.width, self.size.height))
        self.run_worker(self.run_session(), name="session", exclusive=True)

    async def run_session(self) -> None:
        """Drive the session until it asks to quit, then close the app."""
        merger = self.merger
        if merger is None:
            return
        merger.redraw(force=True)
        try:
            await self.controller.start()
            await merger.run()
        finally:
            await self.controller.close()
        logger.debug("Session finished, closing the terminal UI")
        self.exit()

    def on_key(self, event: events.Key) -> None:
        event.prevent_default()
        event.stop()
        translated = translate_key(event.key, event.character)
        if translated is None:
            logger.debug("Ignored key %s", event.key)
            return
        if self.merger is not None:
            self.merger.post(translated)

    def on_resize(self, event: events.Resize) -> None:
        if self.merger is not None:
            self.merger.post(ResizeEvent(event.size.width, event.size.height))
