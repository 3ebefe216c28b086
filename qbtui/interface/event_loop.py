"""Event merger: one consumer loop for input, resizes and the refresh timer.

Key events arrive from the terminal application through
:meth:`EventMerger.post` and are handled strictly in arrival order. A resize
only records the latest terminal size in a slot that is applied before the
next key event is handled, so it never waits behind queued input. After every
handled event, or after an idle poll window, the controller gets exactly one
chance to run its timed refresh.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from qbtui.interface.events import Event, KeyEvent, ResizeEvent
from qbtui.interface.session import SessionController, SessionSnapshot

logger = logging.getLogger(__name__)


class Presenter(Protocol):
    def draw(self, snapshot: SessionSnapshot) -> None: ...

    def report_viewport(self, cols: int, rows: int) -> None: ...


class EventMerger:
    """Multiplex terminal events into the session controller.

    Producers and the consumer share one event loop.
    """

    def __init__(
        self,
        controller: SessionController,
        presenter: Presenter,
        poll_interval: float = 0.1,
    ):
        self.controller = controller
        self.presenter = presenter
        self.poll_interval = poll_interval
        self.queue: asyncio.Queue[KeyEvent | ResizeEvent] = asyncio.Queue()
        self._pending_resize: ResizeEvent | None = None
        self._dirty = True
        self.events_handled = 0
        self.draws = 0

    # Producers

    def post(self, event: Event) -> None:
        if isinstance(event, ResizeEvent):
            self._pending_resize = event
        # Resizes are also queued to wake an idle wait; the slot is authoritative
        self.queue.put_nowait(event)

    # Consumer

    def apply_pending_resize(self) -> bool:
        """Apply the latest resize, if any. Returns True when one was applied."""
        event = self._pending_resize
        if event is None:
            return False
        self._pending_resize = None
        logger.debug("Terminal resized to %sx%s", event.cols, event.rows)
        self.presenter.report_viewport(event.cols, event.rows)
        self._dirty = True
        return True

    async def next_event(self) -> KeyEvent | None:
        """Wait up to one poll window for the next key event."""
        try:
            event = await asyncio.wait_for(self.queue.get(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            return None
        if isinstance(event, ResizeEvent):
            return None
        return event

    def redraw(self, force: bool = False) -> None:
        """Pick up a size change and draw if anything changed."""
        self.apply_pending_resize()
        if self._dirty or force:
            self.presenter.draw(self.controller.snapshot())
            self.draws += 1
            self._dirty = False

    async def step(self) -> None:
        """One loop iteration: draw if needed, wait, handle, maybe refresh."""
        self.redraw()

        event = await self.next_event()
        self.apply_pending_resize()
        if event is not None:
            await self.controller.handle_event(event)
            self.events_handled += 1
            self._dirty = True

        if await self.controller.maybe_refresh():
            self._dirty = True

    async def run(self) -> None:
        """Run until the session asks to quit."""
        while not self.controller.session.should_quit:
            await self.step()
        logger.info("Event loop finished after %s events", self.events_handled)
