"""Interactive session: list view, state machine, input and rendering."""

from __future__ import annotations

from qbtui.interface.events import Key, KeyEvent, ResizeEvent
from qbtui.interface.list_view import ListViewModel
from qbtui.interface.session import (
    InputFocus,
    Mode,
    ModeKind,
    Session,
    SessionController,
    SessionSnapshot,
    new_session,
)

__all__ = [
    "InputFocus",
    "Key",
    "KeyEvent",
    "ListViewModel",
    "Mode",
    "ModeKind",
    "ResizeEvent",
    "Session",
    "SessionController",
    "SessionSnapshot",
    "new_session",
]
