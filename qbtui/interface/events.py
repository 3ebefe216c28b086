"""Immutable event values passed from the input producer to the session."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Key(str, Enum):
    """Logical keys delivered to the session."""

    CHAR = "char"
    ENTER = "enter"
    ESCAPE = "escape"
    BACKSPACE = "backspace"
    TAB = "tab"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    HOME = "home"
    END = "end"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    DELETE = "delete"


@dataclass(frozen=True)
class KeyEvent:
    """One key press.

    ``char`` holds the lowercase letter for Ctrl combinations and the typed
    character for printable keys.
    """

    key: Key
    char: str = ""
    ctrl: bool = False
    shift: bool = False

    @classmethod
    def of(cls, char: str) -> KeyEvent:
        """A printable character; uppercase letters carry ``shift``."""
        return cls(Key.CHAR, char, shift=char.isupper())

    @classmethod
    def ctrl_of(cls, letter: str) -> KeyEvent:
        return cls(Key.CHAR, letter.lower(), ctrl=True)

    @property
    def is_text(self) -> bool:
        """Whether this event inserts ``char`` into a text buffer."""
        return self.key is Key.CHAR and not self.ctrl and bool(self.char)

    def is_ctrl(self, letter: str) -> bool:
        return self.key is Key.CHAR and self.ctrl and self.char == letter

    def is_char(self, *chars: str) -> bool:
        return self.is_text and self.char in chars


@dataclass(frozen=True)
class ResizeEvent:
    """Terminal dimensions changed."""

    cols: int
    rows: int


Event = KeyEvent | ResizeEvent
