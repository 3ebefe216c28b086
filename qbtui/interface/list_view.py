"""Scrollable, filterable view over the live torrent list.

The view keeps three invariants after every public call:

* ``selected_index`` is inside the active list (0 when it is empty);
* the window ``[scroll_offset, scroll_offset + viewport_rows)`` contains the
  selection whenever the active list is non-empty;
* the window never extends past the end of the list further than needed.

"Filter active" is an explicit flag. A filter that is active with a
non-empty query but matches nothing yields an empty active list, never a
fallback to the full list.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import Generic, Protocol, TypeVar, overload


class Searchable(Protocol):
    name: str
    state: str


T = TypeVar("T", bound=Searchable)


def default_search_fields(item: Searchable) -> Iterable[str]:
    return (item.name, item.state)


class WindowView(Sequence[T]):
    """Read-only window over a tuple, restartable and never copied."""

    __slots__ = ("_items", "_start", "_stop")

    def __init__(self, items: tuple[T, ...], start: int, stop: int):
        self._items = items
        self._start = max(0, start)
        self._stop = max(self._start, min(stop, len(items)))

    def __len__(self) -> int:
        return self._stop - self._start

    @overload
    def __getitem__(self, index: int) -> T: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[T]: ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(self)))]
        if index < 0:
            index += len(self)
        if not 0 <= index < len(self):
            raise IndexError("window index out of range")
        return self._items[self._start + index]

    def __iter__(self) -> Iterator[T]:
        for i in range(self._start, self._stop):
            yield self._items[i]

    @property
    def start(self) -> int:
        return self._start

    def __repr__(self) -> str:
        return f"WindowView(start={self._start}, len={len(self)})"


class ListViewModel(Generic[T]):
    """Selection, scroll window and filter projection for a list of items."""

    def __init__(
        self,
        viewport_rows: int = 20,
        search_fields: Callable[[T], Iterable[str]] = default_search_fields,
    ):
        self._items: tuple[T, ...] = ()
        self._filtered: tuple[T, ...] = ()
        self._search_fields = search_fields
        self.filter_active = False
        self.query = ""
        self.selected_index = 0
        self.scroll_offset = 0
        self.viewport_rows = max(1, viewport_rows)

    # Active list

    @property
    def items(self) -> tuple[T, ...]:
        return self._items

    @property
    def filtered_items(self) -> tuple[T, ...]:
        return self._filtered

    @property
    def filter_in_effect(self) -> bool:
        """True when the filtered projection is the active list."""
        return self.filter_active and self.query != ""

    @property
    def active_items(self) -> tuple[T, ...]:
        return self._filtered if self.filter_in_effect else self._items

    def __len__(self) -> int:
        return len(self.active_items)

    # Mutations

    def replace_items(self, new_items: Iterable[T]) -> None:
        """Install a fresh full list, keeping the scroll position if valid."""
        self._items = tuple(new_items)
        if self.filter_in_effect:
            self._filtered = self._project(self.query)
        self._clamp()

    def activate_filter(self) -> None:
        """Start filtering with an empty query (active list stays full)."""
        self.filter_active = True
        self.query = ""
        self._filtered = ()
        self._reset_position()

    def clear_filter(self) -> None:
        """Stop filtering and show the full list again."""
        self.filter_active = False
        self.query = ""
        self._filtered = ()
        self._reset_position()

    def set_filter_query(self, text: str) -> None:
        """Filter by case-insensitive substring of name or state label.

        An empty ``text`` makes the full list active again. Any call resets
        the selection and scroll position.
        """
        self.filter_active = True
        self.query = text
        self._filtered = self._project(text) if text else ()
        self._reset_position()

    def move_selection(self, delta: int) -> None:
        """Move the selection, scrolling only as far as needed."""
        if not self.active_items:
            self._reset_position()
            return
        self.selected_index += delta
        self._clamp()

    @property
    def page_size(self) -> int:
        return max(1, self.viewport_rows - 1)

    def page_up(self) -> None:
        self.move_selection(-self.page_size)

    def page_down(self) -> None:
        self.move_selection(self.page_size)

    def jump_to_start(self) -> None:
        self.selected_index = 0
        self._clamp()

    def jump_to_end(self) -> None:
        self.selected_index = max(0, len(self.active_items) - 1)
        self._clamp()

    def set_viewport_rows(self, rows: int) -> None:
        """Resize the window and re-clamp scroll and selection."""
        self.viewport_rows = max(1, rows)
        self._clamp()

    # Queries

    def visible_slice(self) -> WindowView[T]:
        """Items from ``scroll_offset`` for at most ``viewport_rows`` entries."""
        return WindowView(
            self.active_items,
            self.scroll_offset,
            self.scroll_offset + self.viewport_rows,
        )

    def selected_item(self) -> T | None:
        active = self.active_items
        if not active:
            return None
        return active[self.selected_index]

    @property
    def relative_selected_index(self) -> int:
        return self.selected_index - self.scroll_offset

    # Internals

    def _project(self, text: str) -> tuple[T, ...]:
        needle = text.lower()
        return tuple(
            item
            for item in self._items
            if any(needle in field.lower() for field in self._search_fields(item))
        )

    def _reset_position(self) -> None:
        self.selected_index = 0
        self.scroll_offset = 0

    def _clamp(self) -> None:
        count = len(self.active_items)
        if count == 0:
            self._reset_position()
            return

        rows = self.viewport_rows
        self.selected_index = min(max(self.selected_index, 0), count - 1)
        self.scroll_offset = min(max(self.scroll_offset, 0), max(count - rows, 0))

        if self.selected_index < self.scroll_offset:
            self.scroll_offset = self.selected_index
        elif self.selected_index >= self.scroll_offset + rows:
            self.scroll_offset = self.selected_index - rows + 1
