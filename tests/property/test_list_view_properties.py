"""Property-based tests for the list view model.

Checks the selection and scroll-window invariants over arbitrary list
lengths, viewport sizes and navigation sequences.
"""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from qbtui.interface.list_view import ListViewModel
from qbtui.models import Torrent

pytestmark = [pytest.mark.property, pytest.mark.interface]

STATES = ["downloading", "uploading", "pausedDL", "stalledUP", "error"]


def _torrents(count: int) -> list[Torrent]:
    return [
        Torrent(hash=f"{i:040x}", name=f"item {i}", state=STATES[i % len(STATES)])
        for i in range(count)
    ]


operations = st.one_of(
    st.tuples(st.just("move"), st.integers(min_value=-40, max_value=40)),
    st.tuples(st.just("page_up"), st.none()),
    st.tuples(st.just("page_down"), st.none()),
    st.tuples(st.just("start"), st.none()),
    st.tuples(st.just("end"), st.none()),
    st.tuples(st.just("rows"), st.integers(min_value=-2, max_value=50)),
    st.tuples(st.just("replace"), st.integers(min_value=0, max_value=60)),
    st.tuples(st.just("query"), st.sampled_from(["", "item 1", "paused", "zzz", "UP"])),
)


def _apply(view: ListViewModel, op: str, arg) -> None:
    if op == "move":
        view.move_selection(arg)
    elif op == "page_up":
        view.page_up()
    elif op == "page_down":
        view.page_down()
    elif op == "start":
        view.jump_to_start()
    elif op == "end":
        view.jump_to_end()
    elif op == "rows":
        view.set_viewport_rows(arg)
    elif op == "replace":
        view.replace_items(_torrents(arg))
    elif op == "query":
        view.set_filter_query(arg)


def _assert_invariants(view: ListViewModel) -> None:
    length = len(view)
    rows = view.viewport_rows
    assert rows >= 1
    if length == 0:
        assert view.selected_index == 0
        assert view.scroll_offset == 0
        assert view.selected_item() is None
        return
    assert 0 <= view.selected_index < length
    assert view.scroll_offset <= view.selected_index < view.scroll_offset + rows
    assert view.scroll_offset + rows <= max(length, rows)
    window = list(view.visible_slice())
    assert view.selected_item() in window
    assert len(window) == min(rows, length - view.scroll_offset)


class TestListViewProperties:
    """Invariants that must hold after every public call."""

    @given(
        st.integers(min_value=0, max_value=80),
        st.integers(min_value=1, max_value=30),
        st.lists(operations, max_size=40),
    )
    @settings(max_examples=200, deadline=None)
    def test_invariants_hold_after_every_call(self, length, rows, ops):
        """Selection and window stay valid through any operation sequence."""
        view = ListViewModel(viewport_rows=rows)
        view.replace_items(_torrents(length))
        _assert_invariants(view)
        for op, arg in ops:
            _apply(view, op, arg)
            _assert_invariants(view)

    @given(st.integers(min_value=0, max_value=60), st.integers(min_value=0, max_value=60))
    @settings(deadline=None)
    def test_shorter_replace_never_points_past_end(self, before, after):
        """Replacing with a shorter list keeps indices inside the new list."""
        view = ListViewModel(viewport_rows=7)
        view.replace_items(_torrents(before))
        view.jump_to_end()
        view.replace_items(_torrents(after))
        if after == 0:
            assert view.selected_index == 0
        else:
            assert view.selected_index < after
            assert view.scroll_offset < after

    @given(st.integers(min_value=0, max_value=60), st.sampled_from(["item", "paused", "zzz"]))
    @settings(deadline=None)
    def test_empty_query_restores_full_list(self, length, query):
        """An empty query always makes the full list active at position 0."""
        view = ListViewModel(viewport_rows=5)
        view.replace_items(_torrents(length))
        view.set_filter_query(query)
        view.move_selection(3)
        view.set_filter_query("")
        assert len(view) == length
        assert view.selected_index == 0
        assert view.scroll_offset == 0

    @given(st.integers(min_value=0, max_value=60))
    @settings(deadline=None)
    def test_no_match_query_is_empty(self, length):
        """A query matching nothing yields an empty active list."""
        view = ListViewModel(viewport_rows=5)
        view.replace_items(_torrents(length))
        view.set_filter_query("no-such-name")
        assert len(view) == 0
        assert view.selected_item() is None

    @given(
        st.integers(min_value=1, max_value=60),
        st.integers(min_value=1, max_value=30),
        st.integers(min_value=-60, max_value=60),
    )
    @settings(deadline=None)
    def test_resize_then_move_keeps_selection_visible(self, length, rows, delta):
        """set_viewport_rows then move_selection keeps the selection on screen."""
        view = ListViewModel(viewport_rows=10)
        view.replace_items(_torrents(length))
        view.jump_to_end()
        view.set_viewport_rows(rows)
        view.move_selection(delta)
        assert view.selected_item() in list(view.visible_slice())
