"""Tests for cursor navigation over the repository list."""

import pytest

from repo_health import navigation
from repo_health.navigation import Cursor


def assert_valid(cursor: Cursor, length: int, window: int) -> None:
    assert 0 <= cursor.selected < length
    assert cursor.offset <= cursor.selected <= cursor.offset + window - 1


class TestEnsureVisible:
    """Tests for ensure_visible."""

    def test_selection_inside_window_unchanged(self) -> None:
        assert navigation.ensure_visible(Cursor(3, 2), 5) == Cursor(3, 2)

    def test_scrolls_up_to_selection(self) -> None:
        """Test the window moves up when the selection is above it."""
        assert navigation.ensure_visible(Cursor(1, 4), 5) == Cursor(1, 1)

    def test_scrolls_down_to_selection(self) -> None:
        """Test the window moves just enough to show the selection at the bottom."""
        assert navigation.ensure_visible(Cursor(9, 0), 5) == Cursor(9, 5)

    @pytest.mark.parametrize("cursor", [Cursor(0, 0), Cursor(9, 0), Cursor(2, 7)])
    def test_idempotent(self, cursor: Cursor) -> None:
        once = navigation.ensure_visible(cursor, 4)
        assert navigation.ensure_visible(once, 4) == once


class TestSaturatingMoves:
    """Tests for moves that stop at the ends of the list."""

    def test_move_down_stops_at_last(self) -> None:
        cursor = Cursor(2, 0)
        assert navigation.move_down(cursor, 3, 10) == Cursor(2, 0)

    def test_move_up_stops_at_first(self) -> None:
        assert navigation.move_up(Cursor(0, 0), 3, 10) == Cursor(0, 0)

    def test_move_down_scrolls(self) -> None:
        """Test moving past the bottom of the window scrolls by one row."""
        cursor = Cursor(4, 0)
        assert navigation.move_down(cursor, 20, 5) == Cursor(5, 1)

    def test_page_down_and_up(self) -> None:
        cursor = navigation.page_down(Cursor(0, 0), 20, 5)
        assert cursor == Cursor(5, 1)
        cursor = navigation.page_down(cursor, 20, 5)
        assert cursor.selected == 10
        cursor = navigation.page_down(Cursor(18, 14), 20, 5)
        assert cursor.selected == 19
        cursor = navigation.page_up(cursor, 20, 5)
        assert cursor.selected == 14
        assert navigation.page_up(Cursor(2, 0), 20, 5) == Cursor(0, 0)

    def test_home_and_end(self) -> None:
        assert navigation.end(Cursor(0, 0), 20, 5) == Cursor(19, 15)
        assert navigation.home(Cursor(19, 15), 20, 5) == Cursor(0, 0)


class TestWrappingMoves:
    """Tests for select_next and select_previous."""

    def test_next_wraps_to_first(self) -> None:
        assert navigation.select_next(Cursor(2, 0), 3, 10) == Cursor(0, 0)

    def test_previous_wraps_to_last(self) -> None:
        """Test wrapping backwards scrolls the last row into view."""
        assert navigation.select_previous(Cursor(0, 0), 10, 4) == Cursor(9, 6)

    def test_next_within_list(self) -> None:
        assert navigation.select_next(Cursor(0, 0), 3, 10) == Cursor(1, 0)


class TestEmptyAndShrinking:
    """Tests for empty lists and lists that shrink under the cursor."""

    @pytest.mark.parametrize(
        "move",
        [
            navigation.move_up,
            navigation.move_down,
            navigation.page_up,
            navigation.page_down,
            navigation.home,
            navigation.end,
            navigation.select_next,
            navigation.select_previous,
            navigation.clamp,
        ],
    )
    def test_empty_list_resets(self, move) -> None:
        assert move(Cursor(5, 3), 0, 10) == Cursor()

    def test_clamp_after_shrink(self) -> None:
        """Test a cursor past the end of a shrunken list is healed."""
        cursor = navigation.clamp(Cursor(15, 12), 4, 5)
        assert cursor == Cursor(3, 3)
        assert_valid(cursor, 4, 5)

    def test_clamp_after_window_shrink(self) -> None:
        cursor = navigation.clamp(Cursor(9, 5), 20, 3)
        assert_valid(cursor, 20, 3)
        assert cursor.selected == 9

    def test_random_walk_keeps_invariant(self) -> None:
        """Test any sequence of moves keeps the selection valid and visible."""
        moves = [
            navigation.move_down,
            navigation.page_down,
            navigation.select_next,
            navigation.end,
            navigation.select_next,
            navigation.move_up,
            navigation.page_up,
            navigation.select_previous,
            navigation.home,
            navigation.select_previous,
        ]
        cursor = Cursor()
        for move in moves * 3:
            cursor = move(cursor, 13, 4)
            assert_valid(cursor, 13, 4)
