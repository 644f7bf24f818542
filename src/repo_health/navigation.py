"""Selection and scroll handling for the repository list.

All functions are pure: they take a cursor plus the list length and visible
window size, and return a new cursor. After any of them the cursor satisfies:

    0 <= selected < length                   (when length > 0)
    offset <= selected <= offset + window - 1
"""

from typing import NamedTuple


class Cursor(NamedTuple):
    """Selected index and scroll offset over the repository list."""

    selected: int = 0
    offset: int = 0


def ensure_visible(cursor: Cursor, window: int) -> Cursor:
    """Scroll just enough to bring the selected row into the window."""
    window = max(window, 1)
    selected, offset = cursor
    if selected < offset:
        offset = selected
    elif selected >= offset + window:
        offset = selected - window + 1
    return Cursor(selected, offset)


def clamp(cursor: Cursor, length: int, window: int) -> Cursor:
    """Heal a cursor after the list it points into changed length."""
    if length <= 0:
        return Cursor()
    selected = min(max(cursor.selected, 0), length - 1)
    offset = min(max(cursor.offset, 0), selected)
    return ensure_visible(Cursor(selected, offset), window)


def _select(cursor: Cursor, index: int, length: int, window: int) -> Cursor:
    if length <= 0:
        return Cursor()
    index = min(max(index, 0), length - 1)
    return ensure_visible(Cursor(index, cursor.offset), window)


def move_up(cursor: Cursor, length: int, window: int) -> Cursor:
    """Select the previous row, stopping at the first."""
    return _select(cursor, cursor.selected - 1, length, window)


def move_down(cursor: Cursor, length: int, window: int) -> Cursor:
    """Select the next row, stopping at the last."""
    return _select(cursor, cursor.selected + 1, length, window)


def page_up(cursor: Cursor, length: int, window: int) -> Cursor:
    return _select(cursor, cursor.selected - max(window, 1), length, window)


def page_down(cursor: Cursor, length: int, window: int) -> Cursor:
    return _select(cursor, cursor.selected + max(window, 1), length, window)


def home(cursor: Cursor, length: int, window: int) -> Cursor:
    return _select(cursor, 0, length, window)


def end(cursor: Cursor, length: int, window: int) -> Cursor:
    return _select(cursor, length - 1, length, window)


def select_next(cursor: Cursor, length: int, window: int) -> Cursor:
    """Select the next row, wrapping from the last back to the first."""
    if length <= 0:
        return Cursor()
    return ensure_visible(Cursor((cursor.selected + 1) % length, cursor.offset), window)


def select_previous(cursor: Cursor, length: int, window: int) -> Cursor:
    """Select the previous row, wrapping from the first to the last."""
    if length <= 0:
        return Cursor()
    return ensure_visible(Cursor((cursor.selected - 1) % length, cursor.offset), window)
