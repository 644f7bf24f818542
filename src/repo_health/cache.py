"""Per-view-mode cache of fully fetched repository lists."""

from typing import Optional, Sequence

from repo_health.models import Repository, ViewMode


class ViewModeCache:
    """Last successfully fetched repository list for each view mode.

    Entries are written when a fetch for a mode completes and removed only
    when a refresh is explicitly requested for that mode.
    """

    def __init__(self) -> None:
        self._entries: dict[ViewMode, tuple[Repository, ...]] = {}

    def get(self, mode: ViewMode) -> Optional[tuple[Repository, ...]]:
        """Return the cached list for a mode, or None on a miss."""
        return self._entries.get(mode)

    def put(self, mode: ViewMode, repositories: Sequence[Repository]) -> None:
        """Store (or overwrite) the list for a mode."""
        self._entries[mode] = tuple(repositories)

    def invalidate(self, mode: ViewMode) -> bool:
        """Evict a mode's entry. Returns True if one existed."""
        return self._entries.pop(mode, None) is not None

    def __contains__(self, mode: object) -> bool:
        return mode in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        summary = ", ".join(
            f"{mode.label}={len(repos)}" for mode, repos in self._entries.items()
        )
        return f"ViewModeCache({summary})"
