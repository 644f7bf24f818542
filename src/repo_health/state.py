"""Application state for the repository health dashboard.

`AppState` is owned by the render loop. Background fetch cycles never touch
it directly: they emit messages into a queue, and the loop drains the queue
once per tick and hands each message to `AppState.apply`.

Operations that need background work (refresh, switching to an uncached mode,
loading organizations) do not start it themselves. They return a request that
the caller launches with whatever worker mechanism it uses.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Union

from repo_health import navigation
from repo_health.cache import ViewModeCache
from repo_health.messages import (
    BackgroundMessage,
    EnhancementCompleted,
    EnhancementStarted,
    FetchCompleted,
    FetchError,
    FetchStarted,
    OrganizationsFetched,
    OrganizationsFetchError,
    OrganizationsFetchStarted,
    ORGANIZATION_MESSAGES,
    RepositoryEnhanced,
    RepositoryFetched,
)
from repo_health.models import Repository, ViewMode, utcnow
from repo_health.navigation import Cursor
from repo_health.config import TOKEN_ENV_VAR


logger = logging.getLogger(__name__)

DEFAULT_TITLE = "🛡️ Team Repo Health Dashboard"
DEFAULT_VISIBLE_ROWS = 20
PROVIDER_UNAVAILABLE_MESSAGE = (
    f"GitHub client not available. Please check your {TOKEN_ENV_VAR} environment variable."
)


class LoadPhaseKind(str, Enum):
    """Where the current view mode is in its load lifecycle."""

    IDLE = "idle"
    FETCHING_BASIC = "fetching_basic"
    BASIC_LOADED = "basic_loaded"
    ENHANCING = "enhancing"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class LoadPhase:
    """Load phase with its progress (completed, total) or failure message."""

    kind: LoadPhaseKind = LoadPhaseKind.IDLE
    completed: int = 0
    total: int = 0
    message: Optional[str] = None

    @classmethod
    def idle(cls) -> "LoadPhase":
        return cls()

    @classmethod
    def fetching_basic(cls, completed: int = 0, total: int = 0) -> "LoadPhase":
        return cls(LoadPhaseKind.FETCHING_BASIC, completed, total)

    @classmethod
    def basic_loaded(cls) -> "LoadPhase":
        return cls(LoadPhaseKind.BASIC_LOADED)

    @classmethod
    def enhancing(cls, completed: int = 0, total: int = 0) -> "LoadPhase":
        return cls(LoadPhaseKind.ENHANCING, completed, total)

    @classmethod
    def complete(cls) -> "LoadPhase":
        return cls(LoadPhaseKind.COMPLETE)

    @classmethod
    def failed(cls, message: str) -> "LoadPhase":
        return cls(LoadPhaseKind.FAILED, message=message)

    @property
    def is_busy(self) -> bool:
        """A cycle is running for the current mode."""
        return self.kind in (
            LoadPhaseKind.FETCHING_BASIC,
            LoadPhaseKind.BASIC_LOADED,
            LoadPhaseKind.ENHANCING,
        )

    @property
    def has_progress(self) -> bool:
        return self.kind in (LoadPhaseKind.FETCHING_BASIC, LoadPhaseKind.ENHANCING)

    @property
    def fraction(self) -> float:
        """Completed share of the phase, 0.0 to 1.0."""
        if not self.has_progress or self.total <= 0:
            return 0.0
        return min(self.completed / self.total, 1.0)

    def describe(self) -> str:
        if self.kind == LoadPhaseKind.FETCHING_BASIC:
            if self.total:
                return f"Loading repositories... {self.completed}/{self.total}"
            return "Loading repositories..."
        if self.kind == LoadPhaseKind.BASIC_LOADED:
            return "Repositories loaded"
        if self.kind == LoadPhaseKind.ENHANCING:
            return f"Fetching details... {self.completed}/{self.total}"
        if self.kind == LoadPhaseKind.COMPLETE:
            return "Up to date"
        if self.kind == LoadPhaseKind.FAILED:
            return f"Error: {self.message}"
        return "Idle"


@dataclass(frozen=True)
class FetchRequest:
    """Ask the caller to run a fetch cycle for `mode` tagged with `generation`."""

    mode: ViewMode
    generation: int


@dataclass(frozen=True)
class OrganizationsRequest:
    """Ask the caller to fetch the organization list."""

    generation: int


Request = Union[FetchRequest, OrganizationsRequest]


@dataclass(frozen=True)
class StateSnapshot:
    """Read-only view of the state handed to the render layer."""

    repositories: tuple[Repository, ...]
    load_phase: LoadPhase
    error_message: Optional[str]
    cursor: Cursor
    current_mode: ViewMode
    organization_count: int
    organizations_loading: bool
    last_refresh: Optional[datetime]
    visible_rows: int

    @property
    def selected_repository(self) -> Optional[Repository]:
        if not self.repositories:
            return None
        return self.repositories[self.cursor.selected]

    @property
    def visible_repositories(self) -> tuple[Repository, ...]:
        start = self.cursor.offset
        return self.repositories[start:start + self.visible_rows]

    @property
    def active_count(self) -> int:
        """Repositories with at least one open pull request."""
        return sum(1 for repo in self.repositories if repo.open_pull_requests)


class AppState:
    """Everything the dashboard shows, mutated only by the render loop."""

    def __init__(
        self,
        provider_available: bool = True,
        visible_rows: int = DEFAULT_VISIBLE_ROWS,
        unavailable_message: str = PROVIDER_UNAVAILABLE_MESSAGE,
        title: str = DEFAULT_TITLE,
    ) -> None:
        self.title = title
        self.provider_available = provider_available
        self.unavailable_message = unavailable_message
        self.visible_rows = max(visible_rows, 1)

        self.repositories: list[Repository] = []
        self.load_phase = LoadPhase.idle()
        self.error_message: Optional[str] = None if provider_available else unavailable_message
        self.cursor = Cursor()
        self.current_mode = ViewMode.PERSONAL
        self.organizations: list[str] = []
        self.organizations_loading = False
        self.organizations_error: Optional[str] = None
        self.last_refresh: Optional[datetime] = None
        self.cache = ViewModeCache()

        # Active cycle tags; messages from any other cycle are stale
        self.generation = 0
        # Latest cycle started for each mode, whose results may still be cached
        self._mode_generations: dict[ViewMode, int] = {}
        self.organizations_generation = 0
        self._announced_total = 0
        self._notices: list[str] = []

    # ------------------------------------------------------------------
    # Message application
    # ------------------------------------------------------------------

    def apply(self, message: BackgroundMessage) -> bool:
        """Apply one background message.

        Returns False if the message did not change what is shown. A completed
        listing from a cycle the user switched away from is still cached for
        its own mode, as long as no newer cycle was started for that mode.
        """
        if isinstance(message, ORGANIZATION_MESSAGES):
            if message.generation != self.organizations_generation:
                logger.debug("Discarding stale %s", type(message).__name__)
                return False
            return self._apply_organizations(message)

        if message.generation != self.generation:
            if isinstance(message, (FetchCompleted, EnhancementCompleted)):
                self._cache_background_result(message)
            logger.debug(
                "Discarding %s from generation %d (active %d)",
                type(message).__name__,
                message.generation,
                self.generation,
            )
            return False

        if isinstance(message, FetchStarted):
            self.load_phase = LoadPhase.fetching_basic(0, message.total)
            self.repositories.clear()
            self.error_message = None
            self._announced_total = message.total
            self._heal_cursor()
        elif isinstance(message, RepositoryFetched):
            return self._append(message)
        elif isinstance(message, FetchCompleted):
            self.load_phase = LoadPhase.basic_loaded()
            self.cache.put(message.mode, message.repositories)
            self.last_refresh = utcnow()
        elif isinstance(message, FetchError):
            self.load_phase = LoadPhase.failed(message.message)
            self.error_message = message.message
        elif isinstance(message, EnhancementStarted):
            self.load_phase = LoadPhase.enhancing(0, message.total)
        elif isinstance(message, RepositoryEnhanced):
            self.load_phase = LoadPhase.enhancing(message.current, message.total)
            return self._replace(message.repository)
        elif isinstance(message, EnhancementCompleted):
            self.load_phase = LoadPhase.complete()
            self.cache.put(message.mode, message.repositories)
            self.last_refresh = utcnow()
        else:
            logger.warning("Ignoring unknown message %r", message)
            return False
        return True

    def _cache_background_result(self, message: Union[FetchCompleted, EnhancementCompleted]) -> None:
        if self._mode_generations.get(message.mode) != message.generation:
            return
        logger.debug(
            "Caching %d repositories for %s from background cycle %d",
            len(message.repositories),
            message.mode.label,
            message.generation,
        )
        self.cache.put(message.mode, message.repositories)

    def apply_all(self, messages: Iterable[BackgroundMessage]) -> int:
        """Apply messages in order. Returns how many were applied."""
        return sum(1 for message in messages if self.apply(message))

    def _append(self, message: RepositoryFetched) -> bool:
        if len(self.repositories) >= self._announced_total:
            logger.debug("Dropping %s beyond announced total", message.repository.full_name)
            return False
        self.load_phase = LoadPhase.fetching_basic(message.current, message.total)
        if self._index_of(message.repository.name) is not None:
            # Names are unique within a list; a repeat replaces the earlier entry
            return self._replace(message.repository)
        self.repositories.append(message.repository)
        self._heal_cursor()
        return True

    def _replace(self, repository: Repository) -> bool:
        index = self._index_of(repository.name)
        if index is None:
            return False
        self.repositories[index] = repository
        return True

    def _index_of(self, name: str) -> Optional[int]:
        for index, repository in enumerate(self.repositories):
            if repository.name == name:
                return index
        return None

    def _apply_organizations(self, message: BackgroundMessage) -> bool:
        if isinstance(message, OrganizationsFetchStarted):
            self.organizations_loading = True
            self.organizations_error = None
        elif isinstance(message, OrganizationsFetched):
            organizations = list(dict.fromkeys(message.organizations))
            current = self.current_mode.organization
            if current and current not in organizations:
                organizations.append(current)
            self.organizations = organizations
            self.organizations_loading = False
            self.organizations_error = None
            self._notices.append(f"Found {len(organizations)} organizations")
        elif isinstance(message, OrganizationsFetchError):
            self.organizations_loading = False
            self.organizations_error = message.message
            self._notices.append(message.message)
        return True

    # ------------------------------------------------------------------
    # Mode switching and refresh
    # ------------------------------------------------------------------

    def refresh(self, mode: Optional[ViewMode] = None) -> Optional[FetchRequest]:
        """Drop the cached list for a mode and fetch it again.

        Returns:
            The cycle to launch, or None if no provider is available
        """
        mode = mode or self.current_mode
        self._check_known(mode)
        self.cache.invalidate(mode)
        return self._begin_cycle(mode)

    def switch_mode(self, mode: ViewMode) -> Optional[FetchRequest]:
        """Show another view mode, from cache when possible.

        Returns:
            The cycle to launch on a cache miss, otherwise None
        """
        self._check_known(mode)
        cached = self.cache.get(mode)
        if cached is None:
            return self._begin_cycle(mode)

        # Invalidate any cycle still running for the previous mode
        self.generation += 1
        self.current_mode = mode
        self.repositories = list(cached)
        self.load_phase = LoadPhase.complete()
        self.error_message = None
        self.cursor = Cursor()
        logger.info("Switched to %s from cache (%d repositories)", mode.label, len(cached))
        return None

    def cycle_mode(self) -> Optional[Request]:
        """Advance Personal -> each organization -> Personal.

        With no organizations known yet this asks for them instead and does
        not switch; the user repeats the command once they have arrived.
        """
        if not self.organizations:
            return self.request_organizations()

        modes = [ViewMode.PERSONAL] + [
            ViewMode.for_organization(name) for name in self.organizations
        ]
        try:
            index = modes.index(self.current_mode)
        except ValueError:
            index = 0
        return self.switch_mode(modes[(index + 1) % len(modes)])

    def request_organizations(self) -> Optional[OrganizationsRequest]:
        """Fetch organizations up front, without waiting for a cycle command."""
        if not self.provider_available or self.organizations_loading:
            return None
        self.organizations_generation += 1
        self.organizations_loading = True
        return OrganizationsRequest(self.organizations_generation)

    def add_organizations(self, names: Iterable[str]) -> None:
        """Make organizations known without fetching, e.g. from the command line."""
        for name in names:
            if name and name not in self.organizations:
                self.organizations.append(name)

    def _check_known(self, mode: ViewMode) -> None:
        if not mode.is_personal and mode.organization not in self.organizations:
            raise ValueError(f"Unknown organization: {mode.organization}")

    def _begin_cycle(self, mode: ViewMode) -> Optional[FetchRequest]:
        self.current_mode = mode
        self.repositories = []
        self.cursor = Cursor()
        self._announced_total = 0

        if not self.provider_available:
            self.load_phase = LoadPhase.failed(self.unavailable_message)
            self.error_message = self.unavailable_message
            return None

        self.generation += 1
        self._mode_generations[mode] = self.generation
        self.load_phase = LoadPhase.fetching_basic()
        self.error_message = None
        logger.info("Starting fetch cycle %d for %s", self.generation, mode.label)
        return FetchRequest(mode, self.generation)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _navigate(self, move) -> None:
        self.cursor = move(self.cursor, len(self.repositories), self.visible_rows)

    def _heal_cursor(self) -> None:
        self.cursor = navigation.clamp(self.cursor, len(self.repositories), self.visible_rows)

    def move_up(self) -> None:
        self._navigate(navigation.move_up)

    def move_down(self) -> None:
        self._navigate(navigation.move_down)

    def page_up(self) -> None:
        self._navigate(navigation.page_up)

    def page_down(self) -> None:
        self._navigate(navigation.page_down)

    def home(self) -> None:
        self._navigate(navigation.home)

    def end(self) -> None:
        self._navigate(navigation.end)

    def select_next(self) -> None:
        self._navigate(navigation.select_next)

    def select_previous(self) -> None:
        self._navigate(navigation.select_previous)

    def select(self, index: int) -> None:
        """Select a row directly, e.g. from a mouse click."""
        self.cursor = navigation.clamp(
            Cursor(index, self.cursor.offset),
            len(self.repositories),
            self.visible_rows,
        )

    def set_visible_rows(self, rows: int) -> None:
        self.visible_rows = max(rows, 1)
        self._heal_cursor()

    @property
    def selected_repository(self) -> Optional[Repository]:
        if not self.repositories:
            return None
        return self.repositories[self.cursor.selected]

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def take_notices(self) -> list[str]:
        """Return and clear messages meant for a transient notification."""
        notices, self._notices = self._notices, []
        return notices

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            repositories=tuple(self.repositories),
            load_phase=self.load_phase,
            error_message=self.error_message,
            cursor=self.cursor,
            current_mode=self.current_mode,
            organization_count=len(self.organizations),
            organizations_loading=self.organizations_loading,
            last_refresh=self.last_refresh,
            visible_rows=self.visible_rows,
        )

    def title_with_stats(self) -> str:
        """Title followed by a short summary of what is loaded."""
        loading = self.load_phase.kind == LoadPhaseKind.FETCHING_BASIC
        if not self.repositories and not loading:
            return f"{self.title} - No repositories found"
        if loading:
            return f"{self.title} - Loading..."
        active = sum(1 for repo in self.repositories if repo.open_pull_requests)
        return f"{self.title} - {len(self.repositories)} repos ({active} active)"
