"""Messages sent from background fetch cycles to the application state.

Every message carries the generation of the cycle that produced it and the
view mode it was fetching for. Within one cycle messages arrive in this order:

    FetchStarted -> RepositoryFetched x N -> FetchCompleted
    -> EnhancementStarted -> RepositoryEnhanced x N -> EnhancementCompleted

or stop early with FetchError. The organization side channel is independent:

    OrganizationsFetchStarted -> OrganizationsFetched | OrganizationsFetchError
"""

from dataclasses import dataclass, field
from typing import Callable

from repo_health.models import Repository, ViewMode


@dataclass(frozen=True)
class BackgroundMessage:
    """Base class for everything a background producer can emit."""

    generation: int
    mode: ViewMode = field(default=ViewMode.PERSONAL, kw_only=True)


@dataclass(frozen=True)
class FetchStarted(BackgroundMessage):
    """Phase 1 began; the total repository count is known."""

    total: int


@dataclass(frozen=True)
class RepositoryFetched(BackgroundMessage):
    """One basic-info repository is available (append)."""

    repository: Repository
    current: int
    total: int


@dataclass(frozen=True)
class FetchCompleted(BackgroundMessage):
    """The full basic listing is available."""

    repositories: tuple[Repository, ...]


@dataclass(frozen=True)
class FetchError(BackgroundMessage):
    """The cycle failed fatally."""

    message: str


@dataclass(frozen=True)
class EnhancementStarted(BackgroundMessage):
    """Phase 2 began."""

    total: int


@dataclass(frozen=True)
class RepositoryEnhanced(BackgroundMessage):
    """One repository's enriched value is available (replace by name)."""

    repository: Repository
    current: int
    total: int


@dataclass(frozen=True)
class EnhancementCompleted(BackgroundMessage):
    """The final enriched list is available."""

    repositories: tuple[Repository, ...]


@dataclass(frozen=True)
class OrganizationsFetchStarted(BackgroundMessage):
    """The organization list is being fetched."""


@dataclass(frozen=True)
class OrganizationsFetched(BackgroundMessage):
    """Organization names the user can cycle through."""

    organizations: tuple[str, ...]


@dataclass(frozen=True)
class OrganizationsFetchError(BackgroundMessage):
    """Listing organizations failed; the mode list is unchanged."""

    message: str


# Anything that accepts a message: a queue's send method, list.append in tests.
MessageSink = Callable[[BackgroundMessage], None]


CYCLE_MESSAGES = (
    FetchStarted,
    RepositoryFetched,
    FetchCompleted,
    FetchError,
    EnhancementStarted,
    RepositoryEnhanced,
    EnhancementCompleted,
)

ORGANIZATION_MESSAGES = (
    OrganizationsFetchStarted,
    OrganizationsFetched,
    OrganizationsFetchError,
)
