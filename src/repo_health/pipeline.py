"""Two-phase background loading of repository data.

A fetch cycle first emits the cheap basic listing so the dashboard can show
and navigate it immediately, then enriches each repository one by one.
Cycles hold no state of their own: they borrow a provider and a message sink
for their duration and communicate only through the sink.
"""

import logging
import queue
import time
from typing import Callable

from repo_health.messages import (
    BackgroundMessage,
    EnhancementCompleted,
    EnhancementStarted,
    FetchCompleted,
    FetchError,
    FetchStarted,
    MessageSink,
    OrganizationsFetched,
    OrganizationsFetchError,
    OrganizationsFetchStarted,
    RepositoryEnhanced,
    RepositoryFetched,
)
from repo_health.models import Repository, ViewMode
from repo_health.providers.base import ProviderError, RepositoryProvider


logger = logging.getLogger(__name__)

# Pause between item emissions so progress renders smoothly instead of in one burst
DEFAULT_ITEM_DELAY = 0.05


class MessageQueue:
    """FIFO channel between background producers and the render loop.

    `send` is safe to call from any thread. `drain` never blocks: it returns
    whatever has arrived so far, in arrival order.
    """

    def __init__(self) -> None:
        self._queue: "queue.SimpleQueue[BackgroundMessage]" = queue.SimpleQueue()

    def send(self, message: BackgroundMessage) -> None:
        self._queue.put(message)

    __call__ = send

    def drain(self) -> list[BackgroundMessage]:
        messages = []
        while True:
            try:
                messages.append(self._queue.get_nowait())
            except queue.Empty:
                return messages

    def empty(self) -> bool:
        return self._queue.empty()


def _never_cancelled() -> bool:
    return False


def run_fetch_cycle(
    mode: ViewMode,
    provider: RepositoryProvider,
    sink: MessageSink,
    *,
    generation: int,
    item_delay: float = DEFAULT_ITEM_DELAY,
    sleep: Callable[[float], None] = time.sleep,
    cancelled: Callable[[], bool] = _never_cancelled,
) -> list[Repository]:
    """Run one fetch cycle for a view mode, emitting progress into `sink`.

    Args:
        mode: View mode to list repositories for
        provider: Source of listings and enrichment
        sink: Receives every message of the cycle, in order
        generation: Tag identifying this cycle
        item_delay: Seconds to pause after each item emission
        sleep: Sleep function (replaced in tests)
        cancelled: Polled before each item; once it returns True the cycle
            stops without emitting anything further

    Returns:
        The enriched repositories, or an empty list if the listing failed
        or the cycle was cancelled
    """

    def emit(message_type, **fields) -> None:
        sink(message_type(generation, mode=mode, **fields))

    try:
        repositories = list(provider.list_repositories(mode))
    except ProviderError as e:
        logger.error("Listing repositories for %s failed: %s", mode.label, e)
        emit(FetchError, message=f"Failed to fetch repositories: {e}")
        return []
    except Exception as e:
        logger.exception("Unexpected error listing repositories for %s", mode.label)
        emit(FetchError, message=f"Failed to fetch repositories: {e}")
        return []

    if cancelled():
        return _stop(mode, generation)

    total = len(repositories)
    logger.info("Fetched %d repositories for %s (generation %d)", total, mode.label, generation)

    emit(FetchStarted, total=total)
    for current, repository in enumerate(repositories, start=1):
        if cancelled():
            return _stop(mode, generation)
        emit(RepositoryFetched, repository=repository, current=current, total=total)
        sleep(item_delay)
    emit(FetchCompleted, repositories=tuple(repositories))

    emit(EnhancementStarted, total=total)
    enhanced: list[Repository] = []
    for current, repository in enumerate(repositories, start=1):
        if cancelled():
            return _stop(mode, generation)
        enhanced_repository = enhance_repository(repository, provider)
        enhanced.append(enhanced_repository)
        emit(RepositoryEnhanced, repository=enhanced_repository, current=current, total=total)
        sleep(item_delay)
    emit(EnhancementCompleted, repositories=tuple(enhanced))

    return enhanced


def _stop(mode: ViewMode, generation: int) -> list[Repository]:
    logger.info("Fetch cycle %d for %s cancelled", generation, mode.label)
    return []


def enhance_repository(repository: Repository, provider: RepositoryProvider) -> Repository:
    """Enrich one repository, keeping its basic values if enrichment fails."""
    try:
        enrichment = provider.enrich(repository)
    except Exception as e:
        logger.warning("Failed to enrich %s: %s", repository.full_name, e)
        return repository

    if enrichment.is_partial:
        for part, error in enrichment.errors.items():
            logger.warning("Failed to fetch %s for %s: %s", part, repository.full_name, error)
    return repository.enriched(enrichment)


def run_organizations_fetch(
    provider: RepositoryProvider,
    sink: MessageSink,
    *,
    generation: int,
) -> list[str]:
    """Fetch the organization names used for cycling view modes."""
    sink(OrganizationsFetchStarted(generation))
    try:
        organizations = list(provider.list_organizations())
    except Exception as e:
        logger.warning("Failed to fetch organizations: %s", e)
        sink(OrganizationsFetchError(generation, message=f"Failed to fetch organizations: {e}"))
        return []

    logger.info("Fetched %d organizations", len(organizations))
    sink(OrganizationsFetched(generation, organizations=tuple(organizations)))
    return organizations
