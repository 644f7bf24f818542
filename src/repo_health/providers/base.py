"""Base classes for repository data providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from repo_health.models import PullRequest, Repository, ViewMode, WorkflowRun


class ProviderError(Exception):
    """A provider call failed."""


class ProviderUnavailable(ProviderError):
    """The provider cannot be used at all, e.g. no credential is configured."""


@dataclass
class Enrichment:
    """Per-repository detail returned by `RepositoryProvider.enrich`.

    A part that could not be fetched keeps its default and is named in
    `errors` ("pull_requests", "latest_commit" or "workflow_runs"), so a
    partial failure never loses the parts that did succeed.
    """

    pull_requests: list[PullRequest] = field(default_factory=list)
    latest_commit_at: Optional[datetime] = None
    workflow_runs: list[WorkflowRun] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def is_partial(self) -> bool:
        return bool(self.errors)


class RepositoryProvider(ABC):
    """Abstract source of repository listings and per-repository detail."""

    @abstractmethod
    def list_repositories(self, mode: ViewMode) -> list[Repository]:
        """List basic repository info for a view mode, most recently updated first.

        Raises:
            ProviderError: If the listing cannot be fetched.
        """
        pass

    @abstractmethod
    def enrich(self, repository: Repository) -> Enrichment:
        """Fetch review requests, latest commit and recent workflow runs.

        Raises:
            ProviderError: If nothing at all could be fetched.
        """
        pass

    @abstractmethod
    def list_organizations(self) -> list[str]:
        """List organization names the current user belongs to."""
        pass

    def close(self) -> None:
        """Release any held resources."""
        pass
