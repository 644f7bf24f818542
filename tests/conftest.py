"""Shared fixtures for repo-health tests."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from repo_health.models import Repository, ViewMode, WorkflowRun, WorkflowStatus
from repo_health.providers.base import Enrichment, ProviderError, RepositoryProvider


NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def make_repo(name: str, owner: str = "octo", **kwargs) -> Repository:
    """Build a basic repository with a fixed timestamp."""
    kwargs.setdefault("last_updated", NOW)
    kwargs.setdefault("html_url", f"https://github.com/{owner}/{name}")
    return Repository(name=name, owner=owner, **kwargs)


def make_run(run_id: int, status: WorkflowStatus = WorkflowStatus.SUCCESS) -> WorkflowRun:
    return WorkflowRun(
        id=run_id,
        name="CI",
        status=status,
        created_at=NOW - timedelta(hours=1),
        updated_at=NOW,
    )


class FakeProvider(RepositoryProvider):
    """In-memory provider recording every call it receives."""

    def __init__(
        self,
        repositories: Optional[dict[ViewMode, list[Repository]]] = None,
        organizations: Optional[list[str]] = None,
        fail_listing: bool = False,
        fail_enrich: Optional[set[str]] = None,
        fail_organizations: bool = False,
    ) -> None:
        self.repositories = repositories or {}
        self.organizations = organizations or []
        self.fail_listing = fail_listing
        self.fail_enrich = fail_enrich or set()
        self.fail_organizations = fail_organizations
        self.calls: list[tuple] = []

    def list_repositories(self, mode: ViewMode) -> list[Repository]:
        self.calls.append(("list", mode))
        if self.fail_listing:
            raise ProviderError("boom")
        return list(self.repositories.get(mode, []))

    def enrich(self, repository: Repository) -> Enrichment:
        self.calls.append(("enrich", repository.name))
        if repository.name in self.fail_enrich:
            raise ProviderError(f"cannot enrich {repository.name}")
        return Enrichment(
            latest_commit_at=NOW - timedelta(days=2),
            workflow_runs=[make_run(1)],
        )

    def list_organizations(self) -> list[str]:
        self.calls.append(("orgs",))
        if self.fail_organizations:
            raise ProviderError("no orgs")
        return list(self.organizations)


@pytest.fixture
def repos() -> list[Repository]:
    return [make_repo("alpha"), make_repo("beta"), make_repo("gamma")]


@pytest.fixture
def provider(repos) -> FakeProvider:
    return FakeProvider(
        repositories={
            ViewMode.PERSONAL: repos,
            ViewMode.for_organization("acme"): [make_repo("widget", owner="acme")],
        },
        organizations=["acme", "globex"],
    )
