"""GitHub data provider for repo-health.

This module provides:
- A GitHub API client with retry and rate limit tracking
- Conversion of API payloads into repository health models
- A `RepositoryProvider` implementation backed by the client
"""

import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from repo_health.config import FALLBACK_TOKEN_ENV_VAR, TOKEN_ENV_VAR
from repo_health.models import (
    PullRequest,
    PullRequestState,
    Repository,
    ViewMode,
    WorkflowRun,
    WorkflowStatus,
    parse_timestamp,
    utcnow,
)
from repo_health.providers.base import (
    Enrichment,
    ProviderError,
    ProviderUnavailable,
    RepositoryProvider,
)


logger = logging.getLogger(__name__)


@dataclass
class RateLimitInfo:
    """GitHub API rate limit information."""

    limit: int = 5000
    remaining: int = 5000
    reset_at: float = 0.0

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> "RateLimitInfo":
        """Parse rate limit info from response headers."""
        return cls(
            limit=int(headers.get("x-ratelimit-limit", 5000)),
            remaining=int(headers.get("x-ratelimit-remaining", 5000)),
            reset_at=float(headers.get("x-ratelimit-reset", 0)),
        )

    @property
    def is_exhausted(self) -> bool:
        return self.remaining <= 0

    @property
    def seconds_until_reset(self) -> float:
        return max(0, self.reset_at - time.time())


def describe_http_error(error: httpx.HTTPError) -> str:
    """Turn an httpx error into a short user-facing message."""
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        if status == 401:
            return "GitHub authentication failed"
        if status == 403 and "rate limit" in error.response.text.lower():
            return "GitHub API rate limit exceeded"
        if status == 404:
            return f"Not found: {error.request.url.path}"
        return f"GitHub API error: {status} {error.response.reason_phrase}"
    if isinstance(error, (httpx.ConnectError, httpx.TimeoutException)):
        return f"Network error: {error}"
    return f"GitHub API error: {error}"


class GitHubClient:
    """Client for the GitHub REST API with retry handling."""

    BASE_URL = "https://api.github.com"

    def __init__(
        self,
        token: Optional[str] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
    ):
        """Initialize GitHub client.

        Args:
            token: GitHub personal access token.
            max_retries: Maximum number of retries for failed requests.
            retry_delay: Base delay between retries (exponential backoff).
            timeout: Per-request timeout in seconds.
        """
        self.token = token
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._client: Optional[httpx.Client] = None
        self._closed = False
        # Fetch and organization workers share one client
        self._lock = threading.Lock()
        self._rate_limit = RateLimitInfo()

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client.

        Raises:
            RuntimeError: If the client was already closed
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("GitHub client is closed")
            if self._client is None:
                headers = {
                    "Accept": "application/vnd.github+json",
                    "User-Agent": "repo-health-dashboard",
                }
                if self.token:
                    headers["Authorization"] = f"Bearer {self.token}"
                self._client = httpx.Client(
                    base_url=self.BASE_URL,
                    headers=headers,
                    timeout=self.timeout,
                    follow_redirects=True,
                )
            return self._client

    @property
    def rate_limit(self) -> RateLimitInfo:
        """Rate limit info from the most recent response."""
        return self._rate_limit

    def close(self) -> None:
        """Close the HTTP client. It is not reopened afterwards."""
        with self._lock:
            self._closed = True
            if self._client:
                self._client.close()
                self._client = None

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs,
    ) -> httpx.Response:
        """Make a request, retrying transport failures and server errors.

        Rate limit responses are not waited out; they fail immediately so a
        fetch cycle reports them instead of stalling.

        Raises:
            httpx.HTTPError: If the request still fails after retries
        """
        for attempt in range(self.max_retries + 1):
            try:
                response = self.client.request(method, url, **kwargs)
                self._rate_limit = RateLimitInfo.from_headers(response.headers)

                if response.status_code >= 500:
                    response.raise_for_status()

                return response

            except (httpx.ConnectError, httpx.ReadTimeout, httpx.HTTPStatusError) as e:
                if attempt < self.max_retries:
                    delay = self.retry_delay * (2 ** attempt)
                    logger.debug("Retrying %s %s in %.1fs: %s", method, url, delay, e)
                    time.sleep(delay)
                    continue
                raise

        raise RuntimeError("Request failed without error")

    def get(self, url: str, **kwargs) -> httpx.Response:
        """Make GET request with retry handling."""
        response = self._request_with_retry("GET", url, **kwargs)
        response.raise_for_status()
        return response

    def _get_paginated(self, url: str, limit: int, params: Optional[dict] = None) -> list[dict]:
        """Collect up to `limit` items from a paginated list endpoint."""
        items: list[dict] = []
        per_page = min(limit, 100)
        page = 1

        while len(items) < limit:
            response = self.get(
                url,
                params={**(params or {}), "per_page": per_page, "page": page},
            )
            data = response.json()
            if not data:
                break
            items.extend(data)
            if len(data) < per_page:
                break
            page += 1

        return items[:limit]

    def list_user_repos(self, sort: str = "updated", limit: int = 100) -> list[dict]:
        """List repositories owned by the authenticated user."""
        return self._get_paginated(
            "/user/repos",
            limit,
            params={"type": "owner", "sort": sort},
        )

    def list_org_repos(self, org: str, sort: str = "updated", limit: int = 100) -> list[dict]:
        """List repositories of an organization."""
        return self._get_paginated(
            f"/orgs/{org}/repos",
            limit,
            params={"type": "all", "sort": sort},
        )

    def list_user_orgs(self, limit: int = 100) -> list[dict]:
        """List organizations of the authenticated user."""
        return self._get_paginated("/user/orgs", limit)

    def get_open_pull_requests(self, owner: str, name: str, limit: int = 50) -> list[dict]:
        """Fetch open pull requests, most recently updated first."""
        return self._get_paginated(
            f"/repos/{owner}/{name}/pulls",
            limit,
            params={"state": "open", "sort": "updated", "direction": "desc"},
        )

    def get_pull_request_reviews(self, owner: str, name: str, number: int) -> list[dict]:
        """Fetch submitted reviews for a pull request."""
        return self.get(f"/repos/{owner}/{name}/pulls/{number}/reviews").json()

    def get_latest_commit(self, owner: str, name: str) -> Optional[dict]:
        """Fetch the most recent commit on the default branch.

        Returns:
            Commit dict, or None for an empty repository
        """
        try:
            response = self.get(f"/repos/{owner}/{name}/commits", params={"per_page": 1})
        except httpx.HTTPStatusError as e:
            # 409 Conflict is GitHub's answer for an empty repository
            if e.response.status_code == 409:
                return None
            raise
        data = response.json()
        return data[0] if data else None

    def get_workflow_runs(self, owner: str, name: str, limit: int = 10) -> list[dict]:
        """Fetch the most recent GitHub Actions workflow runs."""
        try:
            response = self.get(
                f"/repos/{owner}/{name}/actions/runs",
                params={"per_page": min(limit, 100)},
            )
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return []
            raise
        return response.json().get("workflow_runs", [])[:limit]


def repository_from_api(item: dict[str, Any]) -> Repository:
    """Build a basic (unenriched) repository from a listing item."""
    owner = item.get("owner") or {}
    return Repository(
        name=item["name"],
        owner=owner.get("login", ""),
        html_url=item.get("html_url") or "",
        description=item.get("description"),
        language=item.get("language"),
        stars=item.get("stargazers_count") or 0,
        last_updated=utcnow(),
    )


def pull_request_from_api(item: dict[str, Any], reviews: Optional[list[dict]] = None) -> PullRequest:
    """Build a pull request, counting reviews by each reviewer's latest verdict."""
    if item.get("merged_at"):
        state = PullRequestState.MERGED
    elif item.get("state") == "closed":
        state = PullRequestState.CLOSED
    else:
        state = PullRequestState.OPEN

    latest_by_reviewer: dict[str, str] = {}
    for review in reviews or []:
        verdict = review.get("state")
        if verdict in ("APPROVED", "CHANGES_REQUESTED", "DISMISSED"):
            reviewer = (review.get("user") or {}).get("login", "")
            latest_by_reviewer[reviewer] = verdict
    verdicts = list(latest_by_reviewer.values())

    return PullRequest(
        number=item["number"],
        title=item.get("title") or "",
        state=state,
        created_at=parse_timestamp(item.get("created_at")),
        updated_at=parse_timestamp(item.get("updated_at")),
        author=(item.get("user") or {}).get("login", "unknown"),
        html_url=item.get("html_url") or "",
        draft=bool(item.get("draft")),
        approvals=verdicts.count("APPROVED"),
        changes_requested=verdicts.count("CHANGES_REQUESTED"),
    )


def workflow_run_from_api(item: dict[str, Any]) -> WorkflowRun:
    return WorkflowRun(
        id=item["id"],
        name=item.get("name") or "",
        status=WorkflowStatus.from_api(item.get("status"), item.get("conclusion")),
        created_at=parse_timestamp(item.get("created_at")),
        updated_at=parse_timestamp(item.get("updated_at")),
        conclusion=item.get("conclusion"),
        html_url=item.get("html_url") or "",
    )


def commit_timestamp(commit: Optional[dict[str, Any]]):
    """Author date of a commit payload, or None."""
    if not commit:
        return None
    author = (commit.get("commit") or {}).get("author") or {}
    return parse_timestamp(author.get("date"))


class GitHubProvider(RepositoryProvider):
    """Repository provider backed by the GitHub REST API."""

    def __init__(
        self,
        client: GitHubClient,
        max_repositories: int = 50,
        pull_request_limit: int = 50,
        workflow_run_limit: int = 10,
    ):
        self.client = client
        self.max_repositories = max_repositories
        self.pull_request_limit = pull_request_limit
        self.workflow_run_limit = workflow_run_limit

    @classmethod
    def from_env(cls, token: Optional[str] = None, **kwargs) -> "GitHubProvider":
        """Create a provider from an explicit token or the environment.

        Raises:
            ProviderUnavailable: If no token is available
        """
        token = token or os.environ.get(TOKEN_ENV_VAR) or os.environ.get(FALLBACK_TOKEN_ENV_VAR)
        if not token:
            raise ProviderUnavailable(
                f"{TOKEN_ENV_VAR} environment variable not set"
            )
        return cls(GitHubClient(token=token), **kwargs)

    def close(self) -> None:
        self.client.close()

    def list_repositories(self, mode: ViewMode) -> list[Repository]:
        try:
            if mode.is_personal:
                items = self.client.list_user_repos(limit=self.max_repositories)
            else:
                items = self.client.list_org_repos(mode.organization, limit=self.max_repositories)
        except httpx.HTTPError as e:
            raise ProviderError(self._describe(e)) from e

        repositories = []
        for item in items:
            try:
                repositories.append(repository_from_api(item))
            except KeyError as e:
                logger.warning("Skipping malformed repository payload: missing %s", e)
        return repositories

    def enrich(self, repository: Repository) -> Enrichment:
        owner, name = repository.owner, repository.name
        enrichment = Enrichment()

        try:
            pulls = self.client.get_open_pull_requests(owner, name, limit=self.pull_request_limit)
            enrichment.pull_requests = [
                pull_request_from_api(item, self._reviews(owner, name, item["number"]))
                for item in pulls
            ]
        except httpx.HTTPError as e:
            enrichment.errors["pull_requests"] = self._describe(e)

        try:
            enrichment.latest_commit_at = commit_timestamp(self.client.get_latest_commit(owner, name))
        except httpx.HTTPError as e:
            enrichment.errors["latest_commit"] = self._describe(e)

        try:
            runs = self.client.get_workflow_runs(owner, name, limit=self.workflow_run_limit)
            enrichment.workflow_runs = [workflow_run_from_api(item) for item in runs]
        except httpx.HTTPError as e:
            enrichment.errors["workflow_runs"] = self._describe(e)

        if len(enrichment.errors) == 3:
            raise ProviderError(
                f"Failed to enrich {repository.full_name}: {enrichment.errors['pull_requests']}"
            )
        return enrichment

    def _describe(self, error: httpx.HTTPError) -> str:
        message = describe_http_error(error)
        rate_limit = self.client.rate_limit
        if rate_limit.is_exhausted:
            minutes = int(rate_limit.seconds_until_reset // 60) + 1
            message = f"{message} (resets in {minutes} min)"
        return message

    def _reviews(self, owner: str, name: str, number: int) -> list[dict]:
        try:
            return self.client.get_pull_request_reviews(owner, name, number)
        except httpx.HTTPError as e:
            logger.debug("No reviews for %s/%s#%s: %s", owner, name, number, e)
            return []

    def list_organizations(self) -> list[str]:
        try:
            items = self.client.list_user_orgs()
        except httpx.HTTPError as e:
            raise ProviderError(self._describe(e)) from e
        return [item["login"] for item in items if item.get("login")]
