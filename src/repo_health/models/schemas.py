"""Value models for repository health data."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Optional

if TYPE_CHECKING:
    from repo_health.providers.base import Enrichment


SECONDS_PER_DAY = 24 * 60 * 60


def utcnow() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a GitHub ISO-8601 timestamp, returning None when unparseable."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None


class ActivityStatus(str, Enum):
    """Activity level of a repository based on its latest commit."""

    HOT = "hot"  # Committed today
    ACTIVE = "active"  # Within the last week
    MODERATE = "moderate"  # Within the last month
    QUIET = "quiet"  # Within the last 3 months
    STALE = "stale"  # Within the last 6 months
    DORMANT = "dormant"  # Over 6 months
    UNKNOWN = "unknown"

    @property
    def description(self) -> str:
        return _ACTIVITY_DESCRIPTIONS[self]

    @property
    def emoji(self) -> str:
        return _ACTIVITY_EMOJI[self]

    @classmethod
    def from_last_commit(
        cls,
        latest_commit_at: Optional[datetime],
        now: Optional[datetime] = None,
    ) -> "ActivityStatus":
        """Determine status from the latest commit timestamp.

        Age is measured in whole days. A commit timestamp in the future is
        treated as unknown rather than hot.
        """
        if latest_commit_at is None:
            return cls.UNKNOWN
        now = now or utcnow()
        age = (now - latest_commit_at).total_seconds()
        if age < 0:
            return cls.UNKNOWN

        days = int(age // SECONDS_PER_DAY)
        if days == 0:
            return cls.HOT
        if days <= 7:
            return cls.ACTIVE
        if days <= 30:
            return cls.MODERATE
        if days <= 90:
            return cls.QUIET
        if days <= 180:
            return cls.STALE
        return cls.DORMANT


_ACTIVITY_DESCRIPTIONS = {
    ActivityStatus.HOT: "Very active (today)",
    ActivityStatus.ACTIVE: "Active (this week)",
    ActivityStatus.MODERATE: "Moderate activity (this month)",
    ActivityStatus.QUIET: "Quiet (last 3 months)",
    ActivityStatus.STALE: "Stale (last 6 months)",
    ActivityStatus.DORMANT: "Dormant (6+ months)",
    ActivityStatus.UNKNOWN: "Status unknown",
}

_ACTIVITY_EMOJI = {
    ActivityStatus.HOT: "🔥",
    ActivityStatus.ACTIVE: "⚡",
    ActivityStatus.MODERATE: "✅",
    ActivityStatus.QUIET: "⚠️",
    ActivityStatus.STALE: "🟡",
    ActivityStatus.DORMANT: "💤",
    ActivityStatus.UNKNOWN: "❓",
}


class WorkflowStatus(str, Enum):
    """Status of a single CI workflow run."""

    SUCCESS = "success"
    FAILED = "failed"
    IN_PROGRESS = "in_progress"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"

    @property
    def description(self) -> str:
        return {
            WorkflowStatus.SUCCESS: "Passed",
            WorkflowStatus.FAILED: "Failed",
            WorkflowStatus.IN_PROGRESS: "Running",
            WorkflowStatus.CANCELLED: "Cancelled",
            WorkflowStatus.UNKNOWN: "Unknown",
        }[self]

    @property
    def emoji(self) -> str:
        return {
            WorkflowStatus.SUCCESS: "✅",
            WorkflowStatus.FAILED: "❌",
            WorkflowStatus.IN_PROGRESS: "⏳",
            WorkflowStatus.CANCELLED: "🚫",
            WorkflowStatus.UNKNOWN: "❓",
        }[self]

    @classmethod
    def from_api(cls, status: Optional[str], conclusion: Optional[str]) -> "WorkflowStatus":
        """Map the GitHub Actions `status`/`conclusion` pair to a status."""
        if status in ("queued", "in_progress", "waiting", "requested", "pending"):
            return cls.IN_PROGRESS
        if conclusion == "success":
            return cls.SUCCESS
        if conclusion in ("failure", "timed_out", "startup_failure"):
            return cls.FAILED
        if conclusion == "cancelled":
            return cls.CANCELLED
        return cls.UNKNOWN


class WorkflowHealth(str, Enum):
    """Overall CI health of a repository across recent runs."""

    EXCELLENT = "excellent"  # All passing, or no workflows at all
    GOOD = "good"  # 80% or more passing
    FAIR = "fair"  # 50-80% passing
    POOR = "poor"  # Under 50% passing
    CRITICAL = "critical"  # Everything failing
    UNKNOWN = "unknown"  # Not yet enriched

    @property
    def description(self) -> str:
        return {
            WorkflowHealth.EXCELLENT: "All workflows passing",
            WorkflowHealth.GOOD: "Most workflows passing",
            WorkflowHealth.FAIR: "Some workflows failing",
            WorkflowHealth.POOR: "Many workflows failing",
            WorkflowHealth.CRITICAL: "All workflows failing",
            WorkflowHealth.UNKNOWN: "No workflow data",
        }[self]

    @property
    def emoji(self) -> str:
        return {
            WorkflowHealth.EXCELLENT: "✅",
            WorkflowHealth.GOOD: "🟢",
            WorkflowHealth.FAIR: "🟡",
            WorkflowHealth.POOR: "🟠",
            WorkflowHealth.CRITICAL: "🔴",
            WorkflowHealth.UNKNOWN: "❓",
        }[self]

    @classmethod
    def from_workflow_runs(cls, runs: "tuple[WorkflowRun, ...] | list[WorkflowRun]") -> "WorkflowHealth":
        """Calculate health from the success ratio of recent runs."""
        if not runs:
            return cls.EXCELLENT

        successful = sum(1 for run in runs if run.status == WorkflowStatus.SUCCESS)
        ratio = successful / len(runs)

        if ratio >= 1.0:
            return cls.EXCELLENT
        if ratio >= 0.8:
            return cls.GOOD
        if ratio >= 0.5:
            return cls.FAIR
        if ratio > 0:
            return cls.POOR
        return cls.CRITICAL


class PullRequestState(str, Enum):
    """Lifecycle state of a pull request."""

    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"

    @property
    def emoji(self) -> str:
        return {
            PullRequestState.OPEN: "🟢",
            PullRequestState.CLOSED: "🔴",
            PullRequestState.MERGED: "🟣",
        }[self]


@dataclass(frozen=True)
class PullRequest:
    """An open review request attached to a repository snapshot."""

    number: int
    title: str
    state: PullRequestState = PullRequestState.OPEN
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    author: str = "unknown"
    html_url: str = ""
    draft: bool = False
    approvals: int = 0
    changes_requested: int = 0


@dataclass(frozen=True)
class WorkflowRun:
    """A GitHub Actions workflow run."""

    id: int
    name: str
    status: WorkflowStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    conclusion: Optional[str] = None
    html_url: str = ""

    @property
    def duration(self) -> Optional[timedelta]:
        """Wall time of a finished run."""
        if self.status == WorkflowStatus.IN_PROGRESS:
            return None
        if self.created_at and self.updated_at:
            return self.updated_at - self.created_at
        return None

    def is_recent(self, now: Optional[datetime] = None) -> bool:
        """Check if this run started within the last 24 hours."""
        if self.created_at is None:
            return False
        now = now or utcnow()
        return now - self.created_at < timedelta(days=1)


@dataclass(frozen=True)
class Repository:
    """A repository with all of its health data.

    Instances are never edited in place. Enrichment produces a new value via
    `enriched`, which replaces the old one by name.
    """

    name: str
    owner: str
    status: ActivityStatus = ActivityStatus.UNKNOWN
    workflow_health: WorkflowHealth = WorkflowHealth.UNKNOWN
    latest_workflow: Optional[WorkflowRun] = None
    recent_workflows: tuple[WorkflowRun, ...] = ()
    open_pull_requests: tuple[PullRequest, ...] = ()
    last_updated: datetime = field(default_factory=utcnow)
    html_url: str = ""
    description: Optional[str] = None
    language: Optional[str] = None
    stars: int = 0
    latest_commit_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        """Return owner/name format."""
        return f"{self.owner}/{self.name}"

    def status_summary(self) -> str:
        """One-line summary of activity, latest workflow and open PRs."""
        workflow = (
            self.latest_workflow.status.description
            if self.latest_workflow
            else "No workflows"
        )
        return (
            f"{self.status.description} | {workflow} | "
            f"{len(self.open_pull_requests)} open PRs"
        )

    def needs_attention(self) -> bool:
        """Stale or dormant repositories and any with open PRs need attention."""
        return (
            self.status in (ActivityStatus.STALE, ActivityStatus.DORMANT)
            or bool(self.open_pull_requests)
        )

    def enriched(self, enrichment: "Enrichment", now: Optional[datetime] = None) -> "Repository":
        """Return a new repository carrying the enrichment's detail.

        Parts of the enrichment that failed keep this repository's values.
        """
        now = now or utcnow()
        failed = set(enrichment.errors)

        pull_requests = self.open_pull_requests
        if "pull_requests" not in failed:
            pull_requests = tuple(enrichment.pull_requests)

        latest_commit_at = self.latest_commit_at
        if "latest_commit" not in failed:
            latest_commit_at = enrichment.latest_commit_at

        runs = self.recent_workflows
        health = self.workflow_health
        if "workflow_runs" not in failed:
            runs = tuple(enrichment.workflow_runs)
            health = WorkflowHealth.from_workflow_runs(runs)

        return replace(
            self,
            open_pull_requests=pull_requests,
            latest_commit_at=latest_commit_at,
            status=ActivityStatus.from_last_commit(latest_commit_at, now),
            recent_workflows=runs,
            latest_workflow=runs[0] if runs else None,
            workflow_health=health,
            last_updated=now,
        )


@dataclass(frozen=True)
class ViewMode:
    """Which repositories are shown: the user's own, or one organization's."""

    organization: Optional[str] = None

    PERSONAL: ClassVar["ViewMode"]

    @classmethod
    def for_organization(cls, name: str) -> "ViewMode":
        if not name:
            raise ValueError("Organization name must not be empty")
        return cls(organization=name)

    @property
    def is_personal(self) -> bool:
        return self.organization is None

    @property
    def label(self) -> str:
        return "Personal" if self.organization is None else f"Org: {self.organization}"

    def __str__(self) -> str:
        return self.label


ViewMode.PERSONAL = ViewMode()
