"""Data models for repo-health."""

from .schemas import (
    ActivityStatus,
    PullRequest,
    PullRequestState,
    Repository,
    ViewMode,
    WorkflowHealth,
    WorkflowRun,
    WorkflowStatus,
    parse_timestamp,
    utcnow,
)

__all__ = [
    "ActivityStatus",
    "PullRequest",
    "PullRequestState",
    "Repository",
    "ViewMode",
    "WorkflowHealth",
    "WorkflowRun",
    "WorkflowStatus",
    "parse_timestamp",
    "utcnow",
]
