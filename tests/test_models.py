"""Tests for repo-health data models."""

from dataclasses import replace
from datetime import timedelta

import pytest

from conftest import NOW, make_repo, make_run
from repo_health.models import (
    ActivityStatus,
    PullRequest,
    PullRequestState,
    ViewMode,
    WorkflowHealth,
    WorkflowStatus,
    parse_timestamp,
)
from repo_health.providers.base import Enrichment


class TestActivityStatus:
    """Tests for ActivityStatus.from_last_commit."""

    @pytest.mark.parametrize(
        "days, expected",
        [
            (0, ActivityStatus.HOT),
            (1, ActivityStatus.ACTIVE),
            (7, ActivityStatus.ACTIVE),
            (8, ActivityStatus.MODERATE),
            (30, ActivityStatus.MODERATE),
            (31, ActivityStatus.QUIET),
            (90, ActivityStatus.QUIET),
            (91, ActivityStatus.STALE),
            (180, ActivityStatus.STALE),
            (181, ActivityStatus.DORMANT),
        ],
    )
    def test_day_boundaries(self, days: int, expected: ActivityStatus) -> None:
        """Test each whole-day boundary maps to the right status."""
        assert ActivityStatus.from_last_commit(NOW - timedelta(days=days), NOW) == expected

    def test_partial_days_round_down(self) -> None:
        """Test 7 days and 23 hours still counts as 7 days."""
        commit = NOW - timedelta(days=7, hours=23)
        assert ActivityStatus.from_last_commit(commit, NOW) == ActivityStatus.ACTIVE

    def test_unknown_without_commit(self) -> None:
        """Test a missing commit timestamp is unknown."""
        assert ActivityStatus.from_last_commit(None, NOW) == ActivityStatus.UNKNOWN

    def test_future_commit_is_unknown(self) -> None:
        """Test a commit dated in the future is unknown."""
        assert ActivityStatus.from_last_commit(NOW + timedelta(hours=1), NOW) == ActivityStatus.UNKNOWN

    def test_emoji_and_description(self) -> None:
        """Test display helpers."""
        assert ActivityStatus.HOT.emoji == "🔥"
        assert ActivityStatus.DORMANT.emoji == "💤"
        assert ActivityStatus.ACTIVE.description == "Active (this week)"


class TestWorkflowHealth:
    """Tests for WorkflowHealth.from_workflow_runs."""

    def test_no_runs_is_excellent(self) -> None:
        """Test absence of runs is not treated as failure."""
        assert WorkflowHealth.from_workflow_runs([]) == WorkflowHealth.EXCELLENT

    def test_single_success_is_excellent(self) -> None:
        assert WorkflowHealth.from_workflow_runs([make_run(1)]) == WorkflowHealth.EXCELLENT

    def test_single_failure_is_critical(self) -> None:
        runs = [make_run(1, WorkflowStatus.FAILED)]
        assert WorkflowHealth.from_workflow_runs(runs) == WorkflowHealth.CRITICAL

    def test_three_of_four_is_fair(self) -> None:
        """Test 0.75 falls below the 0.8 cutoff for good."""
        runs = [make_run(i) for i in range(3)] + [make_run(3, WorkflowStatus.FAILED)]
        assert WorkflowHealth.from_workflow_runs(runs) == WorkflowHealth.FAIR

    def test_four_of_five_is_good(self) -> None:
        runs = [make_run(i) for i in range(4)] + [make_run(4, WorkflowStatus.FAILED)]
        assert WorkflowHealth.from_workflow_runs(runs) == WorkflowHealth.GOOD

    def test_one_of_three_is_poor(self) -> None:
        runs = [make_run(0)] + [make_run(i, WorkflowStatus.FAILED) for i in (1, 2)]
        assert WorkflowHealth.from_workflow_runs(runs) == WorkflowHealth.POOR

    def test_in_progress_counts_as_not_successful(self) -> None:
        runs = [make_run(0), make_run(1, WorkflowStatus.IN_PROGRESS)]
        assert WorkflowHealth.from_workflow_runs(runs) == WorkflowHealth.FAIR


class TestWorkflowStatus:
    """Tests for mapping API status strings."""

    def test_from_api(self) -> None:
        assert WorkflowStatus.from_api("completed", "success") == WorkflowStatus.SUCCESS
        assert WorkflowStatus.from_api("completed", "failure") == WorkflowStatus.FAILED
        assert WorkflowStatus.from_api("completed", "cancelled") == WorkflowStatus.CANCELLED
        assert WorkflowStatus.from_api("in_progress", None) == WorkflowStatus.IN_PROGRESS
        assert WorkflowStatus.from_api("completed", "skipped") == WorkflowStatus.UNKNOWN

    def test_description(self) -> None:
        assert WorkflowStatus.SUCCESS.description == "Passed"
        assert WorkflowStatus.IN_PROGRESS.description == "Running"

    def test_run_is_recent(self) -> None:
        """Test runs count as recent for 24 hours after they start."""
        run = make_run(1)
        assert run.is_recent(now=NOW)
        assert not run.is_recent(now=NOW + timedelta(days=1))
        assert not replace(run, created_at=None).is_recent(now=NOW)


class TestRepository:
    """Tests for the Repository model."""

    def test_defaults(self) -> None:
        """Test a basic repository starts unknown with no detail."""
        repo = make_repo("test-repo", owner="test-org")
        assert repo.full_name == "test-org/test-repo"
        assert repo.status == ActivityStatus.UNKNOWN
        assert repo.workflow_health == WorkflowHealth.UNKNOWN
        assert repo.open_pull_requests == ()

    def test_is_immutable(self) -> None:
        """Test repositories cannot be edited in place."""
        repo = make_repo("frozen")
        with pytest.raises(AttributeError):
            repo.stars = 5  # type: ignore[misc]

    def test_enriched_returns_new_value(self) -> None:
        """Test enrichment derives status and health on a copy."""
        repo = make_repo("alpha", stars=3)
        enrichment = Enrichment(
            pull_requests=[PullRequest(number=1, title="Fix")],
            latest_commit_at=NOW - timedelta(days=10),
            workflow_runs=[make_run(2), make_run(1, WorkflowStatus.FAILED)],
        )

        enriched = repo.enriched(enrichment, NOW)

        assert enriched is not repo
        assert repo.open_pull_requests == ()
        assert enriched.stars == 3
        assert enriched.status == ActivityStatus.MODERATE
        assert enriched.workflow_health == WorkflowHealth.FAIR
        assert enriched.latest_workflow.id == 2
        assert len(enriched.open_pull_requests) == 1
        assert enriched.last_updated == NOW

    def test_enriched_keeps_values_for_failed_parts(self) -> None:
        """Test a part that failed to fetch keeps the previous value."""
        repo = make_repo("alpha")
        enrichment = Enrichment(
            latest_commit_at=NOW,
            errors={"workflow_runs": "GitHub API error: 500"},
        )

        enriched = repo.enriched(enrichment, NOW)

        assert enriched.status == ActivityStatus.HOT
        assert enriched.workflow_health == WorkflowHealth.UNKNOWN

    def test_needs_attention(self) -> None:
        assert make_repo("a", status=ActivityStatus.DORMANT).needs_attention()
        assert make_repo("b", open_pull_requests=(PullRequest(1, "x"),)).needs_attention()
        assert not make_repo("c", status=ActivityStatus.ACTIVE).needs_attention()

    def test_status_summary(self) -> None:
        repo = make_repo("a", status=ActivityStatus.HOT, latest_workflow=make_run(1))
        assert repo.status_summary() == "Very active (today) | Passed | 0 open PRs"


class TestPullRequest:
    def test_defaults(self) -> None:
        pr = PullRequest(number=7, title="Add feature")
        assert pr.state == PullRequestState.OPEN
        assert pr.approvals == 0
        assert pr.draft is False


class TestViewMode:
    """Tests for ViewMode identity."""

    def test_personal(self) -> None:
        assert ViewMode.PERSONAL.is_personal
        assert ViewMode.PERSONAL == ViewMode()
        assert ViewMode.PERSONAL.label == "Personal"

    def test_organization_identity(self) -> None:
        """Test organization modes compare and hash by name."""
        assert ViewMode.for_organization("acme") == ViewMode.for_organization("acme")
        assert len({ViewMode.for_organization("acme"), ViewMode.for_organization("acme")}) == 1
        assert ViewMode.for_organization("acme") != ViewMode.PERSONAL
        assert ViewMode.for_organization("acme").label == "Org: acme"

    def test_empty_organization_rejected(self) -> None:
        with pytest.raises(ValueError):
            ViewMode.for_organization("")


class TestParseTimestamp:
    def test_parses_github_format(self) -> None:
        parsed = parse_timestamp("2026-10-17T12:00:00Z")
        assert parsed == NOW

    def test_invalid_returns_none(self) -> None:
        assert parse_timestamp("not-a-date") is None
        assert parse_timestamp(None) is None
