"""Main repo-health TUI application."""

import logging
from datetime import datetime
from functools import partial
from typing import Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.widgets import DataTable, Footer, Header, Label, ProgressBar, Rule, Static
from textual.worker import get_current_worker

from repo_health.commands import Command, Dashboard
from repo_health.config import HealthConfig
from repo_health.models import Repository, utcnow
from repo_health.pipeline import MessageQueue, run_fetch_cycle, run_organizations_fetch
from repo_health.providers.base import RepositoryProvider
from repo_health.state import (
    PROVIDER_UNAVAILABLE_MESSAGE,
    AppState,
    FetchRequest,
    LoadPhaseKind,
    OrganizationsRequest,
    StateSnapshot,
)


logger = logging.getLogger(__name__)

COLUMNS = ("", "Repository", "CI", "PRs", "Lang", "⭐", "Last commit")


def format_age(moment: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Short relative age like '5m ago' or '3d ago'."""
    if moment is None:
        return "-"
    seconds = int(((now or utcnow()) - moment).total_seconds())
    if seconds < 60:
        return f"{max(seconds, 0)}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def repository_row(repo: Repository) -> tuple[str, ...]:
    pr_count = len(repo.open_pull_requests)
    return (
        repo.status.emoji,
        repo.name,
        repo.workflow_health.emoji,
        str(pr_count) if pr_count else "",
        repo.language or "",
        str(repo.stars) if repo.stars else "",
        format_age(repo.latest_commit_at),
    )


class StatusWidget(Static):
    """Load phase, progress and view mode."""

    def compose(self) -> ComposeResult:
        with Horizontal():
            yield Label("", id="mode-label")
            yield Label("Idle", id="phase-label")
            yield ProgressBar(total=100, show_eta=False, id="load-progress")
            yield Label("", id="refresh-label")

    def show(self, snapshot: StateSnapshot) -> None:
        mode = snapshot.current_mode.label
        if snapshot.organization_count:
            mode = f"{mode} (tab: {snapshot.organization_count} orgs)"
        elif snapshot.organizations_loading:
            mode = f"{mode} (loading orgs...)"
        self.query_one("#mode-label", Label).update(f"👤 {mode}")

        phase = snapshot.load_phase
        phase_label = self.query_one("#phase-label", Label)
        phase_label.update(phase.describe())
        phase_label.set_class(phase.kind == LoadPhaseKind.FAILED, "error")

        progress = self.query_one("#load-progress", ProgressBar)
        progress.display = phase.has_progress
        progress.update(progress=phase.fraction * 100)

        refreshed = (
            f"Last refresh: {format_age(snapshot.last_refresh)}"
            if snapshot.last_refresh
            else ""
        )
        self.query_one("#refresh-label", Label).update(refreshed)


class RepositoryDetailPanel(Vertical):
    """Panel showing the selected repository."""

    repository: reactive[Optional[Repository]] = reactive(None)

    def compose(self) -> ComposeResult:
        yield Label("Select a repository", id="repo-title", classes="title")
        yield Rule()
        yield Static("", id="repo-info", markup=True)

    def watch_repository(self, repo: Optional[Repository]) -> None:
        if repo is None:
            self.query_one("#repo-title", Label).update("Select a repository")
            self.query_one("#repo-info", Static).update("")
            return

        self.query_one("#repo-title", Label).update(f"📁 {repo.full_name}")

        lines = []
        if repo.description:
            lines.append(f"📝 {repo.description}")
            lines.append("")
        lines.append(f"{repo.status.emoji} {repo.status.description}")
        lines.append(f"{repo.workflow_health.emoji} {repo.workflow_health.description}")
        if repo.latest_workflow:
            run = repo.latest_workflow
            lines.append(f"   Latest: {run.name} {run.status.emoji} {run.status.description}")
        recent = sum(1 for run in repo.recent_workflows if run.is_recent())
        if recent:
            lines.append(f"   {recent} runs in the last 24h")
        if repo.language:
            lines.append(f"💻 Language: {repo.language}")
        lines.append(f"⭐ Stars: {repo.stars:,}")
        if repo.html_url:
            lines.append(f"🔗 {repo.html_url}")

        lines.append("")
        if repo.open_pull_requests:
            lines.append(f"[b]Open pull requests ({len(repo.open_pull_requests)})[/]")
            for pr in repo.open_pull_requests[:10]:
                draft = " [dim](draft)[/]" if pr.draft else ""
                reviews = f" ✔{pr.approvals}" if pr.approvals else ""
                if pr.changes_requested:
                    reviews += f" ✘{pr.changes_requested}"
                lines.append(f"{pr.state.emoji} #{pr.number} {pr.title} by {pr.author}{draft}{reviews}")
        else:
            lines.append("[dim]No open pull requests[/]")

        self.query_one("#repo-info", Static).update("\n".join(lines))


class RepoHealthApp(App):
    """Terminal dashboard for repository health."""

    TITLE = "Repo Health"
    SUB_TITLE = "Team Repository Health Dashboard"

    CSS = """
    Screen {
        layout: vertical;
    }

    StatusWidget {
        height: 1;
        padding: 0 1;
        background: $primary-darken-2;
    }

    StatusWidget Horizontal {
        height: 1;
    }

    StatusWidget Label {
        margin-right: 2;
    }

    StatusWidget .error {
        color: $error;
    }

    #load-progress {
        width: 30;
    }

    #main {
        height: 1fr;
    }

    #repo-table {
        width: 2fr;
        height: 100%;
    }

    RepositoryDetailPanel {
        width: 1fr;
        height: 100%;
        padding: 0 1;
        border-left: solid $primary;
    }

    RepositoryDetailPanel .title {
        text-style: bold;
    }

    #error-bar {
        height: auto;
        color: $error;
        padding: 0 1;
        display: none;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True),
        Binding("escape", "quit", "Quit", show=False),
        Binding("r", "refresh", "Refresh", show=True),
        Binding("f5", "refresh", "Refresh", show=False),
        Binding("tab", "cycle_mode", "Switch Mode", show=True, priority=True),
        Binding("up", "move_up", "Up", show=False),
        Binding("k", "move_up", "Up", show=False),
        Binding("down", "move_down", "Down", show=False),
        Binding("j", "move_down", "Down", show=False),
        Binding("pageup", "page_up", "Page Up", show=False),
        Binding("pagedown", "page_down", "Page Down", show=False),
        Binding("home", "home", "Top", show=False),
        Binding("end", "end", "Bottom", show=False),
    ]

    def __init__(
        self,
        provider: Optional[RepositoryProvider] = None,
        config: Optional[HealthConfig] = None,
        unavailable_message: str = PROVIDER_UNAVAILABLE_MESSAGE,
        auto_start: bool = True,
    ):
        super().__init__()
        self.provider = provider
        self._config = config or HealthConfig()
        self.theme = self._config.theme
        self.auto_start = auto_start

        self.queue = MessageQueue()
        self.state = AppState(
            provider_available=provider is not None,
            unavailable_message=unavailable_message,
        )
        self.dashboard = Dashboard(self.state, launcher=self)
        self._rendered: Optional[StateSnapshot] = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield StatusWidget()
        yield Static("", id="error-bar")
        with Horizontal(id="main"):
            yield DataTable(id="repo-table", cursor_type="row", zebra_stripes=True)
            yield RepositoryDetailPanel()
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#repo-table", DataTable)
        table.can_focus = False
        table.add_columns(*COLUMNS)

        self.set_interval(self._config.tick_interval, self.process_messages)
        if self._config.refresh_interval > 0:
            self.set_interval(self._config.refresh_interval, self.action_refresh)

        if self.auto_start:
            self.dashboard.start()
        self.render_state()
        self.call_after_refresh(self.sync_visible_rows)

    def on_resize(self) -> None:
        self.call_after_refresh(self.sync_visible_rows)

    def sync_visible_rows(self) -> None:
        """Match the selection window to the table's height."""
        table = self.query_one("#repo-table", DataTable)
        if table.size.height <= 1:
            return
        # One line is taken by the column header
        rows = table.size.height - 1
        if rows != self.state.visible_rows:
            self.state.set_visible_rows(rows)
            self.render_state()

    # Launcher --------------------------------------------------------------

    def start_fetch(self, request: FetchRequest) -> None:
        """Run a fetch cycle in a worker thread; it reports through the queue."""
        self.run_worker(
            partial(self._fetch_cycle, request),
            name=f"fetch-{request.generation}",
            group="fetch",
            thread=True,
            exit_on_error=False,
        )

    def _fetch_cycle(self, request: FetchRequest) -> None:
        worker = get_current_worker()
        run_fetch_cycle(
            request.mode,
            self.provider,
            self.queue.send,
            generation=request.generation,
            item_delay=self._config.item_delay,
            cancelled=lambda: worker.is_cancelled,
        )

    def start_organizations(self, request: OrganizationsRequest) -> None:
        self.run_worker(
            partial(
                run_organizations_fetch,
                self.provider,
                self.queue.send,
                generation=request.generation,
            ),
            name=f"organizations-{request.generation}",
            group="organizations",
            thread=True,
            exit_on_error=False,
        )

    # Render loop -----------------------------------------------------------

    def process_messages(self) -> None:
        """Drain background messages once, then redraw if anything changed."""
        applied = self.dashboard.tick(self.queue)
        for notice in self.state.take_notices():
            self.notify(notice)
        if applied:
            self.render_state()
        else:
            # Relative times in the status bar still move on
            self.query_one(StatusWidget).show(self.state.snapshot())

    def render_state(self) -> None:
        snapshot = self.state.snapshot()
        self.sub_title = self.state.title_with_stats()
        self.query_one(StatusWidget).show(snapshot)

        error_bar = self.query_one("#error-bar", Static)
        error_bar.display = bool(snapshot.error_message)
        error_bar.update(f"⚠ {snapshot.error_message}" if snapshot.error_message else "")

        previous = self._rendered
        if (
            previous is None
            or previous.repositories != snapshot.repositories
            or previous.cursor.offset != snapshot.cursor.offset
            or previous.visible_rows != snapshot.visible_rows
        ):
            table = self.query_one("#repo-table", DataTable)
            table.clear()
            for repo in snapshot.visible_repositories:
                table.add_row(*repository_row(repo), key=repo.name)

        if snapshot.repositories:
            table = self.query_one("#repo-table", DataTable)
            table.move_cursor(row=snapshot.cursor.selected - snapshot.cursor.offset)

        self.query_one(RepositoryDetailPanel).repository = snapshot.selected_repository
        self._rendered = snapshot

    # Actions ---------------------------------------------------------------

    def _dispatch(self, command: Command) -> None:
        try:
            self.dashboard.dispatch(command)
        except ValueError as e:
            self.notify(str(e), severity="error")
        if self.dashboard.should_quit:
            # Running cycles stop at their next item instead of finishing
            self.workers.cancel_all()
            self.exit()
            return
        self.render_state()

    def action_quit(self) -> None:
        self._dispatch(Command.QUIT)

    def action_refresh(self) -> None:
        self._dispatch(Command.REFRESH)

    def action_cycle_mode(self) -> None:
        self._dispatch(Command.CYCLE_MODE)
        if self.state.organizations_loading and not self.state.organizations:
            self.notify("Loading organizations... press tab again once they arrive")

    def action_move_up(self) -> None:
        self._dispatch(Command.MOVE_UP)

    def action_move_down(self) -> None:
        self._dispatch(Command.MOVE_DOWN)

    def action_page_up(self) -> None:
        self._dispatch(Command.PAGE_UP)

    def action_page_down(self) -> None:
        self._dispatch(Command.PAGE_DOWN)

    def action_home(self) -> None:
        self._dispatch(Command.HOME)

    def action_end(self) -> None:
        self._dispatch(Command.END)
