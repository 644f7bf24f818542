"""Click CLI for repo-health."""

from typing import Optional

import click
from trogon import tui

from repo_health import __version__
from repo_health.commands import Dashboard, InlineLauncher
from repo_health.config import AVAILABLE_THEMES, TOKEN_ENV_VAR, HealthConfig
from repo_health.logs import setup_logging
from repo_health.models import ViewMode
from repo_health.pipeline import MessageQueue
from repo_health.providers import GitHubProvider, ProviderUnavailable
from repo_health.state import AppState, LoadPhaseKind


def make_provider(config: HealthConfig, token: Optional[str]) -> GitHubProvider:
    """Build the GitHub provider from CLI options and configuration."""
    return GitHubProvider.from_env(
        token,
        max_repositories=config.max_repositories,
        pull_request_limit=config.pull_request_limit,
        workflow_run_limit=config.workflow_run_limit,
    )


@tui()
@click.group()
@click.version_option(version=__version__, prog_name="repo-health")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Repo Health - terminal dashboard for repository health.

    Shows activity, open pull requests and CI status for your own
    repositories or those of an organization.

    Quick start:
        repo-health dashboard      Launch the interactive dashboard
        repo-health repos          Print a one-off health report
        repo-health orgs           List your organizations
    """
    config = HealthConfig.load()
    setup_logging(config.log_path, config.log_level)
    ctx.obj = config


@cli.command()
@click.option("--token", "-t", envvar=TOKEN_ENV_VAR, help="GitHub personal access token")
@click.option(
    "--theme",
    type=click.Choice([name for name, _ in AVAILABLE_THEMES]),
    help="Color theme",
)
@click.option("--refresh-interval", type=int, help="Seconds between automatic refreshes (0 disables)")
@click.pass_obj
def dashboard(
    config: HealthConfig,
    token: Optional[str],
    theme: Optional[str],
    refresh_interval: Optional[int],
) -> None:
    """Launch the interactive TUI dashboard.

    Repositories appear as soon as the listing arrives; activity, pull
    requests and CI status fill in while details are fetched.

    Keyboard shortcuts:
        q - Quit
        r - Refresh current view
        tab - Switch between personal and organization views
        up/down, j/k - Move selection
        pgup/pgdn, home/end - Jump
    """
    from repo_health.tui import RepoHealthApp

    if theme:
        config.theme = theme
    if refresh_interval is not None:
        config.refresh_interval = refresh_interval

    try:
        provider = make_provider(config, token)
    except ProviderUnavailable as e:
        # Still start: the dashboard shows the problem as a standing error
        app = RepoHealthApp(None, config, unavailable_message=f"GitHub setup error: {e}")
        app.run()
        return

    try:
        app = RepoHealthApp(provider, config)
        app.run()
    finally:
        provider.close()


@cli.command()
@click.option("--org", "-o", help="Show repositories of this organization")
@click.option("--attention", "-a", is_flag=True, help="Only show repositories needing attention")
@click.option("--token", "-t", envvar=TOKEN_ENV_VAR, help="GitHub personal access token")
@click.pass_obj
def repos(config: HealthConfig, org: Optional[str], attention: bool, token: Optional[str]) -> None:
    """Print a health report for all repositories."""
    try:
        provider = make_provider(config, token)
    except ProviderUnavailable as e:
        raise click.ClickException(str(e))

    state = AppState()
    queue = MessageQueue()
    runner = Dashboard(state, InlineLauncher(provider, queue))

    mode = ViewMode.PERSONAL
    if org:
        state.add_organizations([org])
        mode = ViewMode.for_organization(org)

    try:
        click.echo(f"Fetching repositories for {mode.label}...", err=True)
        runner.launch(state.refresh(mode))
        runner.tick(queue)
    finally:
        provider.close()

    if state.load_phase.kind == LoadPhaseKind.FAILED:
        raise click.ClickException(state.error_message or "Fetch failed")

    repositories = state.repositories
    if attention:
        repositories = [repo for repo in repositories if repo.needs_attention()]

    if not repositories:
        click.echo("No repositories found.")
        return

    click.echo(f"\n🛡️ {state.title_with_stats()}")
    click.echo("=" * 60)
    for repo in repositories:
        prs = len(repo.open_pull_requests)
        badges = [repo.workflow_health.emoji]
        if prs:
            badges.append(f"🔀{prs}")
        if repo.stars:
            badges.append(f"⭐{repo.stars}")
        click.echo(f"\n  {repo.status.emoji} {repo.full_name} [{' '.join(badges)}]")
        click.echo(f"    {repo.status_summary()}")


@cli.command()
@click.option("--token", "-t", envvar=TOKEN_ENV_VAR, help="GitHub personal access token")
@click.pass_obj
def orgs(config: HealthConfig, token: Optional[str]) -> None:
    """List organizations available as dashboard views."""
    try:
        provider = make_provider(config, token)
    except ProviderUnavailable as e:
        raise click.ClickException(str(e))

    state = AppState()
    queue = MessageQueue()
    runner = Dashboard(state, InlineLauncher(provider, queue))
    try:
        runner.launch(state.request_organizations())
        runner.tick(queue)
    finally:
        provider.close()

    if state.organizations_error:
        raise click.ClickException(state.organizations_error)
    if not state.organizations:
        click.echo("No organizations found.")
        return

    click.echo("\n🏢 Organizations:")
    for name in state.organizations:
        click.echo(f"  {name}")
