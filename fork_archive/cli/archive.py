"""
CLI archive commands — archive one fork, or a whole list of forks.

Usage:
    fork-archive archive --org ORG --repo REPO --source-url URL \
        --contributor LOGIN --fork-url URL [--json]
    fork-archive archive-batch FILE [--workers N] [--json]

Exit codes: 0 archived, 1 fetch failure (safe to re-run), 2 the archive or
configuration needs an operator.
"""

from __future__ import annotations

import json
from pathlib import Path

import click

EXIT_FAILED = 1
EXIT_FATAL = 2


def load_engine(ctx: click.Context):
    """Build the engine from configuration, or exit with EXIT_FATAL."""
    from ..config.loader import ConfigurationError, load_settings
    from ..mirror.manager import ArchivingEngine

    root = (ctx.obj or {}).get("archive_root")
    try:
        settings = load_settings(str(root) if root else None)
    except ConfigurationError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        raise SystemExit(EXIT_FATAL)
    return ArchivingEngine(settings)


def _echo_run(run) -> None:
    icon = "✅" if run.ok else "❌"
    click.echo(f"\n{icon} {run.fork.full_name} → {run.path}")
    click.echo(f"   State:   {run.state.value}{' (new archive)' if run.created else ''}")
    for name, action in run.remote_actions.items():
        click.echo(f"   Remote:  {name} ({action.value})")
    for report in run.reports:
        if report.ok:
            click.echo(
                f"   Fetch:   {report.remote}: {len(report.changed)} updated, "
                f"{len(report.updates)} branch(es)"
            )
        else:
            click.secho(f"   Fetch:   {report.remote}: failed — {report.error.detail}", fg="red")
        for rejection in report.rejected:
            click.secho(f"     ⚠️  {rejection.ref}: {rejection.reason}", fg="yellow")


@click.command("archive")
@click.option("--org", required=True, help="Upstream organization login")
@click.option("--repo", "repo_name", required=True, help="Upstream repository name")
@click.option("--source-url", required=True, help="Upstream clone URL")
@click.option("--contributor", required=True, help="Fork owner login")
@click.option("--fork-url", required=True, help="Fork clone URL")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def archive(
    ctx: click.Context,
    org: str,
    repo_name: str,
    source_url: str,
    contributor: str,
    fork_url: str,
    as_json: bool,
) -> None:
    """Archive one contributor's fork into its upstream's archive."""
    from ..mirror.errors import ArchiveError
    from ..models.repository import ForkRepository, SourceRepository

    engine = load_engine(ctx)
    fork = ForkRepository(
        owner=contributor,
        clone_url=fork_url,
        source=SourceRepository(organization=org, name=repo_name, clone_url=source_url),
    )

    try:
        run = engine.create_repository_mirror(fork)
    except (ArchiveError, ValueError) as e:
        if as_json:
            click.echo(json.dumps({"ok": False, "error": str(e), "error_type": type(e).__name__}, indent=2))
        else:
            click.secho(f"❌ {e}", fg="red", err=True)
        raise SystemExit(EXIT_FAILED if getattr(e, "retryable", False) else EXIT_FATAL)

    if as_json:
        click.echo(json.dumps(run.to_dict(), indent=2, default=str))
    else:
        _echo_run(run)

    if not run.ok:
        raise SystemExit(EXIT_FAILED)


@click.command("archive-batch")
@click.argument("forks_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--workers", default=4, show_default=True, type=click.IntRange(min=1))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def archive_batch(ctx: click.Context, forks_file: Path, workers: int, as_json: bool) -> None:
    """Archive every fork listed in a YAML or JSON file."""
    from pydantic import ValidationError

    from ..mirror.batch import BatchArchiver
    from ..models.repository import load_forks

    try:
        forks = load_forks(forks_file)
    except (ValueError, ValidationError) as e:
        click.secho(f"❌ Invalid fork list {forks_file}: {e}", fg="red", err=True)
        raise SystemExit(EXIT_FATAL)

    outcomes = BatchArchiver(load_engine(ctx), workers=workers).archive_all(forks)
    failed = [o for o in outcomes if not o.ok]

    if as_json:
        click.echo(json.dumps(
            {"total": len(outcomes), "failed": len(failed), "results": [o.to_dict() for o in outcomes]},
            indent=2,
            default=str,
        ))
    else:
        for outcome in outcomes:
            if outcome.run is not None:
                _echo_run(outcome.run)
            else:
                click.secho(f"\n❌ {outcome.fork.full_name}: {outcome.error}", fg="red")
        click.echo()
        if failed:
            click.secho(f"⚠️  {len(failed)}/{len(outcomes)} fork(s) failed", fg="yellow")
        else:
            click.secho(f"✅ {len(outcomes)} fork(s) archived", fg="green")

    if failed:
        raise SystemExit(EXIT_FAILED)
