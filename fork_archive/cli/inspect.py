"""
CLI inspect command — show what an archive holds.

Usage:
    fork-archive inspect ORG REPO [--json]
"""

from __future__ import annotations

import json

import click


@click.command("inspect")
@click.argument("org")
@click.argument("repo_name")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def inspect_archive(ctx: click.Context, org: str, repo_name: str, as_json: bool) -> None:
    """List remotes and archived branches of ORG/REPO."""
    from ..mirror.errors import ArchiveError
    from ..mirror.summary import describe_archive
    from ..models.repository import SourceRepository
    from .archive import EXIT_FATAL, load_engine

    engine = load_engine(ctx)
    # The clone URL plays no part in locating an archive
    source = SourceRepository(organization=org, name=repo_name, clone_url="-")

    try:
        summary = describe_archive(engine.archive_root, source, engine.runner)
    except (ArchiveError, ValueError) as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        raise SystemExit(EXIT_FATAL)

    if as_json:
        click.echo(json.dumps(summary.to_dict(), indent=2))
        return

    click.echo(f"\n📦 {org}/{repo_name}  ({summary.path})\n")
    click.echo("  Remotes:")
    for name, url in sorted(summary.remotes.items()):
        click.echo(f"    {name:20} {url}")
    click.echo(f"\n  Branches: {', '.join(summary.branches) or '(none)'}")
    if summary.contributors:
        click.echo("\n  Contributors:")
        for name, branches in summary.contributors.items():
            click.echo(f"    {name}: {len(branches)} branch(es)")
            for branch in branches:
                click.echo(f"      - {name}/{branch}")
    click.echo()
