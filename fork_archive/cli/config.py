"""
CLI config commands — show the effective archive configuration.

Usage:
    fork-archive config-status [--json]
"""

from __future__ import annotations

import json

import click


@click.command("config-status")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def config_status(ctx: click.Context, as_json: bool) -> None:
    """Show where archives go and which credentials are in use."""
    from .archive import load_engine

    engine = load_engine(ctx)
    data = engine.settings.redacted()
    data["archive_root_exists"] = engine.archive_root.is_dir()

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.echo("\n📋 Archive Configuration\n")
    click.echo(f"  Archive root:  {data['archive_root']}"
               f"{'' if data['archive_root_exists'] else '  (will be created)'}")
    click.echo(f"  GitHub token:  {data['github_token'] or 'not set'}")
    click.echo(f"  Token hosts:   {', '.join(data['token_hosts'])}")
    click.echo(f"  Git timeout:   {data['git_timeout'] or 'none'}")
    click.echo()
