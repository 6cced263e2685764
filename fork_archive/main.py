"""
Fork Archive — CLI Entry Point

Usage:
    fork-archive archive --org ORG --repo REPO --source-url URL --contributor LOGIN --fork-url URL
    fork-archive archive-batch forks.yaml [--workers N]
    fork-archive inspect ORG REPO
    fork-archive config-status
"""

from __future__ import annotations

# Load .env file FIRST, before any other imports that might read env vars
from pathlib import Path
from dotenv import load_dotenv

_env_file = Path.cwd() / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

from typing import Optional

import click

from .cli.archive import archive, archive_batch
from .cli.config import config_status
from .cli.inspect import inspect_archive
from .logging_config import setup_logging


@click.group()
@click.option(
    "--archive-root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Archive root directory (overrides ARCHIVE_ROOT)",
)
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
@click.option("--log-format", type=click.Choice(["text", "json"]), default=None)
@click.pass_context
def cli(
    ctx: click.Context,
    archive_root: Optional[Path],
    log_level: Optional[str],
    log_format: Optional[str],
) -> None:
    """Fork Archive — Preserve contributor forks alongside their upstream."""
    setup_logging(log_level, log_format)
    ctx.ensure_object(dict)
    ctx.obj["archive_root"] = archive_root


# Archive commands — defined in fork_archive/cli/archive.py
cli.add_command(archive)
cli.add_command(archive_batch)

# Read-only commands
cli.add_command(inspect_archive)
cli.add_command(config_status)


if __name__ == "__main__":
    cli()
