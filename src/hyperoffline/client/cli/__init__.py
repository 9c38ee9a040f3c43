"""Command-line interface for hyperoffline.

This module provides the main CLI entry point and assembles all commands.

Commands:
- status: Show pending request and cached resource counts
- pending: List queued requests
- replay: Replay queued requests now
- watch: Replay queued requests whenever the server becomes reachable
- reinit: Discard the offline store
"""

from __future__ import annotations

from pathlib import Path

import click

from hyperoffline.client.cli.config import (
    get_config_dir,
    get_config_file,
    load_config,
    load_offline_config,
    setup_logging,
)
from hyperoffline.client.cli.queue import pending, reinit, status
from hyperoffline.client.cli.replay import replay, watch


@click.group()
@click.version_option(package_name="hyperoffline")
@click.option(
    "--store",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Offline store database (default: ~/.hyperoffline/offline.db).",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logs.")
@click.pass_context
def cli(ctx: click.Context, store: Path | None, verbose: bool) -> None:
    """hyperoffline - Offline cache and request queue for hypermedia APIs."""
    setup_logging(verbose)
    ctx.obj = load_offline_config(store)


# Queue commands
cli.add_command(status)
cli.add_command(pending)
cli.add_command(reinit)

# Replay commands
cli.add_command(replay)
cli.add_command(watch)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "get_config_dir",
    "get_config_file",
    "load_config",
    "load_offline_config",
]
