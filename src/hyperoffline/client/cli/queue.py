"""Offline queue commands for the hyperoffline CLI.

Commands:
- status: Show pending request and cached resource counts
- pending: List queued requests
- reinit: Discard the offline store
"""

from __future__ import annotations

import json
import sys

import click

from hyperoffline.client.store import StoreError
from hyperoffline.client.sync import OfflineSync
from hyperoffline.core.config import OfflineConfig


def open_sync(config: OfflineConfig) -> OfflineSync:
    """Open the engine for a one-shot command (no automatic replay)."""
    sync = OfflineSync.from_config(config, auto_replay=False)
    if not sync.store.is_open:
        click.echo(f"Error: cannot open offline store at {config.store_path}", err=True)
        sync.close()
        sys.exit(1)
    return sync


@click.command()
@click.pass_obj
def status(config: OfflineConfig) -> None:
    """Show the state of the offline store."""
    sync = open_sync(config)
    try:
        entries = sync.store.count_entries()
        offline_only = sum(1 for _ in sync.store.iterate_offline_only())
        click.echo(f"Store: {config.store_path}")
        click.echo(f"Pending requests: {sync.offline_requests}")
        click.echo(f"Cached resources: {entries} ({offline_only} offline-only)")
    finally:
        sync.close()


@click.command()
@click.option("--url", help="Only list queued POST requests for this resource URL.")
@click.option("--json", "as_json", is_flag=True, help="Print requests as JSON.")
@click.pass_obj
def pending(config: OfflineConfig, url: str | None, as_json: bool) -> None:
    """List requests queued while offline, in replay order."""
    sync = open_sync(config)
    try:
        if url:
            requests = sync.get_offline_posts(sync.context.get(url))
        else:
            requests = sync.pending_requests()
    finally:
        sync.close()

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in requests], indent=2))
        return

    if not requests:
        click.echo("No pending requests.")
        return
    for request in requests:
        click.echo(f"{request.id:>6}  {request.method.upper():<6}  {request.url}")


@click.command()
@click.confirmation_option(prompt="Discard all cached resources and pending requests?")
@click.pass_obj
def reinit(config: OfflineConfig) -> None:
    """Delete and recreate the offline store."""
    sync = open_sync(config)
    try:
        sync.reinitialize()
    except StoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        sync.close()
    click.echo(f"Offline store reinitialized: {config.store_path}")
