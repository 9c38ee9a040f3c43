"""Replay commands for the hyperoffline CLI.

Commands:
- replay: Replay queued requests now
- watch: Probe connectivity and replay on every reconnection
"""

from __future__ import annotations

import sys
import threading

import click

from hyperoffline.client.cli.queue import open_sync
from hyperoffline.client.netstatus import Netstatus, NetworkProbe
from hyperoffline.client.store import StoreError
from hyperoffline.client.sync import OfflineSync, ReplayError
from hyperoffline.core.config import OfflineConfig
from hyperoffline.core.types import ConnectivityStatus


@click.command()
@click.pass_obj
def replay(config: OfflineConfig) -> None:
    """Send queued requests to the server, in order.

    Requests are removed from the queue before sending; a failure stops
    the replay and the remaining requests are dropped.
    """
    sync = open_sync(config)
    try:
        count = sync.replay()
    except ReplayError as e:
        click.echo(f"Error: replay failed after {e.replayed} requests: {e}", err=True)
        sys.exit(1)
    except StoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        sync.close()
    click.echo(f"Replayed {count} requests.")


@click.command()
@click.option("--probe-url", help="Health URL to poll (default: probe_url from config).")
@click.option("--interval", type=float, help="Seconds between connectivity checks.")
@click.pass_obj
def watch(config: OfflineConfig, probe_url: str | None, interval: float | None) -> None:
    """Replay queued requests every time the server becomes reachable."""
    url = probe_url or config.probe_url
    if not url:
        click.echo("Error: no probe URL. Use --probe-url or set probe_url in config.", err=True)
        sys.exit(1)

    netstatus = Netstatus(ConnectivityStatus.OFFLINE)
    sync = OfflineSync.from_config(config, netstatus=netstatus)
    probe = NetworkProbe(
        netstatus,
        url,
        interval=interval or config.probe_interval,
        timeout=config.timeout,
    )

    def on_event(event: dict[str, object]) -> None:
        click.echo(f"[{event['topic']}] {event.get('message', event.get('count', ''))}")

    sync.events.subscribe("*", on_event)
    click.echo(f"Watching {url} ({sync.offline_requests} pending requests). Press Ctrl+C to stop.")
    probe.start()
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        click.echo("Stopping...")
    finally:
        probe.stop()
        sync.close()
