"""Sync commands for the addrsync CLI.

Commands:
- owner: Show or set the current owner
- enable / disable: Turn sync on (with initial migration) or off
- push: Push the LOCAL collection to REMOTE
- pull: Merge REMOTE into LOCAL
- show: Print the synced collection
- stats: Show quota usage
- count: Show the reconciled generation counter
- clear: Wipe synced data from REMOTE
- watch: Apply remote changes as they arrive
"""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

import click

from addrsync.client.cli.config import (
    get_owner,
    get_server_url,
    get_state_db_path,
    load_config,
    save_config,
)
from addrsync.client.state import LocalStore
from addrsync.client.stores import RemoteKeyValueStore
from addrsync.client.sync import SyncContext, SyncCoordinator, count_key
from addrsync.core.config import ServerConfig
from addrsync.core.types import Record, SyncResult


def open_remote_store() -> RemoteKeyValueStore:
    """Open the configured REMOTE store."""
    from addrsync.client.api import HTTPRemoteStore

    return HTTPRemoteStore(ServerConfig(server_url=get_server_url()))


@contextmanager
def open_coordinator() -> Iterator[SyncCoordinator]:
    """Build a coordinator over the LOCAL database and the REMOTE store."""
    local = LocalStore(get_state_db_path())
    remote = open_remote_store()
    try:
        yield SyncCoordinator(SyncContext(local=local, remote=remote, owner_resolver=get_owner))
    finally:
        local.close()
        close = getattr(remote, "close", None)
        if close is not None:
            close()


def _report(result: SyncResult) -> None:
    """Print a result, exiting with status 1 on failure."""
    if not result.success:
        click.echo(f"Error: {result.message}", err=True)
        sys.exit(1)
    click.echo(result.message)


def _format_time(ms: int | None) -> str:
    if not ms:
        return "never"
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def _format_record(record: Record) -> str:
    line = f"{record.value}  (created {_format_time(record.timestamp)})"
    if record.notes:
        line += f"  - {record.notes}"
    return line


@click.command()
@click.argument("username", required=False)
def owner(username: str | None) -> None:
    """Show or set the owner whose addresses are synchronized."""
    if username is None:
        current = get_owner()
        if current is None:
            click.echo("Error: No user logged in. Run 'addrsync owner <name>' first.", err=True)
            sys.exit(1)
        click.echo(current)
        return

    config = load_config()
    config["username"] = username
    save_config(config)
    click.echo(f"Owner set to {username}")


@click.command()
def enable() -> None:
    """Enable sync and merge local addresses into the synced copy."""
    with open_coordinator() as coordinator:
        result = coordinator.enable()
    if not result.success:
        click.echo(f"Error: Sync failed: {result.message}", err=True)
        sys.exit(1)
    click.echo(result.message)
    click.echo("Sync enabled")


@click.command()
def disable() -> None:
    """Disable sync. Local addresses are kept."""
    with open_coordinator() as coordinator:
        _report(coordinator.disable())


@click.command()
def push() -> None:
    """Push local addresses to the synced copy (no merge)."""
    with open_coordinator() as coordinator:
        if not coordinator.is_enabled():
            click.echo("Sync is not enabled, nothing pushed.")
            return
        _report(coordinator.push())


@click.command()
def pull() -> None:
    """Merge synced addresses into local addresses."""
    with open_coordinator() as coordinator:
        _report(coordinator.pull_from_sync())


@click.command()
def show() -> None:
    """List synced addresses."""
    with open_coordinator() as coordinator:
        result = coordinator.get_from_sync()
    if not result.success:
        _report(result)
    if result.value is None:
        click.echo("Sync is not enabled.")
        return
    if not result.value:
        click.echo("No synced addresses.")
        return
    for record in result.value:
        click.echo(_format_record(record))


@click.command()
def stats() -> None:
    """Show sync status and quota usage."""
    with open_coordinator() as coordinator:
        sync_stats = coordinator.get_stats()
    click.echo(f"Sync:       {'enabled' if sync_stats.enabled else 'disabled'}")
    click.echo(f"Last sync:  {_format_time(sync_stats.last_sync)}")
    click.echo(
        f"Usage:      {sync_stats.bytes_in_use} / {sync_stats.quota_bytes} bytes "
        f"({sync_stats.percent_used:.1f}%)"
    )


@click.command()
def count() -> None:
    """Show the reconciled number of generated addresses."""
    username = get_owner()
    if username is None:
        click.echo("Error: No user logged in", err=True)
        sys.exit(1)
    with open_coordinator() as coordinator:
        local_count = int(coordinator.context.local.get(count_key(username)) or 0)
        click.echo(str(coordinator.reconcile_count(local_count)))


@click.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
def clear(yes: bool) -> None:
    """Delete all synced data from the remote store."""
    if not yes:
        click.confirm("This deletes all synced addresses from the remote store. Continue?", abort=True)
    with open_coordinator() as coordinator:
        _report(coordinator.clear())


@click.command()
@click.option("--interval", "-i", default=5.0, show_default=True, help="Seconds between polls.")
@click.option("--notify", is_flag=True, help="Show desktop notifications on updates.")
def watch(interval: float, notify: bool) -> None:
    """Apply remote changes to local addresses until interrupted."""
    from addrsync.client.notifications import CollectionUpdate, desktop_subscriber
    from addrsync.client.sync.remote_listener import RemoteChangeListener

    def echo_update(update: CollectionUpdate) -> None:
        click.echo(f"Merged remote changes: {len(update.records)} addresses")

    with open_coordinator() as coordinator:
        if not coordinator.is_enabled():
            click.echo("Error: Sync is not enabled. Run 'addrsync enable' first.", err=True)
            sys.exit(1)

        broadcaster = coordinator.context.broadcaster
        broadcaster.subscribe(echo_update)
        if notify:
            broadcaster.subscribe(desktop_subscriber)

        coordinator.listen()
        listener = RemoteChangeListener(coordinator.context.remote, interval=interval)  # type: ignore[arg-type]
        listener.start()
        click.echo("Watching for remote changes (Ctrl+C to stop)...")
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            logging.getLogger(__name__).debug("Interrupted")
        finally:
            listener.stop()
            coordinator.stop_listening()
    click.echo("Stopped.")
