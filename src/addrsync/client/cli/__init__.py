"""Command-line interface for addrsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- owner: Show or set the current owner
- enable: Enable sync (initial merge into the remote store)
- disable: Disable sync
- push: Push local addresses to the remote store
- pull: Merge remote addresses into local addresses
- show: List synced addresses
- stats: Show quota usage
- count: Show the reconciled generation counter
- clear: Wipe synced data from the remote store
- watch: Apply remote changes continuously
- serve: Run the remote key/value server
"""

from __future__ import annotations

import logging

import click

from addrsync.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_owner,
    get_server_url,
    load_config,
    save_config,
)
from addrsync.client.cli.server import serve
from addrsync.client.cli.sync import (
    clear,
    count,
    disable,
    enable,
    owner,
    pull,
    push,
    show,
    stats,
    watch,
)


def setup_logging(verbose: bool) -> None:
    """Send addrsync log records to stderr."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    addrsync_logger = logging.getLogger("addrsync")
    for existing in addrsync_logger.handlers[:]:
        addrsync_logger.removeHandler(existing)
    addrsync_logger.addHandler(handler)
    addrsync_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    addrsync_logger.propagate = False


@click.group()
@click.version_option(package_name="addrsync")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
def cli(verbose: bool) -> None:
    """addrsync - Quota-aware address synchronization."""
    setup_logging(verbose)


# Identity
cli.add_command(owner)

# Sync commands
cli.add_command(enable)
cli.add_command(disable)
cli.add_command(push)
cli.add_command(pull)
cli.add_command(show)
cli.add_command(stats)
cli.add_command(count)
cli.add_command(clear)
cli.add_command(watch)

# Server
cli.add_command(serve)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "get_owner",
    "get_server_url",
    "load_config",
    "save_config",
]
