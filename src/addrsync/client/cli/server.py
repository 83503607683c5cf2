"""Server command for the addrsync CLI.

Commands:
- serve: Run the quota-enforcing remote key/value server
"""

from __future__ import annotations

import os

import click


@click.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind.")
@click.option("--port", "-p", default=8000, show_default=True, type=int, help="Port to listen on.")
@click.option(
    "--db-path",
    type=click.Path(),
    default=None,
    help="Path to database file (default: ADDRSYNC_DB_PATH or ./addrsync.db).",
)
@click.option(
    "--quota-bytes",
    type=int,
    default=None,
    help="Total quota in bytes (default: ADDRSYNC_QUOTA_BYTES or 102400).",
)
def serve(host: str, port: int, db_path: str | None, quota_bytes: int | None) -> None:
    """Run the addrsync server.

    The server plays the remote role: a key/value store that rejects
    writes exceeding its quota and exposes a change feed for clients.

    Examples:

        # Serve on localhost:8000 with defaults
        addrsync serve

        # Smaller quota for testing quota handling
        addrsync serve --quota-bytes 16384
    """
    import uvicorn

    # The app factory reads its configuration from the environment
    if db_path is not None:
        os.environ["ADDRSYNC_DB_PATH"] = db_path
    if quota_bytes is not None:
        os.environ["ADDRSYNC_QUOTA_BYTES"] = str(quota_bytes)

    click.echo(f"Starting addrsync server on http://{host}:{port}")
    uvicorn.run("addrsync.server.app:app_factory", factory=True, host=host, port=port)
