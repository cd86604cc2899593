"""Long-running commands for the pushzone CLI.

Commands:
- serve: Run the admin HTTP API with the background task scheduler
- watch: Push new and modified files as they appear
"""

from __future__ import annotations

import os
import time

import click

from pushzone.cli.config import ADMIN_TOKEN_ENV, open_services


@click.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Host to bind to.")
@click.option("--port", "-p", default=8000, show_default=True, type=int, help="Port to bind to.")
@click.option(
    "--admin-token",
    default=None,
    help=f"Bearer token for admin routes (default: {ADMIN_TOKEN_ENV}).",
)
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, admin_token: str | None) -> None:
    """Run the admin HTTP API.

    Scheduled pushes run in a background thread of this process.
    """
    import uvicorn

    from pushzone.server.app import create_app

    token = admin_token or os.environ.get(ADMIN_TOKEN_ENV)
    if not token:
        click.echo(
            f"Warning: no admin token set ({ADMIN_TOKEN_ENV}), admin routes will reject requests.",
            err=True,
        )

    services = open_services(ctx, background=True)
    app = create_app(services, token)

    click.echo(f"Serving admin API on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port)


@click.command()
@click.option(
    "--settle-delay",
    type=float,
    default=2.0,
    show_default=True,
    help="Quiet period in seconds before changes are pushed.",
)
@click.pass_context
def watch(ctx: click.Context, settle_delay: float) -> None:
    """Push new and modified files as they appear; purge deleted ones."""
    from pushzone.watcher import UploadWatcher

    services = open_services(ctx)
    if not services.credentials.is_configured():
        click.echo("Error: API key or Push Zone ID not configured.", err=True)
        raise SystemExit(1)

    click.echo(f"Watching {services.root} (Ctrl+C to stop)")
    with UploadWatcher(services.scanner, services.files, settle_delay_s=settle_delay):
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            click.echo("\nStopping watcher...")
