"""Push run commands for the pushzone CLI.

Commands:
- push: Push every eligible file to the push zone
- status: Show progress of the full push run
- reset: Clear scheduled tasks, leases and progress
- purge-cache: Purge the whole push zone cache
- clear-cache: Drop the cached file manifest
- deploy-hook: React to a theme or plugin deploy
"""

from __future__ import annotations

import json
import sys
import time
from datetime import datetime

import click

from pushzone.cli.config import open_services
from pushzone.core.types import ProgressState
from pushzone.jobs.lifecycle import DEPLOY_KINDS, NotConfiguredError, PushAlreadyActiveError
from pushzone.jobs.progress import ProgressPoller
from pushzone.jobs.scheduler import PROCESS_FILE_CHUNK, QueuedTaskScheduler
from pushzone.services import PushServices


def format_progress(state: ProgressState) -> str:
    """One-line rendering of a progress snapshot."""
    line = f"{state.processed}/{state.total} files ({state.percentage}%)"
    if state.is_processing:
        line += " - processing chunk"
    elif state.is_active:
        line += " - waiting for next chunk"
    if state.stalled:
        line += " - STALLED"
    return line


def _format_timestamp(value: float) -> str:
    if value <= 0:
        return "never"
    return datetime.fromtimestamp(value).strftime("%Y-%m-%d %H:%M:%S")


def _delay_kwargs(no_delay: bool) -> dict[str, float]:
    return {"file_delay": 0.0, "next_chunk_delay": 0.0} if no_delay else {}


def run_queued(
    services: PushServices,
    scheduler: QueuedTaskScheduler,
    no_delay: bool,
    echo_progress: bool = True,
) -> int:
    """Drain the in-process scheduler, honoring delays unless disabled.

    Returns:
        Number of task activations delivered.
    """
    delivered = 0
    while True:
        item = scheduler.run_next(sleep=None if no_delay else time.sleep)
        if item is None:
            break
        delivered += 1
        if echo_progress and item.task == PROCESS_FILE_CHUNK:
            state = services.tracker.get_progress()
            if state.is_active:
                click.echo(format_progress(state))
    return delivered


@click.command()
@click.option("--no-delay", is_flag=True, help="Skip the pauses between files and chunks.")
@click.pass_context
def push(ctx: click.Context, no_delay: bool) -> None:
    """Push every eligible file to the push zone.

    Runs the whole chunked push in this process and prints progress after
    each chunk.
    """
    scheduler = QueuedTaskScheduler()
    services = open_services(ctx, scheduler, **_delay_kwargs(no_delay))

    try:
        services.lifecycle.request_full_push()
    except NotConfiguredError as e:
        click.echo(f"Error: {e} Run 'pushzone settings set' first.", err=True)
        sys.exit(1)
    except PushAlreadyActiveError as e:
        click.echo(f"Error: {e} Use 'pushzone reset' if it is stuck.", err=True)
        sys.exit(1)

    click.echo(f"Pushing files from {services.root}...")
    run_queued(services, scheduler, no_delay)

    state = services.tracker.get_progress()
    click.echo(f"Push finished: {state.processed}/{state.total} files processed.")


@click.command()
@click.option("--follow", "-f", is_flag=True, help="Keep polling until the run ends.")
@click.option(
    "--interval",
    type=float,
    default=5.0,
    show_default=True,
    help="Seconds between polls with --follow.",
)
@click.option("--json", "as_json", is_flag=True, help="Print the raw status payload.")
@click.pass_context
def status(ctx: click.Context, follow: bool, interval: float, as_json: bool) -> None:
    """Show progress of the full push run."""
    services = open_services(ctx)

    def render(state: ProgressState) -> None:
        if as_json:
            click.echo(json.dumps(state.to_dict()))
        else:
            click.echo(format_progress(state))

    if follow:
        poller = ProgressPoller(
            services.tracker,
            on_update=render,
            on_finished=lambda: click.echo("Push finished."),
            interval=interval,
        )
        try:
            poller.run()
        except KeyboardInterrupt:
            poller.stop()
        return

    state = services.tracker.get_progress()
    if as_json:
        render(state)
        return

    click.echo(f"Progress:    {format_progress(state)}")
    click.echo(f"Active:      {'yes' if state.is_active else 'no'}")
    click.echo(f"Processing:  {'yes' if state.is_processing else 'no'}")
    click.echo(f"Last update: {_format_timestamp(state.last_update)}")
    if state.stalled:
        click.echo("Warning: no progress for over 5 minutes. Use 'pushzone reset' if it is stuck.")


@click.command()
@click.pass_context
def reset(ctx: click.Context) -> None:
    """Clear scheduled tasks, leases and progress."""
    services = open_services(ctx)
    services.lifecycle.reset()
    click.echo("Push process reset successfully.")


@click.command("purge-cache")
@click.pass_context
def purge_cache(ctx: click.Context) -> None:
    """Purge the whole push zone cache."""
    services = open_services(ctx)
    try:
        purged = services.lifecycle.purge_cache()
    except NotConfiguredError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not purged:
        click.echo("Error: Failed to purge cache.", err=True)
        sys.exit(1)
    click.echo("Cache purged successfully.")


@click.command("clear-cache")
@click.pass_context
def clear_cache(ctx: click.Context) -> None:
    """Drop the cached file manifest so the next run rescans."""
    services = open_services(ctx)
    services.scanner.clear_cache()
    click.echo("File list cache cleared.")


@click.command("deploy-hook")
@click.argument("kind", type=click.Choice(DEPLOY_KINDS))
@click.option("--no-delay", is_flag=True, help="Skip the pauses between files and chunks.")
@click.pass_context
def deploy_hook(ctx: click.Context, kind: str, no_delay: bool) -> None:
    """React to a theme or plugin deploy.

    Pushes every eligible file again when push_static_files is enabled.
    """
    scheduler = QueuedTaskScheduler()
    services = open_services(ctx, scheduler, **_delay_kwargs(no_delay))
    if not services.lifecycle.handle_deploy(kind):
        click.echo(f"No push triggered for {kind} deploy.")
        return

    click.echo(f"{kind.capitalize()} deployed, pushing files...")
    run_queued(services, scheduler, no_delay)
    state = services.tracker.get_progress()
    click.echo(f"Push finished: {state.processed}/{state.total} files processed.")
