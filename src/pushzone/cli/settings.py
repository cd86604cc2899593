"""Settings commands for the pushzone CLI.

Commands:
- settings show: Print the stored settings
- settings set: Update settings (may start a full push)
- dirs list/add/remove/enable/disable: Manage custom directories
"""

from __future__ import annotations

import dataclasses
import sys

import click

from pushzone.cli.config import open_services
from pushzone.cli.runs import run_queued
from pushzone.core.config import PushSettings
from pushzone.core.redaction import mask_secret
from pushzone.jobs.scheduler import QueuedTaskScheduler
from pushzone.services import PushServices

PAST_TENSE = {"add": "added", "remove": "removed", "enable": "enabled", "disable": "disabled"}


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _apply(services: PushServices, scheduler: QueuedTaskScheduler, updated: PushSettings) -> None:
    """Persist settings and run a full push if one was scheduled."""
    if services.lifecycle.update_settings(updated).push_scheduled:
        click.echo("Settings changed, pushing all files...")
        run_queued(services, scheduler, no_delay=False)


def _echo_settings(settings: PushSettings) -> None:
    click.echo(f"API key:                  {mask_secret(settings.api_key) or '(not set)'}")
    click.echo(f"Push zone ID:             {settings.push_zone_id or '(not set)'}")
    click.echo(f"CDN URL:                  {settings.cdn_url or '(not set)'}")
    click.echo(f"Push on deploy:           {'yes' if settings.push_static_files else 'no'}")
    click.echo(f"Push on settings update:  {'yes' if settings.push_on_settings_update else 'no'}")
    click.echo(
        f"Include upload dir:       {'yes' if settings.include_default_upload_dir else 'no'}"
        f" ({settings.upload_dir})"
    )
    click.echo(f"Included extensions:      {', '.join(settings.included_extensions)}")
    click.echo(f"Excluded directories:     {', '.join(settings.excluded_dirs)}")
    if settings.custom_directories:
        click.echo("Custom directories:")
        for directory, enabled in settings.custom_directories.items():
            click.echo(f"  [{'x' if enabled else ' '}] {directory}")


@click.group()
def settings() -> None:
    """Show or change the push zone settings."""


@settings.command("show")
@click.pass_context
def settings_show(ctx: click.Context) -> None:
    """Print the stored settings (API key masked)."""
    services = open_services(ctx)
    _echo_settings(services.settings.load())
    if not services.credentials.is_configured():
        click.echo("Warning: API key or Push Zone ID not configured.")


@settings.command("set")
@click.option("--api-key", default=None, help="Push zone API key.")
@click.option("--push-zone-id", default=None, help="Push zone identifier.")
@click.option("--cdn-url", default=None, help="Public CDN hostname.")
@click.option(
    "--push-on-deploy/--no-push-on-deploy",
    "push_static_files",
    default=None,
    help="Push all files after theme/plugin deploys.",
)
@click.option(
    "--push-on-settings-update/--no-push-on-settings-update",
    default=None,
    help="Push all files when credentials or directories change.",
)
@click.option(
    "--include-upload-dir/--exclude-upload-dir",
    "include_default_upload_dir",
    default=None,
    help="Treat the default upload directory as eligible.",
)
@click.option("--upload-dir", default=None, help="Default upload directory relative to the root.")
@click.option("--extensions", default=None, help="Comma-separated included extensions.")
@click.option("--excluded-dirs", default=None, help="Comma-separated excluded directory names.")
@click.pass_context
def settings_set(
    ctx: click.Context,
    api_key: str | None,
    push_zone_id: str | None,
    cdn_url: str | None,
    push_static_files: bool | None,
    push_on_settings_update: bool | None,
    include_default_upload_dir: bool | None,
    upload_dir: str | None,
    extensions: str | None,
    excluded_dirs: str | None,
) -> None:
    """Update settings. Omitted options keep their stored value."""
    scheduler = QueuedTaskScheduler()
    services = open_services(ctx, scheduler)

    changes: dict[str, object] = {
        "api_key": api_key,
        "push_zone_id": push_zone_id,
        "cdn_url": cdn_url,
        "push_static_files": push_static_files,
        "push_on_settings_update": push_on_settings_update,
        "include_default_upload_dir": include_default_upload_dir,
        "upload_dir": upload_dir,
        "included_extensions": _split_list(extensions) if extensions is not None else None,
        "excluded_dirs": _split_list(excluded_dirs) if excluded_dirs is not None else None,
    }
    changes = {key: value for key, value in changes.items() if value is not None}
    if not changes:
        click.echo("Nothing to update.")
        return

    current = services.settings.load()
    updated = PushSettings.from_dict({**current.to_dict(), **changes})
    _apply(services, scheduler, updated)
    click.echo("Settings saved.")


@click.group()
def dirs() -> None:
    """Manage custom directories eligible for pushing."""


@dirs.command("list")
@click.pass_context
def dirs_list(ctx: click.Context) -> None:
    """List eligible directories."""
    services = open_services(ctx)
    current = services.settings.load()
    policy = current.policy()

    if policy.allows_everything:
        click.echo("All directories are eligible (no custom directories set).")
        return

    if current.include_default_upload_dir:
        click.echo(f"  [x] {current.upload_dir} (default upload dir)")
    for directory, enabled in current.custom_directories.items():
        click.echo(f"  [{'x' if enabled else ' '}] {directory}")


def _update_directories(
    ctx: click.Context,
    directory: str,
    update: str,
) -> None:
    scheduler = QueuedTaskScheduler()
    services = open_services(ctx, scheduler)
    current = services.settings.load()
    directory = directory.strip().strip("/")
    custom = dict(current.custom_directories)

    if update == "add":
        if not (services.root / directory).is_dir():
            click.echo(f"Error: Not a directory under {services.root}: {directory}", err=True)
            sys.exit(1)
        custom[directory] = True
    elif directory not in custom:
        click.echo(f"Error: Unknown custom directory: {directory}", err=True)
        sys.exit(1)
    elif update == "remove":
        del custom[directory]
    else:
        custom[directory] = update == "enable"

    _apply(services, scheduler, dataclasses.replace(current, custom_directories=custom))
    click.echo(f"Directory {directory} {PAST_TENSE[update]}.")


@dirs.command("add")
@click.argument("directory")
@click.pass_context
def dirs_add(ctx: click.Context, directory: str) -> None:
    """Add a custom directory (relative to the root)."""
    _update_directories(ctx, directory, "add")


@dirs.command("remove")
@click.argument("directory")
@click.pass_context
def dirs_remove(ctx: click.Context, directory: str) -> None:
    """Remove a custom directory."""
    _update_directories(ctx, directory, "remove")


@dirs.command("enable")
@click.argument("directory")
@click.pass_context
def dirs_enable(ctx: click.Context, directory: str) -> None:
    """Enable a custom directory."""
    _update_directories(ctx, directory, "enable")


@dirs.command("disable")
@click.argument("directory")
@click.pass_context
def dirs_disable(ctx: click.Context, directory: str) -> None:
    """Disable a custom directory."""
    _update_directories(ctx, directory, "disable")
