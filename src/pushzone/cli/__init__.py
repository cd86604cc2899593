"""Command-line interface for pushzone.

This module provides the main CLI entry point and assembles all commands.

Commands:
- init: Record the installation root and store credentials
- uninstall: Remove every record pushzone stores
- settings: Show or change settings
- dirs: Manage custom directories
- push: Push every eligible file
- status: Show progress of the full push run
- reset: Clear scheduled tasks, leases and progress
- purge-cache: Purge the whole push zone cache
- clear-cache: Drop the cached file manifest
- deploy-hook: React to a theme or plugin deploy
- watch: Push files as they change
- serve: Run the admin HTTP API
"""

from __future__ import annotations

import logging

import click

from pushzone.cli.config import (
    get_config_dir,
    get_config_file,
    get_db_path,
    get_root_path,
    load_config,
    open_services,
    save_config,
)
from pushzone.cli.runs import (
    clear_cache,
    deploy_hook,
    purge_cache,
    push,
    reset,
    status,
)
from pushzone.cli.serve import serve, watch
from pushzone.cli.settings import dirs, settings
from pushzone.cli.install import init, uninstall


@click.group()
@click.version_option(package_name="pushzone")
@click.option(
    "--root",
    type=click.Path(file_okay=False),
    default=None,
    help="Installation root (default: PUSHZONE_ROOT, config, or current directory).",
)
@click.option(
    "--db-path",
    type=click.Path(dir_okay=False),
    default=None,
    help="SQLite database (default: PUSHZONE_DB_PATH, config, or ~/.pushzone/pushzone.db).",
)
@click.option("--verbose", "-v", is_flag=True, help="Log progress details.")
@click.pass_context
def cli(ctx: click.Context, root: str | None, db_path: str | None, verbose: bool) -> None:
    """pushzone - Chunked background uploads to a CDN push zone."""
    obj = ctx.ensure_object(dict)
    obj["root"] = root
    obj["db_path"] = db_path
    obj["log_level"] = logging.INFO if verbose else logging.WARNING


# Setup commands
cli.add_command(init)
cli.add_command(uninstall)

# Settings commands
cli.add_command(settings)
cli.add_command(dirs)

# Push run commands
cli.add_command(push)
cli.add_command(status)
cli.add_command(reset)
cli.add_command(purge_cache)
cli.add_command(clear_cache)
cli.add_command(deploy_hook)

# Long-running commands
cli.add_command(watch)
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
    "get_db_path",
    "get_root_path",
    "load_config",
    "open_services",
    "save_config",
]
