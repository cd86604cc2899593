"""Installation commands for the pushzone CLI.

Commands:
- init: Record the installation root and database, store credentials
- uninstall: Remove every record pushzone stores
"""

from __future__ import annotations

import click

from pushzone.cli.config import (
    get_config_file,
    get_db_path,
    get_root_path,
    load_config,
    open_services,
    save_config,
)
from pushzone.core.config import PushSettings


@click.command()
@click.option(
    "--api-key",
    default=None,
    help="Push zone API key (prompted when omitted).",
)
@click.option(
    "--push-zone-id",
    default=None,
    help="Push zone identifier (prompted when omitted).",
)
@click.option("--cdn-url", default="", help="Public CDN hostname used for purges.")
@click.pass_context
def init(
    ctx: click.Context,
    api_key: str | None,
    push_zone_id: str | None,
    cdn_url: str,
) -> None:
    """Initialize pushzone for an installation root.

    Saves the root and database paths to ~/.pushzone/config.json and stores
    the push zone credentials.
    """
    obj = ctx.ensure_object(dict)
    root = get_root_path(obj.get("root"))
    db_path = get_db_path(obj.get("db_path"))

    if not root.is_dir():
        raise click.BadParameter(f"Not a directory: {root}", param_hint="--root")

    if api_key is None:
        api_key = click.prompt("Push zone API key", hide_input=True)
    if push_zone_id is None:
        push_zone_id = click.prompt("Push zone ID")

    config = load_config()
    config["root_path"] = str(root)
    config["db_path"] = str(db_path)
    save_config(config)

    services = open_services(ctx)
    current = services.settings.load()
    services.settings.save(
        PushSettings.from_dict(
            {
                **current.to_dict(),
                "api_key": api_key,
                "push_zone_id": push_zone_id,
                "cdn_url": cdn_url or current.cdn_url,
            }
        )
    )

    click.echo(f"Root:     {root}")
    click.echo(f"Database: {db_path}")
    click.echo(f"Config:   {get_config_file()}")
    click.echo("pushzone initialized. Run 'pushzone push' to push all files.")


@click.command()
@click.confirmation_option(prompt="Remove all pushzone settings, progress and caches?")
@click.pass_context
def uninstall(ctx: click.Context) -> None:
    """Remove every record pushzone stores."""
    services = open_services(ctx)
    services.lifecycle.uninstall()

    config_file = get_config_file()
    if config_file.exists():
        config_file.unlink()

    click.echo("pushzone data removed.")
