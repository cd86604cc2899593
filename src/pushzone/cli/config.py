"""Configuration utilities for the pushzone CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import click

from pushzone.core.redaction import setup_logging
from pushzone.jobs.scheduler import TaskScheduler
from pushzone.services import PushServices, build_services

DB_PATH_ENV = "PUSHZONE_DB_PATH"
ROOT_ENV = "PUSHZONE_ROOT"
LOG_PATH_ENV = "PUSHZONE_LOG_PATH"
ADMIN_TOKEN_ENV = "PUSHZONE_ADMIN_TOKEN"


def get_config_dir() -> Path:
    """Get the configuration directory for pushzone.

    Returns:
        Path to ~/.pushzone or equivalent.
    """
    return Path.home() / ".pushzone"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_root_path(explicit: str | None = None) -> Path:
    """Resolve the installation root.

    Precedence: explicit option, PUSHZONE_ROOT, config file, current directory.
    """
    value = explicit or os.environ.get(ROOT_ENV) or load_config().get("root_path")
    return Path(value or ".").expanduser().resolve()


def get_db_path(explicit: str | None = None) -> Path:
    """Resolve the database path.

    Precedence: explicit option, PUSHZONE_DB_PATH, config file,
    ~/.pushzone/pushzone.db.
    """
    value = explicit or os.environ.get(DB_PATH_ENV) or load_config().get("db_path")
    if value:
        return Path(value).expanduser().resolve()
    return get_config_dir() / "pushzone.db"


def open_services(
    ctx: click.Context,
    scheduler: TaskScheduler | None = None,
    **kwargs: object,
) -> PushServices:
    """Build services from the group options and register their cleanup.

    Args:
        ctx: Click context carrying the group options in ctx.obj.
        scheduler: Task scheduler (defaults to an in-process queue).
        **kwargs: Extra build_services arguments.

    Returns:
        PushServices closed when the command finishes.
    """
    obj = ctx.ensure_object(dict)
    root = get_root_path(obj.get("root"))

    log_path = os.environ.get(LOG_PATH_ENV)
    setup_logging(
        level=obj.get("log_level", logging.WARNING),
        log_path=Path(log_path) if log_path else None,
        root=root,
    )

    services = build_services(
        root=root,
        db_path=get_db_path(obj.get("db_path")),
        scheduler=scheduler,
        **kwargs,  # type: ignore[arg-type]
    )
    ctx.call_on_close(services.close)
    return services
