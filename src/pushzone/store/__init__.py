"""Persistence - durable options, expiring transients, and settings."""

from pushzone.store.database import (
    Database,
    MemoryOptionStore,
    MemoryTransientStore,
    OptionStore,
    SQLOptionStore,
    SQLTransientStore,
    TransientStore,
)
from pushzone.store.settings import SETTINGS_KEY, SettingsRepository

__all__ = [
    "Database",
    "MemoryOptionStore",
    "MemoryTransientStore",
    "OptionStore",
    "SETTINGS_KEY",
    "SQLOptionStore",
    "SQLTransientStore",
    "SettingsRepository",
    "TransientStore",
]
