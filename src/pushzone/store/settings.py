"""Settings persistence on top of the option store."""

from __future__ import annotations

from pushzone.core.config import PushSettings
from pushzone.store.database import OptionStore

SETTINGS_KEY = "settings"


class SettingsRepository:
    """Loads and saves the aggregate settings blob.

    Settings are read fresh on every load() so each task activation sees
    the latest stored values.
    """

    def __init__(self, options: OptionStore) -> None:
        self._options = options

    def load(self) -> PushSettings:
        return PushSettings.from_dict(self._options.get(SETTINGS_KEY))

    def save(self, settings: PushSettings) -> None:
        self._options.set(SETTINGS_KEY, settings.to_dict())

    def clear(self) -> None:
        self._options.delete(SETTINGS_KEY)
