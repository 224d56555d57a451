"""Repository for user settings.

Without a stored value the settings come from the environment
(see ``headwind.config.load_settings``).
"""

from __future__ import annotations

from typing import AsyncIterator

from headwind.contracts.settings import HeadwindSettings
from headwind.persistence.repositories.base import BaseRepository
from headwind.persistence.store import KeyValueStore

SETTINGS_KEY = "settings"


class SettingsRepository(BaseRepository[HeadwindSettings]):
    def __init__(self, store: KeyValueStore, defaults: HeadwindSettings | None = None):
        super().__init__(store, HeadwindSettings, SETTINGS_KEY)
        self._defaults = defaults or HeadwindSettings()

    @property
    def defaults(self) -> HeadwindSettings:
        return self._defaults

    async def get_or_default(self) -> HeadwindSettings:
        return await self.get() or self._defaults

    async def stream_or_default(self) -> AsyncIterator[HeadwindSettings]:
        """Stored settings, falling back to the defaults, then every change."""
        async for settings in self.stream():
            yield settings or self._defaults
