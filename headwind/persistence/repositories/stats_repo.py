"""Repository for weather request statistics."""

from __future__ import annotations

from typing import AsyncIterator

from headwind.contracts.settings import HeadwindStats
from headwind.persistence.repositories.base import BaseRepository
from headwind.persistence.store import KeyValueStore

STATS_KEY = "stats"


class StatsRepository(BaseRepository[HeadwindStats]):
    def __init__(self, store: KeyValueStore):
        super().__init__(store, HeadwindStats, STATS_KEY)

    async def get_or_default(self) -> HeadwindStats:
        return await self.get() or HeadwindStats()

    async def stream_or_default(self) -> AsyncIterator[HeadwindStats]:
        async for stats in self.stream():
            yield stats or HeadwindStats()
