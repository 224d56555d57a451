"""Repository for the last known device position (the GeoPoint store)."""

from __future__ import annotations

import logging

from headwind.contracts.geo import GeoCoordinate
from headwind.persistence.repositories.base import BaseRepository
from headwind.persistence.store import KeyValueStore

logger = logging.getLogger(__name__)

LAST_KNOWN_POSITION_KEY = "lastKnownPosition"


class PositionRepository(BaseRepository[GeoCoordinate]):
    def __init__(self, store: KeyValueStore):
        super().__init__(store, GeoCoordinate, LAST_KNOWN_POSITION_KEY)

    async def save(self, entity: GeoCoordinate) -> None:
        logger.info("Saving last known position: %.4f, %.4f", entity.latitude, entity.longitude)
        await super().save(entity)
