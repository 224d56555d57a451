"""Repository for the latest weather batch."""

from __future__ import annotations

from headwind.contracts.weather import WeatherBatchResponse
from headwind.persistence.repositories.base import BaseRepository
from headwind.persistence.store import KeyValueStore

CURRENT_FORECASTS_KEY = "currentForecastsUnified"


class WeatherRepository(BaseRepository[WeatherBatchResponse]):
    def __init__(self, store: KeyValueStore):
        super().__init__(store, WeatherBatchResponse, CURRENT_FORECASTS_KEY)
