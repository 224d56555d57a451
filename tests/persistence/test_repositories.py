"""Unit tests for the key-value repositories using the in-memory store."""

from __future__ import annotations

import asyncio
import logging

from headwind.contracts.geo import GeoCoordinate
from headwind.contracts.settings import HeadwindSettings, HeadwindStats
from headwind.persistence.repositories.position_repo import LAST_KNOWN_POSITION_KEY
from headwind.persistence.repositories.settings_repo import SETTINGS_KEY, SettingsRepository
from headwind.persistence.repositories.weather_repo import CURRENT_FORECASTS_KEY
from tests.fakes import MUNICH, make_batch, take


class TestPositionRepository:
    async def test_save_and_get(self, position_repo, store):
        await position_repo.save(MUNICH)
        assert await position_repo.get() == MUNICH
        assert await store.get(LAST_KNOWN_POSITION_KEY) is not None

    async def test_missing(self, position_repo):
        assert await position_repo.get() is None

    async def test_corrupt_value_is_ignored(self, position_repo, store, caplog):
        await store.put(LAST_KNOWN_POSITION_KEY, b"{not json")
        with caplog.at_level(logging.ERROR):
            assert await position_repo.get() is None
        assert "lastKnownPosition" in caplog.text

    async def test_invalid_value_is_ignored(self, position_repo, store):
        await store.put(LAST_KNOWN_POSITION_KEY, b'{"latitude": 200, "longitude": 0}')
        assert await position_repo.get() is None

    async def test_delete(self, position_repo):
        await position_repo.save(MUNICH)
        await position_repo.delete()
        assert await position_repo.get() is None


class TestWeatherRepository:
    async def test_round_trip(self, weather_repo, store):
        batch = make_batch([MUNICH])
        await weather_repo.save(batch)
        assert weather_repo.key == CURRENT_FORECASTS_KEY
        assert await weather_repo.get() == batch

    async def test_stream(self, weather_repo):
        batch = make_batch([MUNICH])
        task = asyncio.create_task(take(weather_repo.stream(), 2))
        await asyncio.sleep(0.01)
        await weather_repo.save(batch)
        assert await task == [None, batch]


class TestStatsRepository:
    async def test_default(self, stats_repo):
        assert await stats_repo.get_or_default() == HeadwindStats()

    async def test_stream_or_default(self, stats_repo):
        stats = HeadwindStats(failed_weather_request=42)
        task = asyncio.create_task(take(stats_repo.stream_or_default(), 2))
        await asyncio.sleep(0.01)
        await stats_repo.save(stats)
        assert await task == [HeadwindStats(), stats]


class TestSettingsRepository:
    async def test_defaults_when_missing(self, store):
        defaults = HeadwindSettings(forecasted_km_per_hour=30)
        repo = SettingsRepository(store, defaults=defaults)
        assert repo.key == SETTINGS_KEY
        assert await repo.get_or_default() == defaults

    async def test_stored_settings_win(self, settings_repo):
        stored = HeadwindSettings(use_magnetometer_for_heading=True)
        await settings_repo.save(stored)
        assert await settings_repo.get_or_default() == stored
        assert await take(settings_repo.stream_or_default(), 1) == [stored]

    async def test_stream_or_default_follows_changes(self, settings_repo):
        task = asyncio.create_task(take(settings_repo.stream_or_default(), 2))
        await asyncio.sleep(0.01)
        await settings_repo.save(HeadwindSettings(round_location_to=1))
        first, second = await task
        assert first == settings_repo.defaults
        assert second.round_location_to == 1

    async def test_position_is_not_rounded_by_repository(self, position_repo):
        precise = GeoCoordinate(latitude=48.123456, longitude=11.654321)
        await position_repo.save(precise)
        assert (await position_repo.get()).latitude == 48.123456
