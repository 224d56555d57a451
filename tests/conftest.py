"""Shared fixtures: in-memory store, repositories, telemetry bus and clock."""

from __future__ import annotations

import pytest

from headwind.persistence.repositories.position_repo import PositionRepository
from headwind.persistence.repositories.settings_repo import SettingsRepository
from headwind.persistence.repositories.stats_repo import StatsRepository
from headwind.persistence.repositories.weather_repo import WeatherRepository
from headwind.persistence.store import InMemoryKeyValueStore
from headwind.telemetry.bus import InMemoryTelemetryBus
from tests.fakes import FakeClock


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def telemetry():
    bus = InMemoryTelemetryBus()
    yield bus
    bus.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def position_repo(store):
    return PositionRepository(store)


@pytest.fixture
def settings_repo(store):
    return SettingsRepository(store)


@pytest.fixture
def weather_repo(store):
    return WeatherRepository(store)


@pytest.fixture
def stats_repo(store):
    return StatsRepository(store)
