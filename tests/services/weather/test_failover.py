"""Tests for the provider failover controller."""

from __future__ import annotations

import logging
from datetime import date, timedelta

import pytest

from headwind.contracts.enums import WeatherDataProvider
from headwind.contracts.settings import HeadwindSettings
from headwind.errors import AuthError, HttpStatusError, ProviderError
from headwind.services.weather.failover import ProviderFailoverController, ProviderFailoverState
from tests.fakes import MUNICH, FakeClock, FakeProviderFactory

OWM = WeatherDataProvider.OPEN_WEATHER_MAP
OPEN_METEO = WeatherDataProvider.OPEN_METEO
OWM_SETTINGS = HeadwindSettings(weather_provider=OWM, open_weather_map_api_key="k")


def controller_with(factory: FakeProviderFactory, clock: FakeClock | None = None, **state) -> ProviderFailoverController:
    return ProviderFailoverController(
        provider_factory=factory, clock=clock or FakeClock(), state=ProviderFailoverState(**state)
    )


async def fetch_ignoring_errors(controller: ProviderFailoverController, settings=OWM_SETTINGS) -> None:
    try:
        await controller.fetch([MUNICH], settings)
    except ProviderError:
        pass


class TestNormalOperation:
    async def test_uses_configured_provider(self):
        factory = FakeProviderFactory()
        controller = controller_with(factory)

        batch = await controller.fetch([MUNICH], OWM_SETTINGS)

        assert batch.provider == OWM
        assert factory.requested == [OWM]

    async def test_default_provider(self):
        factory = FakeProviderFactory()
        batch = await controller_with(factory).fetch([MUNICH], HeadwindSettings())
        assert batch.provider == OPEN_METEO

    async def test_owm_success_resets_consecutive_failures(self):
        controller = controller_with(FakeProviderFactory(), consecutive_failures=2, total_failures=5)
        await controller.fetch([MUNICH], OWM_SETTINGS)

        state = await controller.snapshot()
        assert state.consecutive_failures == 0
        assert state.total_failures == 5

    async def test_open_meteo_success_without_failures(self):
        controller = controller_with(FakeProviderFactory(), recovered_after_failure=True)
        await controller.fetch([MUNICH], HeadwindSettings())
        assert not (await controller.snapshot()).recovered_after_failure


class TestTemporaryFallback:
    async def test_three_failures_switch_one_request(self):
        factory = FakeProviderFactory(owm_error=HttpStatusError(500, "boom"))
        controller = controller_with(factory)

        for _ in range(3):
            with pytest.raises(HttpStatusError):
                await controller.fetch([MUNICH], OWM_SETTINGS)

        state = await controller.snapshot()
        assert state.consecutive_failures == 3
        assert state.total_failures == 3

        batch = await controller.fetch([MUNICH], OWM_SETTINGS)
        assert batch.provider == OPEN_METEO

        state = await controller.snapshot()
        assert state.consecutive_failures == 0
        assert state.recovered_after_failure

        # The next request retries OpenWeatherMap
        with pytest.raises(HttpStatusError):
            await controller.fetch([MUNICH], OWM_SETTINGS)
        assert factory.requested == [OWM, OWM, OWM, OPEN_METEO, OWM]

    async def test_not_used_for_default_provider(self):
        factory = FakeProviderFactory()
        controller = controller_with(factory, consecutive_failures=5)
        await controller.fetch([MUNICH], HeadwindSettings())
        assert (await controller.snapshot()).consecutive_failures == 5

    async def test_fallback_failures_leave_counters(self):
        factory = FakeProviderFactory(open_meteo_error=HttpStatusError(503, "down"))
        controller = controller_with(factory, consecutive_failures=3, total_failures=3)

        with pytest.raises(HttpStatusError):
            await controller.fetch([MUNICH], OWM_SETTINGS)

        state = await controller.snapshot()
        assert factory.requested == [OPEN_METEO]
        assert state.consecutive_failures == 0
        assert state.total_failures == 3


class TestDailyFallback:
    async def test_activates_after_twenty_failures_with_recovery(self):
        clock = FakeClock()
        factory = FakeProviderFactory(owm_error=HttpStatusError(500, "boom"))
        controller = controller_with(factory, clock)

        for _ in range(40):
            if (await controller.snapshot()).fallback_until_date is not None:
                break
            await fetch_ignoring_errors(controller)

        state = await controller.snapshot()
        assert state.fallback_until_date == clock.today()
        assert state.total_failures == 20
        assert state.recovered_after_failure

        factory.requested.clear()
        for _ in range(5):
            await controller.fetch([MUNICH], OWM_SETTINGS)
        assert factory.requested == [OPEN_METEO] * 5

        clock.today_value = clock.today_value + timedelta(days=1)
        factory.requested.clear()
        await fetch_ignoring_errors(controller)
        assert factory.requested == [OWM]

    async def test_requires_recovery(self):
        factory = FakeProviderFactory(owm_error=HttpStatusError(500, "boom"))
        controller = controller_with(factory, consecutive_failures=0, total_failures=25)

        await fetch_ignoring_errors(controller)
        assert (await controller.snapshot()).fallback_until_date is None

    async def test_past_fallback_date_is_ignored(self):
        factory = FakeProviderFactory()
        controller = controller_with(factory, fallback_until_date=date(2024, 6, 14))
        await controller.fetch([MUNICH], OWM_SETTINGS)
        assert factory.requested == [OWM]


class TestErrors:
    async def test_auth_error_is_logged_as_error(self, caplog):
        factory = FakeProviderFactory(owm_error=AuthError(401, "invalid key"))
        controller = controller_with(factory)

        with caplog.at_level(logging.WARNING, logger="headwind.services.weather.failover"):
            with pytest.raises(AuthError):
                await controller.fetch([MUNICH], OWM_SETTINGS)

        [record] = caplog.records
        assert record.levelno == logging.ERROR
        assert "OPENWEATHERMAP_API_KEY" in record.getMessage()
        assert (await controller.snapshot()).total_failures == 1

    async def test_other_errors_are_warnings(self, caplog):
        factory = FakeProviderFactory(owm_error=HttpStatusError(500, "boom"))
        controller = controller_with(factory)

        with caplog.at_level(logging.WARNING, logger="headwind.services.weather.failover"):
            with pytest.raises(HttpStatusError):
                await controller.fetch([MUNICH], OWM_SETTINGS)

        assert [r.levelno for r in caplog.records] == [logging.WARNING]

    async def test_reset(self):
        controller = controller_with(
            FakeProviderFactory(),
            consecutive_failures=2,
            total_failures=22,
            recovered_after_failure=True,
            fallback_until_date=date(2024, 6, 15),
        )
        await controller.reset()
        assert await controller.snapshot() == ProviderFailoverState()
