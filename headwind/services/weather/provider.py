"""Weather provider interface and the shared HTTP request path.

Every provider request goes through ``get_json``:

- no response within the timeout → ``TransportTimeout`` (status 500,
  "Timeout"), never retried here;
- connection failure → ``TransportError`` (status 0);
- 401 / 403 → ``AuthError``; any other non-2xx → ``HttpStatusError``;
- undecodable body → ``ParseError``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol, Sequence

import httpx

from headwind.contracts.enums import WeatherDataProvider
from headwind.contracts.geo import GeoCoordinate
from headwind.contracts.settings import HeadwindSettings
from headwind.contracts.telemetry import RiderProfile
from headwind.contracts.weather import WeatherBatchResponse
from headwind.errors import AuthError, HttpStatusError, ParseError, TransportError, TransportTimeout

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
USER_AGENT = "headwind"


class WeatherProvider(Protocol):
    """Fetches current conditions and hourly forecasts for coordinates.

    Implementations raise ``ProviderError`` subclasses on failure.
    """

    provider: WeatherDataProvider

    async def fetch(
        self,
        coordinates: Sequence[GeoCoordinate],
        settings: HeadwindSettings,
        profile: RiderProfile | None = None,
    ) -> WeatherBatchResponse: ...


def is_imperial(settings: HeadwindSettings, profile: RiderProfile | None) -> bool:
    """Unit preference: the rider profile wins over the settings."""
    if profile is not None:
        return profile.is_imperial
    return settings.is_imperial


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    label: str,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Any:
    """GET *url* and decode the JSON body, mapping failures onto ``ProviderError``."""
    request_headers = {"User-Agent": USER_AGENT, "Accept-Encoding": "gzip"}
    request_headers.update(headers or {})

    logger.debug("Http request to %s", url)
    try:
        response = await asyncio.wait_for(
            client.get(url, params=params, headers=request_headers), timeout
        )
    except (asyncio.TimeoutError, httpx.TimeoutException):
        logger.warning("%s request timed out after %.0f s", label, timeout)
        raise TransportTimeout() from None
    except httpx.TransportError as exc:
        logger.warning("%s http error: %s", label, exc)
        raise TransportError(f"Http error: {exc}") from exc

    if response.status_code in (401, 403):
        logger.error("%s API key is invalid or expired", label)
        raise AuthError(response.status_code, f"{label} API key is invalid or expired")
    if not response.is_success:
        logger.warning("%s API request failed with status code %d", label, response.status_code)
        raise HttpStatusError(
            response.status_code,
            f"{label} API request failed with status code {response.status_code}",
        )

    try:
        return response.json()
    except ValueError as exc:
        raise ParseError(f"{label} returned invalid JSON: {exc}") from exc
