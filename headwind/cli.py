"""Command-line entry point.

Usage:
    python -m headwind.cli fetch --lat 48.137 --lon 11.575 [--provider open-weather-map]
    python -m headwind.cli grade --grade 2 --speed 8 --wind-speed 5 --wind-direction 0 --mass 80
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import math
import sys

import httpx

from headwind.config import load_runtime_config, load_settings
from headwind.contracts.enums import WeatherDataProvider
from headwind.contracts.geo import GeoCoordinate
from headwind.errors import HeadwindError
from headwind.services.physics import estimate_relative_grade, estimate_resistance_forces
from headwind.services.weather.failover import ProviderFailoverController

logger = logging.getLogger(__name__)


async def _fetch(args: argparse.Namespace) -> int:
    settings = load_settings()
    if args.provider:
        settings = settings.model_copy(update={"weather_provider": WeatherDataProvider(args.provider)})
    config = load_runtime_config(dotenv=False)

    coordinate = GeoCoordinate(latitude=args.lat, longitude=args.lon)
    async with httpx.AsyncClient(timeout=config.http_timeout) as client:
        controller = ProviderFailoverController(http_client=client, timeout=config.http_timeout)
        try:
            batch = await controller.fetch([coordinate], settings)
        except HeadwindError as exc:
            logger.error("Weather fetch failed: %s", exc)
            return 1

    print(json.dumps(batch.to_store(), indent=2))
    return 0


def _grade(args: argparse.Namespace) -> int:
    actual_grade = args.grade / 100.0
    relative = estimate_relative_grade(
        actual_grade=actual_grade,
        rider_speed=args.speed,
        wind_speed=args.wind_speed,
        wind_direction=args.wind_direction,
        total_mass=args.mass,
    )
    forces = estimate_resistance_forces(
        actual_grade=actual_grade,
        rider_speed=args.speed,
        wind_speed=args.wind_speed,
        wind_direction=args.wind_direction,
        total_mass=args.mass,
    )
    if math.isnan(relative) or forces is None:
        logger.error("Invalid input")
        return 1

    result = {"relative_grade_percent": round(relative * 100, 2), **forces.to_store()}
    print(json.dumps(result, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Headwind wind estimation for cyclists")
    parser.add_argument("-v", "--verbose", action="store_true")
    commands = parser.add_subparsers(dest="command", required=True)

    fetch = commands.add_parser("fetch", help="Fetch weather for one position")
    fetch.add_argument("--lat", type=float, required=True, help="Latitude in degrees")
    fetch.add_argument("--lon", type=float, required=True, help="Longitude in degrees")
    fetch.add_argument(
        "--provider",
        choices=[p.value for p in WeatherDataProvider],
        help="Override the configured weather provider",
    )

    grade = commands.add_parser("grade", help="Relative grade and resistance forces")
    grade.add_argument("--grade", type=float, required=True, help="Road grade in percent")
    grade.add_argument("--speed", type=float, required=True, help="Rider speed in m/s")
    grade.add_argument("--wind-speed", type=float, required=True, help="Wind speed in m/s")
    grade.add_argument(
        "--wind-direction", type=float, required=True,
        help="Wind direction relative to travel in degrees, 0 = headwind",
    )
    grade.add_argument("--mass", type=float, required=True, help="Rider plus bike in kg")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "fetch":
        return asyncio.run(_fetch(args))
    return _grade(args)


if __name__ == "__main__":
    sys.exit(main())
