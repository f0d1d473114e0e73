"""
Weather Service

Read-only forecast for the family wall, fetched from open-meteo.
No API key is needed. Temperatures are requested in Fahrenheit and
rounded to whole degrees.
"""

import asyncio
import math
from typing import Any, Optional

import aiohttp
import structlog

from familysync.models import CurrentWeather, DailyForecast, WeatherData

FORECAST_URL = "https://api.open-meteo.com/v1/forecast"

logger = structlog.get_logger(__name__)


def _round(value: float) -> int:
    """Round half up: 68.5 -> 69."""
    return math.floor(value + 0.5)


def parse_weather(data: dict[str, Any]) -> WeatherData:
    """
    Map an open-meteo forecast response to WeatherData.

    Raises:
        KeyError: If the response misses a required block
    """
    daily = data["daily"]
    forecast = [
        DailyForecast(
            date=day,
            max=_round(daily["temperature_2m_max"][i]),
            min=_round(daily["temperature_2m_min"][i]),
            code=daily["weather_code"][i],
        )
        for i, day in enumerate(daily["time"])
    ]
    current = data["current"]
    return WeatherData(
        current=CurrentWeather(
            temp=_round(current["temperature_2m"]),
            code=current["weather_code"],
        ),
        daily=forecast,
    )


class WeatherService:
    """Async open-meteo client. Every failure degrades to None."""

    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self._session = session

    @staticmethod
    def _params(lat: float, lon: float) -> dict[str, str]:
        return {
            "latitude": str(lat),
            "longitude": str(lon),
            "current": "temperature_2m,weather_code",
            "daily": "weather_code,temperature_2m_max,temperature_2m_min",
            "temperature_unit": "fahrenheit",
            "timezone": "auto",
        }

    async def _get(self, session: aiohttp.ClientSession, lat: float, lon: float) -> Optional[dict]:
        async with session.get(FORECAST_URL, params=self._params(lat, lon)) as response:
            if response.status != 200:
                logger.warning("weather_fetch_failed", status=response.status)
                return None
            return await response.json()

    async def fetch_weather(self, lat: float, lon: float) -> Optional[WeatherData]:
        """Current conditions and daily forecast, or None on any failure."""
        try:
            if self._session is not None:
                data = await self._get(self._session, lat, lon)
            else:
                async with aiohttp.ClientSession() as session:
                    data = await self._get(session, lat, lon)
        except asyncio.TimeoutError:
            logger.error("weather_fetch_failed", error="timeout")
            return None
        except (aiohttp.ClientError, ValueError) as e:
            logger.error("weather_fetch_failed", error=str(e))
            return None

        if not isinstance(data, dict):
            return None
        try:
            return parse_weather(data)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error("weather_parse_failed", error=str(e))
            return None
