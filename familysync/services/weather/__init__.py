"""Weather services package."""

from familysync.services.weather.weather_service import (
    WeatherService,
    parse_weather,
)

__all__ = [
    "WeatherService",
    "parse_weather",
]
