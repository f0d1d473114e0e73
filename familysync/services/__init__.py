"""Services package."""

from familysync.services.google import (
    AlbumFetchError,
    CalendarFetchError,
    GoogleService,
    GoogleServiceError,
    ProfileFetchError,
)
from familysync.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryStorage,
    LocalFileStorage,
    StateStorageInterface,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from familysync.services.weather import WeatherService

__all__ = [
    # Google services
    "AlbumFetchError",
    "CalendarFetchError",
    "GoogleService",
    "GoogleServiceError",
    "ProfileFetchError",
    # Storage services
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryStorage",
    "LocalFileStorage",
    "StateStorageInterface",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    # Weather
    "WeatherService",
]
