"""Google services package."""

from familysync.services.google.google_service import (
    AlbumFetchError,
    CalendarFetchError,
    GoogleService,
    GoogleServiceError,
    ProfileFetchError,
    map_calendar_items,
    map_media_items,
)

__all__ = [
    "AlbumFetchError",
    "CalendarFetchError",
    "GoogleService",
    "GoogleServiceError",
    "ProfileFetchError",
    "map_calendar_items",
    "map_media_items",
]
