"""
Google Integration Service

Talks to three Google APIs with a user's OAuth access token:
1. userinfo        - profile used to refresh a parent's name and avatar
2. Calendar v3     - calendar list and upcoming events
3. Photos Library  - albums and the photos in one album

DESIGN DECISION: Only the profile fetch and the calendar and album
listings raise, each with its own error. Event and photo fetches return
an empty list on any failure, so one broken calendar or album never
breaks the whole wall display. Timeouts and bodies that are not JSON
count as failures too. There is no retry: a failed sync simply leaves
the previous state in place until the next sync.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import quote

import aiohttp
import structlog

from familysync.config import get_settings
from familysync.models import CalendarEvent, CalendarEventType, Photo

USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
CALENDAR_API = "https://www.googleapis.com/calendar/v3"
PHOTOS_API = "https://photoslibrary.googleapis.com/v1"

DEFAULT_EVENT_COLOR = "bg-blue-100 text-blue-800 border-blue-200"

logger = structlog.get_logger(__name__)


class GoogleServiceError(Exception):
    """Base exception for Google API errors."""
    pass


class ProfileFetchError(GoogleServiceError):
    """The identity provider did not return a profile."""
    pass


class CalendarFetchError(GoogleServiceError):
    """The calendar list could not be fetched."""
    pass


class AlbumFetchError(GoogleServiceError):
    """The album list could not be fetched."""
    pass


def map_calendar_items(
    items: list[dict[str, Any]],
    color: str = DEFAULT_EVENT_COLOR,
    prefix: str = "",
) -> list[CalendarEvent]:
    """
    Convert Calendar API event items into CalendarEvents.

    All-day events carry `date` instead of `dateTime`. Events without a
    summary show as "Busy".
    """
    events = []
    for item in items:
        start = item.get("start") or {}
        end = item.get("end") or {}
        title = item.get("summary") or "Busy"
        if prefix:
            title = f"{prefix} {title}"
        events.append(CalendarEvent(
            id=item["id"],
            title=title,
            start=start.get("dateTime") or start.get("date") or "",
            end=end.get("dateTime") or end.get("date") or "",
            type=CalendarEventType.FAMILY,
            color=color,
        ))
    return events


def map_media_items(items: list[dict[str, Any]]) -> list[Photo]:
    """Keep image media items only, sized for the slideshow."""
    photos = []
    for item in items:
        if not (item.get("mimeType") or "").startswith("image/"):
            continue
        metadata = item.get("mediaMetadata") or {}
        photos.append(Photo(
            id=item["id"],
            url=f"{item['baseUrl']}=w2048-h1024",
            date=metadata.get("creationTime") or datetime.now(timezone.utc).isoformat(),
            location="",
        ))
    return photos


async def _error_message(response: aiohttp.ClientResponse, fallback: str) -> str:
    try:
        body = await response.json()
        return (body.get("error") or {}).get("message") or fallback
    except (aiohttp.ContentTypeError, ValueError):
        return fallback


class GoogleService:
    """
    Async client for the Google APIs used by the household.

    Pass a shared aiohttp.ClientSession to reuse connections; otherwise
    a session is opened per call.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        lookahead_days: Optional[int] = None,
    ):
        self._session = session
        self._lookahead_days = (
            lookahead_days
            if lookahead_days is not None
            else get_settings().app.calendar_lookahead_days
        )

    @staticmethod
    def _headers(access_token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    async def _request(
        self,
        method: str,
        url: str,
        access_token: str,
        **kwargs: Any,
    ) -> tuple[int, Any, str]:
        """
        Perform one request and return (status, json_body_or_None, error_message).

        Network errors, timeouts and undecodable bodies come back as
        status 0 with no body.
        """
        async def run(session: aiohttp.ClientSession) -> tuple[int, Any, str]:
            async with session.request(
                method, url, headers=self._headers(access_token), **kwargs
            ) as response:
                if response.status != 200:
                    message = await _error_message(response, f"HTTP {response.status}")
                    return response.status, None, message
                return response.status, await response.json(), ""

        try:
            if self._session is not None:
                return await run(self._session)
            async with aiohttp.ClientSession() as session:
                return await run(session)
        except asyncio.TimeoutError:
            return 0, None, "Request timed out"
        except (aiohttp.ClientError, ValueError) as e:
            return 0, None, str(e) or type(e).__name__

    async def fetch_user_profile(self, access_token: str) -> dict[str, Any]:
        """
        Fetch the signed-in user's profile (given_name, picture, email...).

        Raises:
            ProfileFetchError: If there is no token or the request fails
        """
        if not access_token:
            raise ProfileFetchError("No access token")
        status, body, message = await self._request("GET", USERINFO_URL, access_token)
        if not isinstance(body, dict):
            raise ProfileFetchError(f"Failed to fetch user profile: {message}")
        return body

    async def fetch_calendar_list(self, access_token: str) -> list[dict[str, Any]]:
        """
        List the calendars the user can see.

        Raises:
            CalendarFetchError: If the provider rejects the request
        """
        if not access_token:
            return []
        status, body, message = await self._request(
            "GET", f"{CALENDAR_API}/users/me/calendarList", access_token
        )
        if not isinstance(body, dict):
            logger.error("calendar_list_failed", status=status, error=message)
            raise CalendarFetchError(message or "Failed to fetch calendars")
        return body.get("items") or []

    async def fetch_calendar_events(
        self,
        access_token: str,
        calendar_id: str = "primary",
        color: str = DEFAULT_EVENT_COLOR,
        prefix: str = "",
        now: Optional[datetime] = None,
    ) -> list[CalendarEvent]:
        """
        Upcoming events of one calendar within the lookahead window.

        Returns an empty list on any failure.
        """
        if not access_token:
            return []
        now = now or datetime.now(timezone.utc)
        params = {
            "timeMin": now.isoformat(),
            "timeMax": (now + timedelta(days=self._lookahead_days)).isoformat(),
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        url = f"{CALENDAR_API}/calendars/{quote(calendar_id, safe='')}/events"
        status, body, message = await self._request("GET", url, access_token, params=params)
        if not isinstance(body, dict):
            logger.warning(
                "calendar_fetch_failed", calendar_id=calendar_id, status=status, error=message
            )
            return []
        try:
            return map_calendar_items(body.get("items") or [], color=color, prefix=prefix)
        except (KeyError, ValueError) as e:
            logger.error("calendar_mapping_failed", calendar_id=calendar_id, error=str(e))
            return []

    async def fetch_albums(self, access_token: str) -> list[dict[str, Any]]:
        """
        List the user's photo albums.

        Raises:
            AlbumFetchError: If the provider rejects the request
        """
        if not access_token:
            return []
        status, body, message = await self._request(
            "GET", f"{PHOTOS_API}/albums", access_token, params={"pageSize": "50"}
        )
        if not isinstance(body, dict):
            logger.error("album_list_failed", status=status, error=message)
            raise AlbumFetchError(message or "Failed to fetch albums")
        return body.get("albums") or []

    async def fetch_photos_from_album(
        self,
        access_token: str,
        album_id: str,
    ) -> list[Photo]:
        """Photos of one album. Returns an empty list on any failure."""
        if not access_token or not album_id:
            return []
        status, body, message = await self._request(
            "POST",
            f"{PHOTOS_API}/mediaItems:search",
            access_token,
            json={"albumId": album_id, "pageSize": 50},
        )
        if not isinstance(body, dict):
            logger.warning("photo_fetch_failed", album_id=album_id, status=status, error=message)
            return []
        try:
            return map_media_items(body.get("mediaItems") or [])
        except (KeyError, ValueError) as e:
            logger.error("photo_mapping_failed", album_id=album_id, error=str(e))
            return []
