"""
Tests for the external service wrappers.

The aiohttp session is replaced by a small fake, so no network is used.
Async methods are driven with asyncio.run.
"""

import asyncio
from datetime import datetime, timezone

import aiohttp
import pytest

from familysync.models import CalendarEventType
from familysync.services.google import (
    AlbumFetchError,
    CalendarFetchError,
    GoogleService,
    ProfileFetchError,
    map_calendar_items,
    map_media_items,
)
from familysync.services.weather import WeatherService, parse_weather


class FakeResponse:
    def __init__(self, status=200, body=None):
        self.status = status
        self._body = body

    async def json(self):
        if self._body is None:
            raise ValueError("no body")
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Records requests and answers with queued responses or an error."""

    def __init__(self, responses=None, error=None):
        self.responses = list(responses or [])
        self.error = error
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error:
            raise self.error
        return self.responses.pop(0)

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)


WEATHER_BODY = {
    "current": {"temperature_2m": 71.6, "weather_code": 2},
    "daily": {
        "time": ["2024-05-06", "2024-05-07"],
        "temperature_2m_max": [75.4, 68.5],
        "temperature_2m_min": [60.2, 55.9],
        "weather_code": [2, 61],
    },
}


class TestCalendarMapping:
    """Tests for Calendar API item mapping."""

    def test_timed_and_all_day_events(self):
        """Test dateTime is preferred and all-day events fall back to date."""
        events = map_calendar_items([
            {
                "id": "e1",
                "summary": "Football",
                "start": {"dateTime": "2024-05-06T17:00:00Z"},
                "end": {"dateTime": "2024-05-06T18:00:00Z"},
            },
            {"id": "e2", "summary": "Holiday", "start": {"date": "2024-05-10"}, "end": {"date": "2024-05-11"}},
        ], color="bg-green-100")
        assert events[0].start == "2024-05-06T17:00:00Z"
        assert events[1].start == "2024-05-10"
        assert all(e.type == CalendarEventType.FAMILY for e in events)
        assert all(e.color == "bg-green-100" for e in events)

    def test_missing_summary_is_busy(self):
        """Test events without a title show as Busy."""
        events = map_calendar_items([{"id": "e1", "start": {"date": "2024-05-06"}, "end": {}}])
        assert events[0].title == "Busy"
        assert events[0].end == ""

    def test_prefix(self):
        """Test a source prefix is put in front of the title."""
        events = map_calendar_items(
            [{"id": "e1", "summary": "Dentist", "start": {}, "end": {}}], prefix="[Mum]"
        )
        assert events[0].title == "[Mum] Dentist"


class TestPhotoMapping:
    """Tests for Photos Library item mapping."""

    def test_images_only_and_sized(self):
        """Test videos are dropped and image URLs get a size suffix."""
        photos = map_media_items([
            {
                "id": "p1",
                "baseUrl": "https://lh3.example/abc",
                "mimeType": "image/jpeg",
                "mediaMetadata": {"creationTime": "2024-01-01T10:00:00Z"},
            },
            {"id": "v1", "baseUrl": "https://lh3.example/vid", "mimeType": "video/mp4"},
        ])
        assert [p.id for p in photos] == ["p1"]
        assert photos[0].url == "https://lh3.example/abc=w2048-h1024"
        assert photos[0].date == "2024-01-01T10:00:00Z"


class TestGoogleService:
    """Tests for GoogleService with a fake session."""

    def test_fetch_profile(self):
        """Test the profile body is returned as-is."""
        session = FakeSession([FakeResponse(body={"given_name": "Alex"})])
        service = GoogleService(session=session, lookahead_days=30)
        profile = asyncio.run(service.fetch_user_profile("token"))
        assert profile == {"given_name": "Alex"}
        assert session.calls[0][2]["headers"] == {"Authorization": "Bearer token"}

    def test_fetch_profile_failure_raises(self):
        """Test a rejected profile request raises ProfileFetchError."""
        session = FakeSession([FakeResponse(status=401, body={"error": {"message": "bad token"}})])
        service = GoogleService(session=session, lookahead_days=30)
        with pytest.raises(ProfileFetchError, match="bad token"):
            asyncio.run(service.fetch_user_profile("token"))

    def test_fetch_profile_without_token(self):
        """Test a missing token never hits the network."""
        session = FakeSession()
        with pytest.raises(ProfileFetchError):
            asyncio.run(GoogleService(session=session, lookahead_days=30).fetch_user_profile(""))
        assert session.calls == []

    def test_fetch_events_window(self):
        """Test events are requested for the lookahead window."""
        body = {"items": [{"id": "e1", "summary": "Swim", "start": {"date": "2024-05-07"}, "end": {}}]}
        session = FakeSession([FakeResponse(body=body)])
        service = GoogleService(session=session, lookahead_days=30)
        now = datetime(2024, 5, 6, tzinfo=timezone.utc)

        events = asyncio.run(service.fetch_calendar_events("token", "family@group", now=now))

        assert [e.title for e in events] == ["Swim"]
        method, url, kwargs = session.calls[0]
        assert url.endswith("/calendars/family%40group/events")
        assert kwargs["params"]["timeMin"] == "2024-05-06T00:00:00+00:00"
        assert kwargs["params"]["timeMax"] == "2024-06-05T00:00:00+00:00"
        assert kwargs["params"]["singleEvents"] == "true"

    def test_fetch_events_failures_return_empty(self):
        """Test HTTP errors and network errors both degrade to []."""
        rejected = GoogleService(session=FakeSession([FakeResponse(status=500)]), lookahead_days=30)
        assert asyncio.run(rejected.fetch_calendar_events("token")) == []

        offline = GoogleService(
            session=FakeSession(error=aiohttp.ClientConnectionError("offline")), lookahead_days=30
        )
        assert asyncio.run(offline.fetch_calendar_events("token")) == []

    def test_fetch_calendar_list_failure_raises(self):
        """Test listing calendars reports failures."""
        service = GoogleService(session=FakeSession([FakeResponse(status=403)]), lookahead_days=30)
        with pytest.raises(CalendarFetchError):
            asyncio.run(service.fetch_calendar_list("token"))

    def test_fetch_albums(self):
        """Test album listing and its failure mode."""
        ok = GoogleService(
            session=FakeSession([FakeResponse(body={"albums": [{"id": "a1"}]})]), lookahead_days=30
        )
        assert asyncio.run(ok.fetch_albums("token")) == [{"id": "a1"}]

        broken = GoogleService(session=FakeSession([FakeResponse(status=500)]), lookahead_days=30)
        with pytest.raises(AlbumFetchError):
            asyncio.run(broken.fetch_albums("token"))

    def test_fetch_photos(self):
        """Test photos are searched by album and failures return []."""
        body = {"mediaItems": [{"id": "p1", "baseUrl": "https://x/p", "mimeType": "image/png"}]}
        session = FakeSession([FakeResponse(body=body)])
        service = GoogleService(session=session, lookahead_days=30)
        photos = asyncio.run(service.fetch_photos_from_album("token", "a1"))
        assert [p.id for p in photos] == ["p1"]
        assert session.calls[0][0] == "POST"
        assert session.calls[0][2]["json"]["albumId"] == "a1"

        failing = GoogleService(session=FakeSession([FakeResponse(status=404)]), lookahead_days=30)
        assert asyncio.run(failing.fetch_photos_from_album("token", "a1")) == []


class TestWeatherService:
    """Tests for the open-meteo client."""

    def test_parse_rounds_temperatures(self):
        """Test temperatures are rounded half up to whole degrees."""
        weather = parse_weather(WEATHER_BODY)
        assert weather.current.temp == 72
        assert weather.current.code == 2
        assert [(d.date, d.max, d.min, d.code) for d in weather.daily] == [
            ("2024-05-06", 75, 60, 2),
            ("2024-05-07", 69, 56, 61),
        ]

    def test_fetch_weather(self):
        """Test Fahrenheit is requested for the given position."""
        session = FakeSession([FakeResponse(body=WEATHER_BODY)])
        weather = asyncio.run(WeatherService(session=session).fetch_weather(51.5, -0.12))
        assert weather.current.temp == 72
        params = session.calls[0][2]["params"]
        assert params["temperature_unit"] == "fahrenheit"
        assert params["latitude"] == "51.5"

    def test_fetch_weather_failures_return_none(self):
        """Test bad status, bad body and network errors all give None."""
        bad_status = WeatherService(session=FakeSession([FakeResponse(status=503)]))
        assert asyncio.run(bad_status.fetch_weather(0, 0)) is None

        bad_body = WeatherService(session=FakeSession([FakeResponse(body={"current": {}})]))
        assert asyncio.run(bad_body.fetch_weather(0, 0)) is None

        offline = WeatherService(session=FakeSession(error=aiohttp.ClientConnectionError("x")))
        assert asyncio.run(offline.fetch_weather(0, 0)) is None

    def test_fetch_weather_undecodable_body_and_timeout(self):
        """Test a garbled 200 body and a timeout both give None."""
        garbled = WeatherService(session=FakeSession([FakeResponse(status=200, body=None)]))
        assert asyncio.run(garbled.fetch_weather(0, 0)) is None

        slow = WeatherService(session=FakeSession(error=asyncio.TimeoutError()))
        assert asyncio.run(slow.fetch_weather(0, 0)) is None


class TestGoogleServiceDegradation:
    """Tests for undecodable bodies and timeouts from Google."""

    def test_events_undecodable_body(self):
        """Test a 200 response that is not JSON gives no events."""
        service = GoogleService(session=FakeSession([FakeResponse(status=200)]), lookahead_days=30)
        assert asyncio.run(service.fetch_calendar_events("token")) == []

    def test_events_timeout(self):
        """Test a timed out calendar request gives no events."""
        service = GoogleService(session=FakeSession(error=asyncio.TimeoutError()), lookahead_days=30)
        assert asyncio.run(service.fetch_calendar_events("token")) == []

    def test_photos_undecodable_body_and_timeout(self):
        """Test photo search degrades to [] on a bad body or a timeout."""
        garbled = GoogleService(session=FakeSession([FakeResponse(status=200)]), lookahead_days=30)
        assert asyncio.run(garbled.fetch_photos_from_album("token", "a1")) == []

        slow = GoogleService(session=FakeSession(error=asyncio.TimeoutError()), lookahead_days=30)
        assert asyncio.run(slow.fetch_photos_from_album("token", "a1")) == []

    def test_profile_failures_raise_profile_error(self):
        """Test a bad body or a timeout surfaces as ProfileFetchError only."""
        garbled = GoogleService(session=FakeSession([FakeResponse(status=200)]), lookahead_days=30)
        with pytest.raises(ProfileFetchError):
            asyncio.run(garbled.fetch_user_profile("token"))

        slow = GoogleService(session=FakeSession(error=asyncio.TimeoutError()), lookahead_days=30)
        with pytest.raises(ProfileFetchError, match="timed out"):
            asyncio.run(slow.fetch_user_profile("token"))

    def test_list_failures_raise_typed_errors(self):
        """Test listing calendars and albums maps timeouts to their own errors."""
        calendars = GoogleService(session=FakeSession(error=asyncio.TimeoutError()), lookahead_days=30)
        with pytest.raises(CalendarFetchError):
            asyncio.run(calendars.fetch_calendar_list("token"))

        albums = GoogleService(session=FakeSession([FakeResponse(status=200)]), lookahead_days=30)
        with pytest.raises(AlbumFetchError):
            asyncio.run(albums.fetch_albums("token"))
