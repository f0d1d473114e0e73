"""
Main Orchestrator for FamilySync

This module ties the FamilyStore to the external collaborators and
defines the flows that cross that boundary:
1. Chore save (save → icon generation → merge icon)
2. Google sync (profile refresh + calendar events) and the calendar
   and album pickers of the parent portal
3. Photo refresh and weather for the family wall

DESIGN DECISION: Local changes are never blocked by the network.
- The store is updated first; external results are merged afterwards
- Every merge runs against the state current at merge time
- External failures are audited and leave the previous state in place

Nothing here retries. A failed sync is simply tried again next time.
"""

from typing import Optional
from uuid import UUID

from familysync.agents import ChoreAssistant
from familysync.audit import AuditLogger, create_correlation_id
from familysync.config import get_settings
from familysync.ledger import FamilyStore, operations
from familysync.models import (
    AlbumOption,
    CalendarEvent,
    CalendarOption,
    CalendarSourceType,
    Chore,
    FamilyState,
    WeatherData,
)
from familysync.services.google import GoogleService, ProfileFetchError
from familysync.services.storage import (
    InMemoryAuditStorage,
    InMemoryStorage,
    LocalFileStorage,
)
from familysync.services.weather import WeatherService


class FamilyOrchestrator:
    """
    Runs the asynchronous flows of the household app.

    The store stays the single writer. This class only awaits
    collaborators and hands their results to FamilyStore.merge.
    """

    def __init__(
        self,
        store: FamilyStore,
        google_service: Optional[GoogleService] = None,
        weather_service: Optional[WeatherService] = None,
        assistant: Optional[ChoreAssistant] = None,
    ):
        self._store = store
        self._google = google_service or GoogleService()
        self._weather = weather_service or WeatherService()
        self._assistant = assistant or ChoreAssistant()

    @property
    def store(self) -> FamilyStore:
        return self._store

    @property
    def assistant(self) -> ChoreAssistant:
        return self._assistant

    @property
    def _audit_logger(self) -> AuditLogger:
        return self._store.audit_logger

    # ------------------------------------------------------------------
    # Chores
    # ------------------------------------------------------------------

    async def save_chore(self, chore: Chore) -> tuple[bool, str]:
        """
        Add or update a chore, then give it a generated icon.

        The icon is only generated when the title is new or changed.
        When generation fails the chore keeps the icon it was saved with.

        Returns:
            (ok, message) from the store
        """
        existing = self._store.state.get_chore(chore.id)
        if existing is None:
            ok, message = self._store.add_chore(chore)
        else:
            ok, message = self._store.update_chore(chore)
        if not ok:
            return ok, message

        if existing is not None and existing.title == chore.title:
            return ok, message

        icon = await self._assistant.generate_icon(chore.title)
        if icon:
            self._store.merge(lambda state: _with_icon(state, chore.id, chore.title, icon))
        return ok, message

    # ------------------------------------------------------------------
    # Google
    # ------------------------------------------------------------------

    async def sync_google(
        self,
        access_token: str,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Refresh the signed-in parent's profile and pull calendar events.

        Events come from the primary calendar of `access_token` and from
        every linked calendar source.

        Returns:
            Number of events merged into the store
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            profile = await self._google.fetch_user_profile(access_token)
        except ProfileFetchError as e:
            self._audit_logger.log_external_service_error(
                service="google_profile",
                error_message=str(e),
                correlation_id=correlation_id,
            )
        else:
            user_id = self._store.state.current_user_id
            self._store.merge(
                lambda state: operations.apply_profile(state, state.current_user_id, profile)
            )
            self._audit_logger.log_profile_synced(user_id, correlation_id=correlation_id)

        events: list[CalendarEvent] = []
        if access_token:
            events.extend(await self._google.fetch_calendar_events(access_token))

        sources = list(self._store.state.calendar_sources)
        for source in sources:
            prefix = f"[{source.owner_name}]" if source.type == CalendarSourceType.PERSONAL else ""
            events.extend(await self._google.fetch_calendar_events(
                source.access_token or access_token,
                calendar_id=source.calendar_id,
                color=source.color,
                prefix=prefix,
            ))

        if events:
            self._store.merge(lambda state: operations.merge_calendar_events(state, events))
        self._audit_logger.log_calendar_synced(
            event_count=len(events),
            source_count=len(sources),
            correlation_id=correlation_id,
        )
        return len(events)

    async def list_calendars(self, access_token: str) -> list[CalendarOption]:
        """
        Calendars the token can see, for the parent to pick a source from.

        Raises:
            CalendarFetchError: If the provider rejects the request
        """
        items = await self._google.fetch_calendar_list(access_token)
        return [
            CalendarOption(id=item["id"], name=item.get("summary") or item["id"])
            for item in items
            if item.get("id")
        ]

    async def list_albums(self, access_token: str) -> list[AlbumOption]:
        """
        Photo albums the token can see.

        Raises:
            AlbumFetchError: If the provider rejects the request
        """
        items = await self._google.fetch_albums(access_token)
        return [
            AlbumOption(id=item["id"], title=item.get("title") or "Untitled album")
            for item in items
            if item.get("id")
        ]

    async def refresh_photos(self) -> int:
        """
        Reload the slideshow from the configured album.

        An empty result keeps the photos already shown.

        Returns:
            Number of photos now in the store
        """
        config = self._store.state.photo_config
        if not config.album_id or not config.access_token:
            return len(self._store.state.photos)

        photos = await self._google.fetch_photos_from_album(config.access_token, config.album_id)
        if not photos:
            self._audit_logger.log_external_service_error(
                service="google_photos",
                error_message=f"No photos returned for album {config.album_id}",
            )
            return len(self._store.state.photos)

        self._store.merge(lambda state: operations.set_photos(state, photos))
        self._audit_logger.log_photos_synced(config.album_id, len(photos))
        return len(photos)

    # ------------------------------------------------------------------
    # Weather
    # ------------------------------------------------------------------

    async def get_weather(
        self,
        lat: Optional[float] = None,
        lon: Optional[float] = None,
    ) -> Optional[WeatherData]:
        """Forecast for the wall display. Not stored, not persisted."""
        app_settings = get_settings().app
        weather = await self._weather.fetch_weather(
            app_settings.weather_latitude if lat is None else lat,
            app_settings.weather_longitude if lon is None else lon,
        )
        if weather is None:
            self._audit_logger.log_external_service_error(
                service="open_meteo",
                error_message="Weather unavailable",
            )
        return weather


def _with_icon(state: FamilyState, chore_id: str, title: str, icon: str) -> FamilyState:
    """
    Set a generated icon on the chore as it is now.

    Skipped when the chore was deleted or renamed while the icon was
    being generated.
    """
    chore = state.get_chore(chore_id)
    if chore is None or chore.title != title:
        return state
    return state.model_copy(update={
        "chores": [
            c.model_copy(update={"icon": icon}) if c.id == chore_id else c
            for c in state.chores
        ],
    })


def create_app_components(
    use_storage: bool = True,
) -> tuple[FamilyStore, FamilyOrchestrator]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to persist state under the configured data_dir.
                    Set to False for a throwaway in-memory household.

    Returns:
        (store, orchestrator)
    """
    audit_logger = AuditLogger(InMemoryAuditStorage())
    if use_storage:
        storage = LocalFileStorage(get_settings().app.data_path)
    else:
        storage = InMemoryStorage()

    store = FamilyStore(storage, audit_logger=audit_logger)
    orchestrator = FamilyOrchestrator(store)
    return store, orchestrator
