"""
Data Models Package

This package contains all Pydantic models used in FamilySync.
All household data flowing through the system conforms to these schemas.
"""

from familysync.models.family import (
    AlbumOption,
    CalendarEvent,
    CalendarEventType,
    CalendarOption,
    CalendarSource,
    CalendarSourceType,
    Chore,
    ChoreFrequency,
    ChoreLog,
    CurrentWeather,
    DailyForecast,
    FamilyState,
    Meal,
    MealType,
    Photo,
    PhotoConfig,
    Reward,
    TimeOfDay,
    User,
    UserRole,
    WeatherData,
    avatar_url,
    new_id,
)
from familysync.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Family models
    "AlbumOption",
    "CalendarEvent",
    "CalendarEventType",
    "CalendarOption",
    "CalendarSource",
    "CalendarSourceType",
    "Chore",
    "ChoreFrequency",
    "ChoreLog",
    "CurrentWeather",
    "DailyForecast",
    "FamilyState",
    "Meal",
    "MealType",
    "Photo",
    "PhotoConfig",
    "Reward",
    "TimeOfDay",
    "User",
    "UserRole",
    "WeatherData",
    "avatar_url",
    "new_id",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
