"""
Audit Models for FamilySync

Every state transition in the household is logged as an audit event.
This provides:
1. A readable history for parents (who completed what, who approved what)
2. Debugging information when an external service misbehaves
3. The ability to reconstruct how a balance got where it is

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Chores and points
    CHORE_COMPLETED = "chore_completed"
    CHORE_UNCOMPLETED = "chore_uncompleted"
    CHORE_SAVED = "chore_saved"
    CHORE_DELETED = "chore_deleted"

    # Roster
    USER_ADDED = "user_added"
    USER_DELETED = "user_deleted"
    USER_DELETE_REJECTED = "user_delete_rejected"
    USER_LOGGED_IN = "user_logged_in"
    USER_LOGGED_OUT = "user_logged_out"

    # Rewards
    REWARD_REQUESTED = "reward_requested"
    REWARD_APPROVED = "reward_approved"
    REWARD_DELETED = "reward_deleted"
    REWARD_REDEEMED = "reward_redeemed"
    REWARD_REJECTED = "reward_rejected"

    # Meals
    MEAL_UPDATED = "meal_updated"

    # Generic state change
    STATE_CHANGED = "state_changed"

    # Persistence
    STATE_LOADED = "state_loaded"
    STATE_LOAD_FAILED = "state_load_failed"
    STATE_SAVE_FAILED = "state_save_failed"

    # Integrations
    CALENDAR_SYNCED = "calendar_synced"
    PROFILE_SYNCED = "profile_synced"
    PHOTOS_SYNCED = "photos_synced"

    # Failures
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every state transition creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what record is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of record (e.g., 'chore', 'user', 'reward')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Identity of the record this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one calendar sync)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.chore_toggled(chore_id, user_id, 50, True)
        event = AuditEventBuilder.user_delete_rejected(user_id, reason)
    """

    @staticmethod
    def chore_toggled(
        chore_id: str,
        user_id: str,
        points: int,
        completed: bool,
        balance: int,
    ) -> AuditEvent:
        if completed:
            event_type = AuditEventType.CHORE_COMPLETED
            description = f"Chore completed: +{points} points"
        else:
            event_type = AuditEventType.CHORE_UNCOMPLETED
            description = f"Chore marked incomplete: -{points} points"
        return AuditEvent(
            event_type=event_type,
            entity_type="chore",
            entity_id=chore_id,
            description=description,
            details={
                "user_id": user_id,
                "points": points,
                "balance": balance,
            },
            is_user_action=True,
        )

    @staticmethod
    def user_added(user_id: str, name: str, role: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_ADDED,
            entity_type="user",
            entity_id=user_id,
            description=f"User added: {name}",
            details={"role": role},
            is_user_action=True,
        )

    @staticmethod
    def user_deleted(user_id: str, removed_chores: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_DELETED,
            entity_type="user",
            entity_id=user_id,
            description=f"User deleted with {removed_chores} assigned chores",
            details={"removed_chores": removed_chores},
            is_user_action=True,
        )

    @staticmethod
    def user_delete_rejected(user_id: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_DELETE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            entity_id=user_id,
            description="User deletion rejected",
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def reward_event(
        event_type: AuditEventType,
        reward_id: str,
        title: str,
        cost: int,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="reward",
            entity_id=reward_id,
            description=f"{event_type.value.replace('_', ' ').capitalize()}: {title}",
            details={
                "cost": cost,
                "user_id": user_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def chore_saved(chore_id: str, title: str, created: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHORE_SAVED,
            entity_type="chore",
            entity_id=chore_id,
            description=f"Chore {'added' if created else 'updated'}: {title}",
            details={"created": created},
            is_user_action=True,
        )

    @staticmethod
    def chore_deleted(chore_id: str, title: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHORE_DELETED,
            entity_type="chore",
            entity_id=chore_id,
            description=f"Chore deleted: {title}",
            is_user_action=True,
        )

    @staticmethod
    def meal_updated(meal_date: str, meal_type: str, title: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEAL_UPDATED,
            entity_type="meal",
            entity_id=f"{meal_date}:{meal_type}",
            description=f"Meal updated for {meal_date} {meal_type}",
            details={"title": title},
            is_user_action=True,
        )

    @staticmethod
    def state_changed(operation: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_CHANGED,
            severity=AuditSeverity.DEBUG,
            description=f"State changed by {operation}",
            details={"operation": operation},
        )

    @staticmethod
    def state_loaded(storage_key: str, from_snapshot: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_LOADED,
            description=(
                "Family state restored from saved snapshot"
                if from_snapshot
                else "Family state initialised from defaults"
            ),
            details={"storage_key": storage_key, "from_snapshot": from_snapshot},
        )

    @staticmethod
    def state_load_failed(storage_key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            description="Failed to parse saved state, using defaults",
            error_message=error_message,
            details={"storage_key": storage_key},
        )

    @staticmethod
    def state_save_failed(storage_key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            description="Failed to save state",
            error_message=error_message,
            details={"storage_key": storage_key},
        )

    @staticmethod
    def calendar_synced(
        event_count: int,
        source_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CALENDAR_SYNCED,
            entity_type="calendar",
            correlation_id=correlation_id,
            description=f"Calendar sync added {event_count} events",
            details={
                "event_count": event_count,
                "source_count": source_count,
            },
        )

    @staticmethod
    def profile_synced(
        user_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_SYNCED,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Profile refreshed from Google",
        )

    @staticmethod
    def photos_synced(album_id: str, photo_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PHOTOS_SYNCED,
            entity_type="album",
            entity_id=album_id,
            description=f"Slideshow reloaded with {photo_count} photos",
            details={"photo_count": photo_count},
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.WARNING,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
