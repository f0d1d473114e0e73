"""
Audit Logger

DESIGN DECISION: Every state transition in the household is logged.
This provides:
1. Traceability of every point credited or debited
2. Debugging capability for external integrations
3. A history view for parents

The audit logger:
- Is synchronous: state transitions are applied and logged in one step
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from familysync.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from familysync.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend (for the parent history view)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("familysync.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_chore_toggled(
        self,
        chore_id: str,
        user_id: str,
        points: int,
        completed: bool,
        balance: int,
    ) -> None:
        """Log a completion flip and the resulting balance."""
        self.log(AuditEventBuilder.chore_toggled(
            chore_id=chore_id,
            user_id=user_id,
            points=points,
            completed=completed,
            balance=balance,
        ))

    def log_user_added(self, user_id: str, name: str, role: str) -> None:
        self.log(AuditEventBuilder.user_added(user_id, name, role))

    def log_user_deleted(self, user_id: str, removed_chores: int) -> None:
        self.log(AuditEventBuilder.user_deleted(user_id, removed_chores))

    def log_user_delete_rejected(self, user_id: str, reason: str) -> None:
        self.log(AuditEventBuilder.user_delete_rejected(user_id, reason))

    def log_reward_event(
        self,
        event_type: AuditEventType,
        reward_id: str,
        title: str,
        cost: int,
        user_id: Optional[str] = None,
    ) -> None:
        self.log(AuditEventBuilder.reward_event(
            event_type=event_type,
            reward_id=reward_id,
            title=title,
            cost=cost,
            user_id=user_id,
        ))

    def log_chore_saved(self, chore_id: str, title: str, created: bool) -> None:
        self.log(AuditEventBuilder.chore_saved(chore_id, title, created))

    def log_chore_deleted(self, chore_id: str, title: str) -> None:
        self.log(AuditEventBuilder.chore_deleted(chore_id, title))

    def log_meal_updated(self, meal_date: str, meal_type: str, title: str) -> None:
        self.log(AuditEventBuilder.meal_updated(meal_date, meal_type, title))

    def log_state_changed(self, operation: str) -> None:
        self.log(AuditEventBuilder.state_changed(operation))

    def log_state_loaded(self, storage_key: str, from_snapshot: bool) -> None:
        self.log(AuditEventBuilder.state_loaded(storage_key, from_snapshot))

    def log_state_load_failed(self, storage_key: str, error_message: str) -> None:
        self.log(AuditEventBuilder.state_load_failed(storage_key, error_message))

    def log_state_save_failed(self, storage_key: str, error_message: str) -> None:
        self.log(AuditEventBuilder.state_save_failed(storage_key, error_message))

    def log_calendar_synced(
        self,
        event_count: int,
        source_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.calendar_synced(
            event_count=event_count,
            source_count=source_count,
            correlation_id=correlation_id,
        ))

    def log_profile_synced(
        self,
        user_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.profile_synced(user_id, correlation_id))

    def log_photos_synced(self, album_id: str, photo_count: int) -> None:
        self.log(AuditEventBuilder.photos_synced(album_id, photo_count))

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of an integration run (e.g., a calendar sync).
    Pass it through all subsequent operations.
    """
    return uuid4()
