"""
Abstract Storage Interface

DESIGN DECISION: State is persisted through a tiny key/value interface
modelled on browser local storage (get / set / remove a string under a
key). This allows us to:
1. Keep the state on local disk for the Streamlit app
2. Use in-memory storage for testing
3. Swap in another backend without touching the ledger

The interface is intentionally simple - one JSON blob per family,
keyed by a fixed identifier.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from familysync.models.audit import AuditEvent


class StateStorageInterface(ABC):
    """
    Abstract interface for the family state blob.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Returns:
            The stored string, or None if nothing was stored

        Raises:
            StorageReadError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """
        Store a value under a key, replacing any previous value.

        Raises:
            StorageWriteError: If the value cannot be written
        """
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove a key. Removing a missing key is not an error."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a correlation ID in chronological order."""
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get all events for one record in chronological order."""
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageReadError(StorageError):
    """Stored state could not be read."""
    pass


class StorageWriteError(StorageError):
    """State could not be written."""
    pass
