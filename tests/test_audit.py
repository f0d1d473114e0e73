"""
Tests for the audit logger and the in-memory audit trail.
"""

from familysync.audit import AuditLogger, create_correlation_id
from familysync.models import AuditEvent, AuditEventType, AuditSeverity
from familysync.services.storage import AuditStorageInterface, InMemoryAuditStorage


class BrokenAuditStorage(AuditStorageInterface):
    """Audit backend that always fails."""

    def append_event(self, event):
        raise RuntimeError("audit backend down")

    def get_events_by_correlation_id(self, correlation_id):
        return []

    def get_events_by_entity(self, entity_type, entity_id):
        return []

    def get_recent_events(self, limit=100):
        return []


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_log_without_storage(self):
        """Test local-only logging always succeeds."""
        logger = AuditLogger()
        event = AuditEvent(event_type=AuditEventType.STATE_CHANGED, description="x")
        assert logger.log(event) is True
        assert logger.storage is None

    def test_log_persists_to_storage(self):
        """Test events reach the audit storage."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        logger.log_user_added("k1", "Kid One", "KID")
        events = storage.get_recent_events()
        assert len(events) == 1
        assert events[0].event_type == AuditEventType.USER_ADDED
        assert events[0].entity_id == "k1"

    def test_storage_failure_is_not_raised(self):
        """Test a broken audit backend never breaks the caller."""
        logger = AuditLogger(BrokenAuditStorage())
        assert logger.log(AuditEvent(event_type=AuditEventType.STATE_CHANGED, description="x")) is False

    def test_external_service_error(self):
        """Test external failures are recorded as warnings."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()
        logger.log_external_service_error("google_profile", "401", correlation_id=correlation_id)
        events = storage.get_events_by_correlation_id(correlation_id)
        assert events[0].severity == AuditSeverity.WARNING
        assert events[0].error_message == "401"

    def test_calendar_synced_correlation(self):
        """Test sync events can be traced by correlation id."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()
        logger.log_calendar_synced(event_count=4, source_count=1, correlation_id=correlation_id)
        logger.log_calendar_synced(event_count=0, source_count=0)
        events = storage.get_events_by_correlation_id(correlation_id)
        assert len(events) == 1
        assert events[0].details == {"event_count": 4, "source_count": 1}


class TestInMemoryAuditStorage:
    """Tests for the bounded audit trail."""

    def test_recent_events_newest_first(self):
        """Test recent events come back newest first."""
        storage = InMemoryAuditStorage()
        for name in ("a", "b", "c"):
            storage.append_event(AuditEvent(event_type=AuditEventType.STATE_CHANGED, description=name))
        assert [e.description for e in storage.get_recent_events(limit=2)] == ["c", "b"]

    def test_bounded(self):
        """Test old events fall off."""
        storage = InMemoryAuditStorage(max_events=2)
        for name in ("a", "b", "c"):
            storage.append_event(AuditEvent(event_type=AuditEventType.STATE_CHANGED, description=name))
        assert [e.description for e in storage.get_recent_events()] == ["c", "b"]

    def test_events_by_entity(self):
        """Test filtering by entity."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        logger.log_chore_toggled("c1", "k1", 50, True, 400)
        logger.log_chore_toggled("c2", "k2", 20, True, 60)
        events = storage.get_events_by_entity("chore", "c1")
        assert [e.details["balance"] for e in events] == [400]
