"""
Tests for FamilyStore and the persistence bridge.

Uses InMemoryStorage for everything except the file round trip.
"""

import json

import pytest

from familysync.audit import AuditLogger
from familysync.ledger import FamilyStore, default_state, merge_snapshot
from familysync.models import (
    AuditEventType,
    Chore,
    ChoreFrequency,
    FamilyState,
    MealType,
    User,
    UserRole,
)
from familysync.services.storage import (
    InMemoryAuditStorage,
    InMemoryStorage,
    LocalFileStorage,
    StateStorageInterface,
    StorageReadError,
    StorageWriteError,
)


class FailingStorage(StateStorageInterface):
    """Storage whose reads and writes always fail."""

    def get_item(self, key):
        raise StorageReadError("disk unplugged")

    def set_item(self, key, value):
        raise StorageWriteError("disk full")

    def remove_item(self, key):
        raise StorageWriteError("disk full")


def make_store(storage, audit_storage=None):
    return FamilyStore(
        storage,
        audit_logger=AuditLogger(audit_storage or InMemoryAuditStorage()),
        storage_key="familySyncData",
        monotonic_lifetime=False,
        family_name="My Family",
    )


def event_types(audit_storage):
    return [e.event_type for e in audit_storage.get_recent_events(limit=500)]


class TestPersistenceBridge:
    """Tests for load, save and recovery."""

    def test_fresh_store_uses_defaults(self, storage):
        """Test an empty storage yields the built-in household."""
        store = make_store(storage)
        assert [u.id for u in store.state.users] == ["p1"]
        assert [r.id for r in store.state.rewards] == ["r1"]
        assert len(store.state.meals) == 21
        assert store.state.current_user_id is None

    def test_every_change_is_persisted(self, store, storage):
        """Test the snapshot is written on each change."""
        store.toggle_chore("c1")
        saved = json.loads(storage.get_item("familySyncData"))
        k1 = next(u for u in saved["users"] if u["id"] == "k1")
        assert k1["points"] == 400

    def test_round_trip(self, store, storage):
        """Test persisted-then-reloaded state keeps every collection."""
        store.toggle_chore("c1")
        store.update_meal("2024-05-06", MealType.LUNCH, "Sandwiches")
        store.request_reward("k2", "Kite", 60)
        store.login("k1")

        reloaded = make_store(storage).state
        for field in ("users", "chores", "rewards", "events", "meals", "photos", "chore_history"):
            assert getattr(reloaded, field) == getattr(store.state, field)
        assert reloaded.family_name == store.state.family_name

    def test_session_never_survives_reload(self, store, storage):
        """Test the current user is always empty after a reload."""
        store.login("k1")
        assert store.state.current_user_id == "k1"
        assert "current_user_id" not in json.loads(storage.get_item("familySyncData"))
        assert store.reload().current_user_id is None

    def test_corrupt_snapshot_falls_back_to_defaults(self, audit_storage):
        """Test unparseable JSON is logged and replaced by defaults."""
        storage = InMemoryStorage({"familySyncData": "{not json"})
        store = make_store(storage, audit_storage)
        assert [u.id for u in store.state.users] == ["p1"]
        assert AuditEventType.STATE_LOAD_FAILED in event_types(audit_storage)

    def test_non_object_snapshot_falls_back(self):
        """Test a JSON list is not accepted as a snapshot."""
        store = make_store(InMemoryStorage({"familySyncData": "[1, 2, 3]"}))
        assert [u.id for u in store.state.users] == ["p1"]

    def test_missing_collections_use_defaults(self):
        """Test an older snapshot without newer fields still loads."""
        old = {"users": [{"id": "k1", "name": "Kid One", "points": 10}], "chores": []}
        store = make_store(InMemoryStorage({"familySyncData": json.dumps(old)}))
        assert [u.id for u in store.state.users] == ["k1"]
        assert [r.id for r in store.state.rewards] == ["r1"]
        assert len(store.state.meals) == 21
        assert store.state.photo_config.album_id is None

    def test_read_failure_falls_back(self, audit_storage):
        """Test storage errors never escape the load."""
        store = make_store(FailingStorage(), audit_storage)
        assert store.state.users
        assert AuditEventType.STATE_LOAD_FAILED in event_types(audit_storage)

    def test_write_failure_keeps_memory_state(self, audit_storage):
        """Test a failed save is logged and the change still applies."""
        store = make_store(FailingStorage(), audit_storage)
        ok, _ = store.add_user("Kid", UserRole.KID)
        assert ok
        assert len(store.state.users) == 2
        assert store.save() is False
        assert AuditEventType.STATE_SAVE_FAILED in event_types(audit_storage)

    def test_local_file_round_trip(self, tmp_path):
        """Test the file backend survives a new store instance."""
        storage = LocalFileStorage(tmp_path / "data")
        store = make_store(storage)
        store.update_family_name("The Smiths")

        assert (tmp_path / "data" / "familySyncData.json").exists()
        assert make_store(LocalFileStorage(tmp_path / "data")).state.family_name == "The Smiths"


class TestMergeSnapshot:
    """Tests for merging saved data over defaults."""

    def test_invalid_records_dropped(self):
        """Test a bad record does not take the whole collection down."""
        raw = {"chores": [
            {"id": "c1", "title": "Make bed", "points": 50, "assignee_id": "p1"},
            {"id": "c2", "title": "", "points": -1},
        ]}
        state = merge_snapshot(raw, default_state())
        assert [c.id for c in state.chores] == ["c1"]

    def test_non_list_collection_uses_default(self):
        """Test a collection of the wrong shape is replaced by its default."""
        state = merge_snapshot({"rewards": "oops"}, default_state())
        assert [r.id for r in state.rewards] == ["r1"]

    def test_empty_roster_restored(self):
        """Test the roster is never empty after a load."""
        state = merge_snapshot({"users": []}, default_state())
        assert [u.id for u in state.users] == ["p1"]

    def test_current_user_reset(self):
        """Test a saved session field is ignored."""
        state = merge_snapshot({"current_user_id": "p1"}, default_state())
        assert state.current_user_id is None


class TestStoreTransitions:
    """Tests for the store's wrappers around the pure operations."""

    def test_toggle_scenario_and_audit(self, store, audit_storage):
        """Test the 350 -> 400 -> 350 scenario and its audit trail."""
        store.toggle_chore("c1")
        assert store.state.get_user("k1").points == 400
        store.toggle_chore("c1")
        assert store.state.get_user("k1").points == 350

        types = event_types(audit_storage)
        assert AuditEventType.CHORE_COMPLETED in types
        assert AuditEventType.CHORE_UNCOMPLETED in types

    def test_chore_edits_audited(self, store, audit_storage):
        """Test updates and deletions are recorded against the chore."""
        edited = store.state.get_chore("c1").model_copy(update={"points": 60})
        store.update_chore(edited)
        store.delete_chore("c1")
        store.delete_chore("missing")

        events = audit_storage.get_recent_events(limit=500)
        deleted = [e for e in events if e.event_type == AuditEventType.CHORE_DELETED]
        saved = [e for e in events if e.event_type == AuditEventType.CHORE_SAVED]
        assert [e.entity_id for e in deleted] == ["c1"]
        assert deleted[0].description == "Chore deleted: Make bed"
        assert saved[0].details["created"] is False

    def test_toggle_unknown_chore_changes_nothing(self, store, storage):
        """Test an unknown chore neither bumps the revision nor saves."""
        revision = store.revision
        saved = storage.get_item("familySyncData")
        store.toggle_chore("missing")
        assert store.revision == revision
        assert storage.get_item("familySyncData") == saved

    def test_delete_sole_user_rejected(self, audit_storage):
        """Test the only user cannot be deleted and a rejection is returned."""
        store = make_store(InMemoryStorage(), audit_storage)
        ok, message = store.delete_user("p1")
        assert ok is False
        assert message == "You cannot delete the last user."
        assert [u.id for u in store.state.users] == ["p1"]
        assert AuditEventType.USER_DELETE_REJECTED in event_types(audit_storage)

    def test_delete_user_cascades(self, store, audit_storage):
        """Test deleting a user drops their chores and is audited."""
        ok, _ = store.delete_user("k1")
        assert ok
        assert [c.id for c in store.state.chores] == ["c2"]
        deleted = [
            e for e in audit_storage.get_recent_events()
            if e.event_type == AuditEventType.USER_DELETED
        ]
        assert deleted[0].details["removed_chores"] == 1

    def test_rejected_transition_leaves_state(self, store):
        """Test a refused operation returns a message and changes nothing."""
        before = store.state
        ok, message = store.add_chore(Chore(title="Walk dog", points=10, assignee_id="ghost"))
        assert not ok
        assert "ghost" in message
        assert store.state is before

    def test_redeem_insufficient_points(self, store, audit_storage):
        """Test a refused redemption is reported and audited."""
        ok, message = store.redeem_reward("r1", "k2")
        assert ok is False
        assert message == "Need 10 more points"
        assert store.state.get_user("k2").points == 40
        assert AuditEventType.REWARD_REJECTED in event_types(audit_storage)

    def test_request_and_approve(self, store):
        """Test the wishlist flow through the store."""
        ok, _ = store.request_reward("k1", "Lego", 300)
        assert ok
        reward = store.state.pending_rewards[0]
        ok, _ = store.approve_reward(reward.id, 250)
        assert ok
        assert store.state.get_reward(reward.id).cost == 250
        assert store.state.pending_rewards == []

    def test_login_logout_audited(self, store, audit_storage):
        """Test session changes are audited."""
        store.login("k1")
        store.logout()
        types = event_types(audit_storage)
        assert AuditEventType.USER_LOGGED_IN in types
        assert AuditEventType.USER_LOGGED_OUT in types

    def test_set_pin(self, store):
        """Test PIN validation through the store."""
        assert store.set_pin("p1", "12") == (False, "PIN must be 4 digits")
        assert store.set_pin("p1", "1234") == (True, "")

    def test_update_meal_upserts(self, store):
        """Test the meal planner through the store."""
        before = len(store.state.meals)
        store.update_meal("2024-05-06", MealType.BREAKFAST, "Porridge")
        store.update_meal("2024-05-06", MealType.BREAKFAST, "Eggs")
        assert len(store.state.meals) == before

    def test_reset_chores(self, store):
        """Test a new day clears completion but keeps points."""
        store.toggle_chore("c1")
        store.reset_chores(ChoreFrequency.DAILY)
        assert store.state.get_chore("c1").completed is False
        assert store.state.get_user("k1").points == 400


class TestMerge:
    """Tests for merging asynchronous results."""

    def test_merge_applies_to_current_state(self, store):
        """Test an updater sees changes made after the async call started."""
        started_from = store.state
        store.toggle_chore("c1")

        store.merge(lambda state: state.model_copy(update={"family_name": "Synced"}))

        assert store.state.family_name == "Synced"
        assert store.state.get_user("k1").points == 400
        assert started_from.get_user("k1").points == 350

    def test_merge_bumps_revision(self, store):
        """Test every applied change counts as a revision."""
        revision = store.revision
        store.merge(lambda state: state.model_copy(update={"family_name": "A"}))
        assert store.revision == revision + 1

    def test_merge_noop_updater(self, store):
        """Test returning the same state is not a change."""
        revision = store.revision
        store.merge(lambda state: state)
        assert store.revision == revision
