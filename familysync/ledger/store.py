"""
FamilyStore - the explicit state container

DESIGN DECISION: The household state is held by one injected object
instead of ambient globals. Every change goes through the store:

1. A pure operation computes the new state from the current one
2. The store swaps it in under a lock (single writer)
3. The snapshot is persisted immediately
4. The change is audited

Results of asynchronous work (calendar sync, profile refresh, icon
generation) come back through merge(), which applies an updater to
the state current *at merge time*. A slow response therefore can never
overwrite a newer local change with a stale copy.

Persistence failures never propagate: the in-memory state stays
authoritative and the failure is logged.
"""

import json
import threading
from typing import Any, Callable, Optional

from pydantic import ValidationError

from familysync.audit import AuditLogger
from familysync.config import get_settings
from familysync.ledger import operations
from familysync.ledger.defaults import default_state
from familysync.ledger.errors import FamilyStateError, LastUserError
from familysync.models import (
    AuditEvent,
    AuditEventType,
    CalendarEvent,
    CalendarSource,
    Chore,
    ChoreFrequency,
    ChoreLog,
    FamilyState,
    Meal,
    MealType,
    Photo,
    PhotoConfig,
    Reward,
    User,
    UserRole,
)
from familysync.services.storage import StateStorageInterface, StorageError

Operation = Callable[..., FamilyState]

# Record type of every persisted top-level collection.
COLLECTION_TYPES = {
    "users": User,
    "chores": Chore,
    "chore_history": ChoreLog,
    "rewards": Reward,
    "events": CalendarEvent,
    "calendar_sources": CalendarSource,
    "meals": Meal,
    "photos": Photo,
}


def merge_snapshot(raw: dict[str, Any], defaults: FamilyState) -> FamilyState:
    """
    Shallow-merge a saved snapshot over the built-in defaults.

    Each top-level collection is taken from the snapshot only if it is a
    list; otherwise the default is kept. Records that no longer validate
    are dropped one by one. An empty roster falls back to the default
    roster so the household can always be logged into.
    """
    merged: dict[str, Any] = {}
    name = raw.get("family_name")
    merged["family_name"] = name if isinstance(name, str) else defaults.family_name

    for key, record_type in COLLECTION_TYPES.items():
        saved = raw.get(key)
        if not isinstance(saved, list):
            merged[key] = getattr(defaults, key)
            continue
        records = []
        for item in saved:
            try:
                records.append(record_type.model_validate(item))
            except ValidationError:
                continue
        merged[key] = records

    if not merged["users"]:
        merged["users"] = list(defaults.users)

    try:
        merged["photo_config"] = PhotoConfig.model_validate(raw.get("photo_config") or {})
    except ValidationError:
        merged["photo_config"] = defaults.photo_config

    # Sessions never survive a reload.
    merged["current_user_id"] = None
    return FamilyState(**merged)


class FamilyStore:
    """
    Single source of truth for one household session.

    All mutating methods apply a pure operation from
    familysync.ledger.operations and persist the result.
    Methods that can be refused return (ok, message) instead of raising.
    """

    def __init__(
        self,
        storage: StateStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        storage_key: Optional[str] = None,
        monotonic_lifetime: Optional[bool] = None,
        family_name: Optional[str] = None,
    ):
        app_settings = get_settings().app
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        self._storage_key = storage_key or app_settings.storage_key
        self._monotonic_lifetime = (
            app_settings.monotonic_lifetime_points
            if monotonic_lifetime is None
            else monotonic_lifetime
        )
        self._default_family_name = family_name or app_settings.default_family_name
        self._lock = threading.RLock()
        self._revision = 0
        self._state = self.load()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def state(self) -> FamilyState:
        return self._state

    @property
    def revision(self) -> int:
        """Number of changes applied since the store was created."""
        return self._revision

    @property
    def storage_key(self) -> str:
        return self._storage_key

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    # ------------------------------------------------------------------
    # Persistence bridge
    # ------------------------------------------------------------------

    def load(self) -> FamilyState:
        """
        Rehydrate state from storage, falling back to defaults.

        Read and parse failures are logged and yield the defaults.
        """
        defaults = default_state(family_name=self._default_family_name)
        try:
            saved = self._storage.get_item(self._storage_key)
            if saved is None:
                self._audit_logger.log_state_loaded(self._storage_key, from_snapshot=False)
                return defaults
            raw = json.loads(saved)
            if not isinstance(raw, dict):
                raise ValueError("Saved state is not a JSON object")
            state = merge_snapshot(raw, defaults)
        except (StorageError, ValueError) as e:
            self._audit_logger.log_state_load_failed(self._storage_key, str(e))
            return defaults

        self._audit_logger.log_state_loaded(self._storage_key, from_snapshot=True)
        return state

    def save(self) -> bool:
        """Persist the current snapshot. Returns False if the write failed."""
        try:
            blob = json.dumps(self._state.to_snapshot())
            self._storage.set_item(self._storage_key, blob)
        except (StorageError, TypeError, ValueError) as e:
            self._audit_logger.log_state_save_failed(self._storage_key, str(e))
            return False
        return True

    def reload(self) -> FamilyState:
        """Throw away in-memory state and load the saved snapshot again."""
        with self._lock:
            self._state = self.load()
            self._revision += 1
            return self._state

    # ------------------------------------------------------------------
    # Core transition machinery
    # ------------------------------------------------------------------

    def dispatch(self, operation: Operation, *args: Any, **kwargs: Any) -> FamilyState:
        """
        Apply a pure operation to the current state.

        Errors raised by the operation propagate and the state is left
        unchanged. On success the new state is persisted.
        """
        with self._lock:
            new_state = operation(self._state, *args, **kwargs)
            self._commit(new_state)
            return self._state

    def merge(self, updater: Callable[[FamilyState], FamilyState]) -> FamilyState:
        """Merge the result of async work into whatever state is current now."""
        return self.dispatch(updater)

    def _commit(self, new_state: FamilyState) -> None:
        if new_state is self._state:
            return
        self._state = new_state
        self._revision += 1
        self.save()

    def _attempt(
        self,
        operation: Operation,
        *args: Any,
        **kwargs: Any,
    ) -> tuple[bool, str]:
        """Dispatch, turning a rejected transition into (False, message)."""
        try:
            self.dispatch(operation, *args, **kwargs)
        except (FamilyStateError, ValueError) as e:
            return False, str(e)
        return True, ""

    # ------------------------------------------------------------------
    # Points ledger
    # ------------------------------------------------------------------

    def toggle_chore(self, chore_id: str) -> FamilyState:
        """Flip completion and settle points. Unknown chores are ignored."""
        with self._lock:
            before = self._state.get_chore(chore_id)
            state = self.dispatch(
                operations.toggle_chore,
                chore_id,
                monotonic_lifetime=self._monotonic_lifetime,
            )
            after = state.get_chore(chore_id)
            if before is not None and after is not None and after.completed != before.completed:
                assignee = state.get_user(after.assignee_id)
                self._audit_logger.log_chore_toggled(
                    chore_id=after.id,
                    user_id=after.assignee_id,
                    points=after.points,
                    completed=after.completed,
                    balance=assignee.points if assignee else 0,
                )
            return state

    # ------------------------------------------------------------------
    # Roster
    # ------------------------------------------------------------------

    def add_user(self, name: str, role: UserRole) -> tuple[bool, str]:
        ok, message = self._attempt(operations.add_user, name, role)
        if ok:
            user = self._state.users[-1]
            self._audit_logger.log_user_added(user.id, user.name, user.role.value)
        return ok, message

    def delete_user(self, user_id: str) -> tuple[bool, str]:
        """
        Remove a user and their chores.

        Returns (False, warning) without touching state when the user
        is the last one on the roster.
        """
        with self._lock:
            chores_before = len(self._state.chores)
            known = self._state.get_user(user_id) is not None
            try:
                self.dispatch(operations.remove_user, user_id)
            except LastUserError as e:
                self._audit_logger.log_user_delete_rejected(user_id, str(e))
                return False, str(e)
            if known:
                self._audit_logger.log_user_deleted(
                    user_id, chores_before - len(self._state.chores)
                )
            return True, ""

    def set_pin(self, user_id: str, pin: str) -> tuple[bool, str]:
        return self._attempt(operations.set_user_pin, user_id, pin)

    def login(self, user_id: str) -> tuple[bool, str]:
        ok, message = self._attempt(operations.login, user_id)
        if ok:
            self._audit_logger.log(self._session_event(AuditEventType.USER_LOGGED_IN, user_id))
        return ok, message

    def logout(self) -> None:
        user_id = self._state.current_user_id
        self.dispatch(operations.logout)
        if user_id:
            self._audit_logger.log(self._session_event(AuditEventType.USER_LOGGED_OUT, user_id))

    @staticmethod
    def _session_event(event_type: AuditEventType, user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="user",
            entity_id=user_id,
            description=event_type.value.replace("_", " "),
            is_user_action=True,
        )

    def update_family_name(self, name: str) -> None:
        self.dispatch(operations.update_family_name, name)

    # ------------------------------------------------------------------
    # Chores
    # ------------------------------------------------------------------

    def add_chore(self, chore: Chore) -> tuple[bool, str]:
        ok, message = self._attempt(operations.add_chore, chore)
        if ok:
            self._audit_logger.log_chore_saved(chore.id, chore.title, created=True)
        return ok, message

    def update_chore(self, chore: Chore) -> tuple[bool, str]:
        ok, message = self._attempt(operations.update_chore, chore)
        if ok:
            self._audit_logger.log_chore_saved(chore.id, chore.title, created=False)
        return ok, message

    def delete_chore(self, chore_id: str) -> None:
        with self._lock:
            chore = self._state.get_chore(chore_id)
            self.dispatch(operations.delete_chore, chore_id)
        if chore is not None:
            self._audit_logger.log_chore_deleted(chore.id, chore.title)

    def duplicate_chore(self, chore_id: str) -> tuple[bool, str]:
        return self._attempt(operations.duplicate_chore, chore_id)

    # ------------------------------------------------------------------
    # Rewards
    # ------------------------------------------------------------------

    def request_reward(self, user_id: str, title: str, cost: int) -> tuple[bool, str]:
        ok, message = self._attempt(operations.request_reward, user_id, title, cost)
        if ok:
            reward = self._state.rewards[-1]
            self._audit_logger.log_reward_event(
                AuditEventType.REWARD_REQUESTED, reward.id, reward.title, reward.cost, user_id
            )
        return ok, message

    def approve_reward(
        self,
        reward_id: str,
        adjusted_cost: Optional[int] = None,
    ) -> tuple[bool, str]:
        ok, message = self._attempt(operations.approve_reward, reward_id, adjusted_cost)
        reward = self._state.get_reward(reward_id)
        if ok and reward is not None:
            self._audit_logger.log_reward_event(
                AuditEventType.REWARD_APPROVED, reward.id, reward.title, reward.cost,
                reward.requested_by,
            )
        return ok, message

    def add_reward(self, reward: Reward) -> None:
        self.dispatch(operations.add_reward, reward)

    def update_reward(self, reward: Reward) -> None:
        self.dispatch(operations.update_reward, reward)

    def delete_reward(self, reward_id: str) -> None:
        reward = self._state.get_reward(reward_id)
        self.dispatch(operations.delete_reward, reward_id)
        if reward is not None:
            self._audit_logger.log_reward_event(
                AuditEventType.REWARD_DELETED, reward.id, reward.title, reward.cost,
                reward.requested_by,
            )

    def redeem_reward(self, reward_id: str, user_id: str) -> tuple[bool, str]:
        ok, message = self._attempt(operations.redeem_reward, reward_id, user_id)
        reward = self._state.get_reward(reward_id)
        if reward is not None:
            self._audit_logger.log_reward_event(
                AuditEventType.REWARD_REDEEMED if ok else AuditEventType.REWARD_REJECTED,
                reward.id, reward.title, reward.cost, user_id,
            )
        return ok, message

    def redeem_shared_reward(self, reward_id: str) -> tuple[bool, str]:
        ok, message = self._attempt(operations.redeem_shared_reward, reward_id)
        reward = self._state.get_reward(reward_id)
        if ok and reward is not None:
            self._audit_logger.log_reward_event(
                AuditEventType.REWARD_REDEEMED, reward.id, reward.title, reward.cost
            )
        return ok, message

    # ------------------------------------------------------------------
    # Meals
    # ------------------------------------------------------------------

    def update_meal(self, meal_date: str, meal_type: MealType, title: str) -> None:
        self.dispatch(operations.update_meal, meal_date, meal_type, title)
        self._audit_logger.log_meal_updated(meal_date, MealType(meal_type).value, title)

    # ------------------------------------------------------------------
    # Integrations
    # ------------------------------------------------------------------

    def reset_chores(self, frequency: ChoreFrequency) -> None:
        self.dispatch(operations.reset_chores, frequency)
        self._audit_logger.log_state_changed(f"reset_{ChoreFrequency(frequency).value}_chores")

    def add_calendar_source(self, source: CalendarSource) -> None:
        self.dispatch(operations.add_calendar_source, source)

    def remove_calendar_source(self, source_id: str) -> None:
        self.dispatch(operations.remove_calendar_source, source_id)

    def set_photo_config(self, config: PhotoConfig) -> None:
        self.dispatch(operations.set_photo_config, config)
