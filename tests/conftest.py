"""Shared fixtures: a small household and an in-memory store."""

from datetime import date

import pytest

from familysync.audit import AuditLogger
from familysync.config import get_settings
from familysync.ledger import FamilyStore, default_state
from familysync.models import Chore, Reward, User, UserRole
from familysync.services.storage import InMemoryAuditStorage, InMemoryStorage

TODAY = date(2024, 5, 6)


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are cached per process; start every test from the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def family_state():
    """Parent p1, kids k1 (350 pts) and k2 (40 pts), one chore each."""
    state = default_state(today=TODAY)
    return state.model_copy(update={
        "users": [
            *state.users,
            User(id="k1", name="Kid One", role=UserRole.KID, points=350, total_points_earned=350),
            User(id="k2", name="Kid Two", role=UserRole.KID, points=40, total_points_earned=90),
        ],
        "chores": [
            Chore(id="c1", title="Make bed", points=50, assignee_id="k1", due_date=TODAY),
            Chore(id="c2", title="Feed cat", points=20, assignee_id="k2", due_date=TODAY),
        ],
        "rewards": [
            *state.rewards,
            Reward(id="r2", title="Movie night", cost=100, approved=True, is_shared=True),
        ],
    })


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def store(storage, audit_storage, family_state):
    """Store seeded with family_state and persisted once."""
    store = FamilyStore(
        storage,
        audit_logger=AuditLogger(audit_storage),
        storage_key="familySyncData",
        monotonic_lifetime=False,
        family_name="My Family",
    )
    store.merge(lambda _: family_state)
    return store
