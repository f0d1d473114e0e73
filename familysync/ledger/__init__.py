"""
Ledger package: pure state transitions and the FamilyStore container.
"""

from familysync.ledger import operations
from familysync.ledger.defaults import default_state, initial_meals
from familysync.ledger.errors import (
    FamilyStateError,
    InsufficientPointsError,
    InvalidPinError,
    LastUserError,
    NotFoundError,
)
from familysync.ledger.store import FamilyStore, merge_snapshot

__all__ = [
    "operations",
    "default_state",
    "initial_meals",
    "FamilyStateError",
    "InsufficientPointsError",
    "InvalidPinError",
    "LastUserError",
    "NotFoundError",
    "FamilyStore",
    "merge_snapshot",
]
