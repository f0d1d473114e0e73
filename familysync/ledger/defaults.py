"""
Built-in defaults for a fresh household.

Loaded snapshots are merged over these per top-level field, so a
snapshot missing a newer collection still loads.
"""

from datetime import date, timedelta
from typing import Optional

from familysync.models import (
    FamilyState,
    Meal,
    MealType,
    Reward,
    User,
    UserRole,
)

# At least one parent is needed to log in and configure the household.
INITIAL_USERS = (
    User(
        id="p1",
        name="Parent",
        avatar="https://ui-avatars.com/api/?name=Parent&background=0D8ABC&color=fff",
        role=UserRole.PARENT,
    ),
)

INITIAL_REWARDS = (
    Reward(
        id="r1",
        title="Screen Time (30 mins)",
        cost=50,
        approved=True,
        image="https://images.unsplash.com/photo-1517430816045-df4b7de8dbd8?w=200&h=200&fit=crop",
    ),
)

MEAL_PLAN_DAYS = 7


def initial_meals(today: Optional[date] = None) -> list[Meal]:
    """Empty breakfast/lunch/dinner slots for the coming week."""
    today = today or date.today()
    meals = []
    for offset in range(MEAL_PLAN_DAYS):
        day = (today + timedelta(days=offset)).isoformat()
        for meal_type in MealType:
            meals.append(Meal(
                id=f"m-{meal_type.value[0]}-{offset}",
                date=day,
                type=meal_type,
                title="",
            ))
    return meals


def default_state(
    family_name: str = "My Family",
    today: Optional[date] = None,
) -> FamilyState:
    """A fresh household with one parent and the starter reward."""
    return FamilyState(
        family_name=family_name,
        users=list(INITIAL_USERS),
        chores=[],
        chore_history=[],
        rewards=list(INITIAL_REWARDS),
        events=[],
        calendar_sources=[],
        meals=initial_meals(today),
        photos=[],
        current_user_id=None,
    )
