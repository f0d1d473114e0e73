"""
State Transitions for FamilySync

Every change to the household is a pure function from the old
FamilyState (plus arguments) to a new FamilyState.

DESIGN DECISION: Functions here never mutate their input. They build
replacement records with model_copy(update=...) and return a new state,
so a transition is observable either completely or not at all.
Guard violations raise a FamilyStateError before anything is built,
which leaves the caller holding the unchanged old state.

CRITICAL: The points ledger lives in toggle_chore. The assignee's
balance and the chore's completion flag change together or not at all.
"""

import math
import re
import secrets
from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional, Sequence, TypeVar

from pydantic import BaseModel

from familysync.ledger.errors import (
    FamilyStateError,
    InsufficientPointsError,
    InvalidPinError,
    LastUserError,
    NotFoundError,
)
from familysync.models import (
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
    avatar_url,
    new_id,
)

T = TypeVar("T", bound=BaseModel)

PIN_PATTERN = re.compile(r"^\d{4}$")


def _replace(items: Sequence[T], replacement: T) -> list[T]:
    """Copy of `items` with the record sharing replacement's id swapped in."""
    return [replacement if item.id == replacement.id else item for item in items]


# =============================================================================
# POINTS LEDGER
# =============================================================================

def toggle_chore(
    state: FamilyState,
    chore_id: str,
    monotonic_lifetime: bool = False,
    now: Optional[datetime] = None,
) -> FamilyState:
    """
    Flip a chore's completion flag and settle the assignee's points.

    false -> true: balance and lifetime counter both go up by the chore's
    points and a ChoreLog entry is recorded.
    true -> false: balance goes down by the same amount, the latest
    matching ChoreLog entry is dropped, and the lifetime counter goes
    down too unless `monotonic_lifetime` is set.

    Unknown chore ids are a no-op.
    """
    chore = state.get_chore(chore_id)
    if chore is None:
        return state
    assignee = state.get_user(chore.assignee_id)
    if assignee is None:
        # Removing a user removes their chores, so this only happens with
        # hand-edited snapshots. Leave the ledger alone.
        return state

    completing = not chore.completed
    delta = chore.points if completing else -chore.points
    lifetime_delta = delta if (completing or not monotonic_lifetime) else 0

    updated_user = assignee.model_copy(update={
        "points": assignee.points + delta,
        "total_points_earned": assignee.total_points_earned + lifetime_delta,
    })
    updated_chore = chore.model_copy(update={"completed": completing})

    if completing:
        now = now or datetime.now(timezone.utc)
        history = [*state.chore_history, ChoreLog(
            chore_id=chore.id,
            chore_title=chore.title,
            user_id=assignee.id,
            user_name=assignee.name,
            points=chore.points,
            date=now.date().isoformat(),
            timestamp=now,
        )]
    else:
        history = _drop_latest_log(state.chore_history, chore.id, assignee.id)

    return state.model_copy(update={
        "users": _replace(state.users, updated_user),
        "chores": _replace(state.chores, updated_chore),
        "chore_history": history,
    })


def _drop_latest_log(
    history: Sequence[ChoreLog],
    chore_id: str,
    user_id: str,
) -> list[ChoreLog]:
    for index in range(len(history) - 1, -1, -1):
        entry = history[index]
        if entry.chore_id == chore_id and entry.user_id == user_id:
            return [*history[:index], *history[index + 1:]]
    return list(history)


# =============================================================================
# ROSTER
# =============================================================================

def add_user(
    state: FamilyState,
    name: str,
    role: UserRole,
    user_id: Optional[str] = None,
) -> FamilyState:
    """Append a user with a zero balance and a generated avatar."""
    user = User(
        id=user_id or new_id("u"),
        name=name,
        role=role,
        avatar=avatar_url(name.strip()),
    )
    return state.model_copy(update={"users": [*state.users, user]})


def remove_user(state: FamilyState, user_id: str) -> FamilyState:
    """
    Remove a user and every chore assigned to them.

    Raises:
        LastUserError: If this is the only user left (roster unchanged)

    Wishlist rewards requested by the user are kept; see orphaned_rewards.
    Unknown ids are a no-op.
    """
    if state.get_user(user_id) is None:
        return state
    if len(state.users) <= 1:
        raise LastUserError(user_id)

    return state.model_copy(update={
        "users": [u for u in state.users if u.id != user_id],
        "chores": [c for c in state.chores if c.assignee_id != user_id],
        "current_user_id": (
            None if state.current_user_id == user_id else state.current_user_id
        ),
    })


def orphaned_rewards(state: FamilyState) -> list[Reward]:
    """Rewards whose requester is no longer on the roster."""
    user_ids = {u.id for u in state.users}
    return [
        r for r in state.rewards
        if r.requested_by is not None and r.requested_by not in user_ids
    ]


def set_user_pin(state: FamilyState, user_id: str, pin: str) -> FamilyState:
    if not PIN_PATTERN.match(pin or ""):
        raise InvalidPinError()
    user = state.get_user(user_id)
    if user is None:
        raise NotFoundError(f"Unknown user: {user_id}")
    return state.model_copy(update={
        "users": _replace(state.users, user.model_copy(update={"pin": pin})),
    })


def verify_pin(user: User, pin: str) -> bool:
    """True when `pin` matches the user's PIN. Users without a PIN never match."""
    if user.pin is None:
        return False
    return secrets.compare_digest(user.pin, pin or "")


def login(state: FamilyState, user_id: str) -> FamilyState:
    """Select a roster member as the session user. No credential check."""
    if state.get_user(user_id) is None:
        raise NotFoundError(f"Unknown user: {user_id}")
    return state.model_copy(update={"current_user_id": user_id})


def logout(state: FamilyState) -> FamilyState:
    return state.model_copy(update={"current_user_id": None})


def update_family_name(state: FamilyState, name: str) -> FamilyState:
    return state.model_copy(update={"family_name": name.strip() or state.family_name})


def apply_profile(
    state: FamilyState,
    user_id: Optional[str],
    profile: dict[str, Any],
) -> FamilyState:
    """
    Refresh a parent's name and avatar from an identity-provider profile.

    Only a PARENT with the given id is touched; anything else is a no-op.
    """
    user = state.get_user(user_id)
    if user is None or user.role != UserRole.PARENT:
        return state
    refreshed = user.model_copy(update={
        "name": profile.get("given_name") or user.name,
        "avatar": profile.get("picture") or user.avatar,
    })
    return state.model_copy(update={"users": _replace(state.users, refreshed)})


# =============================================================================
# CHORES
# =============================================================================

def add_chore(state: FamilyState, chore: Chore) -> FamilyState:
    if state.get_user(chore.assignee_id) is None:
        raise NotFoundError(f"Unknown assignee: {chore.assignee_id}")
    return state.model_copy(update={"chores": [*state.chores, chore]})


def update_chore(state: FamilyState, chore: Chore) -> FamilyState:
    """
    Replace a chore wholesale.

    Balances are never touched here: points already paid for the old
    completion state stay paid until the chore is explicitly toggled.
    """
    if state.get_chore(chore.id) is None:
        raise NotFoundError(f"Unknown chore: {chore.id}")
    if state.get_user(chore.assignee_id) is None:
        raise NotFoundError(f"Unknown assignee: {chore.assignee_id}")
    return state.model_copy(update={"chores": _replace(state.chores, chore)})


def delete_chore(state: FamilyState, chore_id: str) -> FamilyState:
    return state.model_copy(update={
        "chores": [c for c in state.chores if c.id != chore_id],
    })


def duplicate_chore(
    state: FamilyState,
    chore_id: str,
    copy_id: Optional[str] = None,
) -> FamilyState:
    chore = state.get_chore(chore_id)
    if chore is None:
        raise NotFoundError(f"Unknown chore: {chore_id}")
    copy = chore.model_copy(update={
        "id": copy_id or new_id("c"),
        "title": f"{chore.title} (Copy)",
        "completed": False,
    })
    return state.model_copy(update={"chores": [*state.chores, copy]})


def reset_chores(
    state: FamilyState,
    frequency: ChoreFrequency,
    today: Optional[date] = None,
) -> FamilyState:
    """
    Start a new period for recurring chores of one frequency.

    Completion flags are cleared and the due date moves to today.
    Balances are not touched: points earned last period stay earned.
    """
    today = today or date.today()
    chores = [
        c.model_copy(update={"completed": False, "due_date": today})
        if c.frequency == frequency else c
        for c in state.chores
    ]
    return state.model_copy(update={"chores": chores})


# =============================================================================
# REWARDS
# =============================================================================

def request_reward(
    state: FamilyState,
    user_id: str,
    title: str,
    cost: int,
    reward_id: Optional[str] = None,
) -> FamilyState:
    """Add a wishlist item awaiting parental approval."""
    if state.get_user(user_id) is None:
        raise NotFoundError(f"Unknown user: {user_id}")
    reward = Reward(
        id=reward_id or new_id("r"),
        title=title,
        cost=cost,
        requested_by=user_id,
        approved=False,
        image=avatar_url(title.strip()),
    )
    return state.model_copy(update={"rewards": [*state.rewards, reward]})


def approve_reward(
    state: FamilyState,
    reward_id: str,
    adjusted_cost: Optional[int] = None,
) -> FamilyState:
    """
    Approve a reward. One way only: there is no un-approve.

    A parent may settle on a different cost while approving.
    Unknown ids are a no-op.
    """
    reward = state.get_reward(reward_id)
    if reward is None:
        return state
    update: dict[str, Any] = {"approved": True}
    if adjusted_cost is not None:
        if adjusted_cost < 0:
            raise FamilyStateError("Cost cannot be negative")
        update["cost"] = adjusted_cost
    return state.model_copy(update={
        "rewards": _replace(state.rewards, reward.model_copy(update=update)),
    })


def add_reward(state: FamilyState, reward: Reward) -> FamilyState:
    """Add a parent-created catalog reward. These are always approved."""
    reward = reward.model_copy(update={"approved": True})
    return state.model_copy(update={"rewards": [*state.rewards, reward]})


def update_reward(state: FamilyState, reward: Reward) -> FamilyState:
    if state.get_reward(reward.id) is None:
        return state
    return state.model_copy(update={"rewards": _replace(state.rewards, reward)})


def delete_reward(state: FamilyState, reward_id: str) -> FamilyState:
    """Remove a reward outright. This is how unwanted requests are declined."""
    return state.model_copy(update={
        "rewards": [r for r in state.rewards if r.id != reward_id],
    })


def _approved_reward(state: FamilyState, reward_id: str) -> Reward:
    reward = state.get_reward(reward_id)
    if reward is None:
        raise NotFoundError(f"Unknown reward: {reward_id}")
    if not reward.approved:
        raise FamilyStateError("Reward is waiting for approval")
    if reward.redeemed:
        raise FamilyStateError("Reward was already redeemed")
    return reward


def redeem_reward(state: FamilyState, reward_id: str, user_id: str) -> FamilyState:
    """
    Spend a user's points on an approved reward.

    Only the spendable balance goes down; lifetime points are untouched.
    Wishlist items are one-off and get marked redeemed; catalog items
    can be redeemed again.

    Raises:
        InsufficientPointsError: If the balance does not cover the cost
    """
    reward = _approved_reward(state, reward_id)
    user = state.get_user(user_id)
    if user is None:
        raise NotFoundError(f"Unknown user: {user_id}")
    if user.points < reward.cost:
        raise InsufficientPointsError(user.id, user.points, reward.cost)

    rewards = state.rewards
    if reward.requested_by is not None:
        rewards = _replace(rewards, reward.model_copy(update={"redeemed": True}))
    return state.model_copy(update={
        "users": _replace(
            state.users, user.model_copy(update={"points": user.points - reward.cost})
        ),
        "rewards": rewards,
    })


def shared_cost_per_kid(cost: int, kid_count: int) -> int:
    """Each kid's share of a shared reward, rounded up."""
    return math.ceil(cost / kid_count)


def redeem_shared_reward(state: FamilyState, reward_id: str) -> FamilyState:
    """
    Redeem a shared reward for the whole group of kids.

    The cost is split evenly (rounded up) and every kid pays their share.
    Nothing is charged unless every kid can afford it.
    """
    reward = _approved_reward(state, reward_id)
    kids = state.kids
    if not kids:
        raise FamilyStateError("There are no kids to share this reward")
    share = shared_cost_per_kid(reward.cost, len(kids))
    for kid in kids:
        if kid.points < share:
            raise InsufficientPointsError(kid.id, kid.points, share)

    kid_ids = {k.id for k in kids}
    users = [
        u.model_copy(update={"points": u.points - share}) if u.id in kid_ids else u
        for u in state.users
    ]
    return state.model_copy(update={
        "users": users,
        "rewards": _replace(state.rewards, reward.model_copy(update={"redeemed": True})),
    })


# =============================================================================
# MEALS
# =============================================================================

def update_meal(
    state: FamilyState,
    meal_date: str,
    meal_type: MealType,
    title: str,
    meal_id: Optional[str] = None,
) -> FamilyState:
    """
    Upsert the meal at (date, type).

    An existing slot keeps its id and gets the new title; otherwise
    exactly one new entry is appended.
    """
    meal_type = MealType(meal_type)
    meals = list(state.meals)
    for index, meal in enumerate(meals):
        if meal.date == meal_date and meal.type == meal_type:
            meals[index] = meal.model_copy(update={"title": title})
            break
    else:
        meals.append(Meal(
            id=meal_id or new_id("m-"),
            date=meal_date,
            type=meal_type,
            title=title,
        ))
    return state.model_copy(update={"meals": meals})


# =============================================================================
# CALENDAR AND PHOTOS
# =============================================================================

def merge_calendar_events(
    state: FamilyState,
    events: Iterable[CalendarEvent],
) -> FamilyState:
    """Append synced events. Previously synced events are not de-duplicated."""
    return state.model_copy(update={"events": [*state.events, *events]})


def add_calendar_source(state: FamilyState, source: CalendarSource) -> FamilyState:
    return state.model_copy(update={
        "calendar_sources": [*state.calendar_sources, source],
    })


def remove_calendar_source(state: FamilyState, source_id: str) -> FamilyState:
    return state.model_copy(update={
        "calendar_sources": [s for s in state.calendar_sources if s.id != source_id],
    })


def set_photo_config(state: FamilyState, config: PhotoConfig) -> FamilyState:
    return state.model_copy(update={"photo_config": config})


def set_photos(state: FamilyState, photos: Iterable[Photo]) -> FamilyState:
    return state.model_copy(update={"photos": list(photos)})
