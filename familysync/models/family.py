"""
Core Data Models for FamilySync

These models define the records held in the family Record Store:
users, chores, rewards, calendar events, meals and photos, plus the
FamilyState container that groups them for one household.

DESIGN DECISION: Records are Pydantic v2 models and are treated as
immutable values. State transitions build new records with
model_copy(update=...) instead of mutating in place, so a transition
is either fully applied or not applied at all.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional
from urllib.parse import quote
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def new_id(prefix: str) -> str:
    """Generate a new record identity such as ``c3f9a1b2c4d5``."""
    return f"{prefix}{uuid4().hex[:12]}"


def avatar_url(name: str) -> str:
    """Generated avatar image for a name (users and wishlist rewards)."""
    return f"https://ui-avatars.com/api/?name={quote(name)}&background=random"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class UserRole(str, Enum):
    """Roster role. Parents manage the household, kids earn points."""
    PARENT = "PARENT"
    KID = "KID"


class ChoreFrequency(str, Enum):
    """How often a chore comes back."""
    DAILY = "daily"
    WEEKLY = "weekly"
    ONCE = "once"


class TimeOfDay(str, Enum):
    """Display grouping for chores on the family wall."""
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    ALL_DAY = "all_day"


class CalendarEventType(str, Enum):
    FAMILY = "family"
    BIRTHDAY = "birthday"
    SPORTS = "sports"
    SCHOOL = "school"


class CalendarSourceType(str, Enum):
    PERSONAL = "personal"
    FAMILY = "family"


class MealType(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"


# =============================================================================
# PEOPLE
# =============================================================================

class User(BaseModel):
    """
    A member of the household roster.

    `points` is the spendable balance. `total_points_earned` is the
    lifetime counter shown on the leaderboard.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=lambda: new_id("u"),
        min_length=1,
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    avatar: str = Field(
        default="",
        description="Avatar image URL"
    )
    role: UserRole = Field(
        default=UserRole.KID,
    )
    points: int = Field(
        default=0,
        description="Current balance"
    )
    total_points_earned: int = Field(
        default=0,
        description="Lifetime points earned"
    )
    pin: Optional[str] = Field(
        default=None,
        pattern=r"^\d{4}$",
        description="4-digit PIN guarding a parent profile"
    )
    email: Optional[str] = Field(
        default=None,
        max_length=200,
    )

    @property
    def is_parent(self) -> bool:
        return self.role == UserRole.PARENT


# =============================================================================
# CHORES
# =============================================================================

class Chore(BaseModel):
    """
    A chore assigned to exactly one user.

    The point value is fixed for the chore's lifetime: editing a chore
    replaces the whole record and never touches a balance that was
    already paid out.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=lambda: new_id("c"),
        min_length=1,
    )
    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    description: Optional[str] = Field(
        default=None,
        max_length=1000,
    )
    points: int = Field(
        ...,
        ge=0,
        description="Points paid to the assignee on completion"
    )
    assignee_id: str = Field(
        ...,
        min_length=1,
        description="Identity of the single assigned user"
    )
    frequency: ChoreFrequency = Field(
        default=ChoreFrequency.DAILY,
    )
    time_of_day: TimeOfDay = Field(
        default=TimeOfDay.ALL_DAY,
    )
    completed: bool = False
    due_date: date = Field(
        default_factory=date.today,
    )
    icon: str = Field(
        default="",
        description="SVG markup for the chore icon"
    )


class ChoreLog(BaseModel):
    """One completion in the chore history."""

    id: str = Field(
        default_factory=lambda: new_id("log"),
    )
    chore_id: str
    chore_title: str
    user_id: str
    user_name: str
    points: int
    date: str = Field(
        default_factory=lambda: date.today().isoformat(),
        description="YYYY-MM-DD"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


# =============================================================================
# REWARDS
# =============================================================================

class Reward(BaseModel):
    """
    A reward kids can spend points on.

    With no `requested_by` it is a catalog item visible to everyone.
    With a requester and `approved=False` it is a wishlist request
    waiting for a parent.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=lambda: new_id("r"),
        min_length=1,
    )
    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    cost: int = Field(
        ...,
        ge=0,
        description="Point cost"
    )
    image: Optional[str] = None
    requested_by: Optional[str] = Field(
        default=None,
        description="User who asked for this wishlist item"
    )
    approved: bool = False
    is_shared: bool = Field(
        default=False,
        description="Cost is split among all kids when redeemed"
    )
    redeemed: bool = False

    @property
    def is_pending(self) -> bool:
        return self.requested_by is not None and not self.approved


# =============================================================================
# CALENDAR, MEALS, PHOTOS
# =============================================================================

class CalendarEvent(BaseModel):
    """A calendar entry shown on the family wall."""

    id: str = Field(
        default_factory=lambda: new_id("e"),
    )
    title: str
    start: str = Field(
        ...,
        description="ISO date or datetime"
    )
    end: str = Field(
        ...,
        description="ISO date or datetime"
    )
    type: CalendarEventType = CalendarEventType.FAMILY
    color: str = "bg-blue-100 text-blue-800 border-blue-200"


class CalendarSource(BaseModel):
    """An external calendar linked by a parent."""

    id: str = Field(
        default_factory=lambda: new_id("src-"),
    )
    calendar_id: str = Field(
        ...,
        description="Provider-side calendar identifier"
    )
    name: str
    color: str
    type: CalendarSourceType = CalendarSourceType.PERSONAL
    owner_id: str
    owner_name: str
    access_token: str = ""


class CalendarOption(BaseModel):
    """A calendar offered when linking a source. Not persisted."""

    id: str
    name: str


class AlbumOption(BaseModel):
    """A photo album offered for the slideshow. Not persisted."""

    id: str
    title: str


class PhotoConfig(BaseModel):
    """Which album feeds the slideshow."""

    album_id: Optional[str] = None
    album_name: Optional[str] = None
    access_token: Optional[str] = None


class Meal(BaseModel):
    """
    One slot in the meal planner.

    Unique by (date, type). `date` is stored as an opaque string.
    """

    id: str = Field(
        default_factory=lambda: new_id("m-"),
    )
    date: str
    type: MealType
    title: str = ""


class Photo(BaseModel):
    id: str
    url: str
    date: str
    location: Optional[str] = None


class CurrentWeather(BaseModel):
    temp: int
    code: int


class DailyForecast(BaseModel):
    date: str
    max: int
    min: int
    code: int


class WeatherData(BaseModel):
    """Read-only weather snapshot for the wall display."""

    current: CurrentWeather
    daily: list[DailyForecast] = Field(default_factory=list)


# =============================================================================
# THE RECORD STORE
# =============================================================================

class FamilyState(BaseModel):
    """
    Single source of truth for one household session.

    `current_user_id` is session-only: it is excluded from the
    persisted snapshot and always empty after a reload.
    """

    family_name: str = "My Family"
    users: list[User] = Field(default_factory=list)
    chores: list[Chore] = Field(default_factory=list)
    chore_history: list[ChoreLog] = Field(default_factory=list)
    rewards: list[Reward] = Field(default_factory=list)
    events: list[CalendarEvent] = Field(default_factory=list)
    calendar_sources: list[CalendarSource] = Field(default_factory=list)
    photo_config: PhotoConfig = Field(default_factory=PhotoConfig)
    meals: list[Meal] = Field(default_factory=list)
    photos: list[Photo] = Field(default_factory=list)
    current_user_id: Optional[str] = None

    @field_validator("family_name")
    @classmethod
    def default_blank_family_name(cls, v: str) -> str:
        return v.strip() or "My Family"

    def get_user(self, user_id: Optional[str]) -> Optional[User]:
        return next((u for u in self.users if u.id == user_id), None)

    def get_chore(self, chore_id: str) -> Optional[Chore]:
        return next((c for c in self.chores if c.id == chore_id), None)

    def get_reward(self, reward_id: str) -> Optional[Reward]:
        return next((r for r in self.rewards if r.id == reward_id), None)

    @property
    def current_user(self) -> Optional[User]:
        return self.get_user(self.current_user_id)

    @property
    def kids(self) -> list[User]:
        return [u for u in self.users if u.role == UserRole.KID]

    @property
    def parents(self) -> list[User]:
        return [u for u in self.users if u.role == UserRole.PARENT]

    @property
    def pending_rewards(self) -> list[Reward]:
        return [r for r in self.rewards if r.is_pending]

    def chores_for(self, user_id: str) -> list[Chore]:
        return [c for c in self.chores if c.assignee_id == user_id]

    def to_snapshot(self) -> dict:
        """JSON-ready dict of everything that survives a reload."""
        return self.model_dump(mode="json", exclude={"current_user_id"})
