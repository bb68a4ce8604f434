"""Data models for Signal Notes storage layer."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


class Confidence(str, Enum):
    """Confidence tier reported by the CEO detector."""

    HIGH = "HIGH"
    MED = "MED"
    LOW = "LOW"


class TopicCategory(str, Enum):
    """Kind of named entity a topic refers to."""

    PERSON = "PERSON"
    ACCOUNT = "ACCOUNT"
    TOPIC = "TOPIC"


class Priority(str, Enum):
    """Priority tier of an action, P0 being the highest."""

    P0 = "P0"
    P1 = "P1"
    P2 = "P2"


class ActionStatus(str, Enum):
    """Lifecycle state of an action."""

    SUGGESTED = "suggested"  # Pending user acceptance
    ACTIVE = "active"
    DONE = "done"


class StandingCadence(str, Enum):
    """How often a standing action recurs."""

    WEEKLY = "weekly"


OPEN_STATUSES = (ActionStatus.ACTIVE, ActionStatus.SUGGESTED)


@dataclass
class Settings:
    """Who the important party is, threaded explicitly into LLM calls."""

    ceo_first_name: str | None = None
    ceo_aliases: list[str] = field(default_factory=list)
    context_prompt: str | None = None
    updated_at: datetime = field(default_factory=_utc_now)


@dataclass
class Note:
    """A dated meeting note."""

    id: UUID = field(default_factory=uuid4)
    title: str = ""
    subtitle: str | None = None
    date: datetime = field(default_factory=_utc_now)
    content: str = ""
    ceo_mentioned: bool = False
    ceo_confidence: Confidence | None = None
    ceo_evidence: str | None = None
    created_at: datetime = field(default_factory=_utc_now)


@dataclass
class Topic:
    """A normalized person, account or subject."""

    id: UUID = field(default_factory=uuid4)
    name: str = ""
    norm_key: str = ""
    category: TopicCategory = TopicCategory.TOPIC
    frequency: float = 0.0
    last_mentioned: datetime | None = None
    created_at: datetime = field(default_factory=_utc_now)


@dataclass
class TopicMention:
    """One mention of a topic in one note. Never updated after creation."""

    id: UUID = field(default_factory=uuid4)
    topic_id: UUID = field(default_factory=uuid4)
    note_id: UUID = field(default_factory=uuid4)
    weight: float = 1.0
    is_ask: bool = False
    is_nudge: bool = False
    created_at: datetime = field(default_factory=_utc_now)

    # Populated when fetching
    ceo_mentioned: bool = False


@dataclass
class Evidence:
    """Excerpt of the note an action was derived from."""

    id: UUID = field(default_factory=uuid4)
    action_id: UUID = field(default_factory=uuid4)
    note_id: UUID = field(default_factory=uuid4)
    excerpt: str = ""
    created_at: datetime = field(default_factory=_utc_now)


@dataclass
class Action:
    """A unit of work, ranked by sort_score."""

    id: UUID = field(default_factory=uuid4)
    activity: str = ""
    priority: Priority = Priority.P1
    due_date: datetime | None = None
    status: ActionStatus = ActionStatus.SUGGESTED
    is_ceo_related: bool = False
    is_standing: bool = False
    standing_cadence: StandingCadence | None = None
    sort_score: float = 0.0
    created_at: datetime = field(default_factory=_utc_now)
    completed_at: datetime | None = None
    last_completed_at: datetime | None = None
    completion_history: list[datetime] = field(default_factory=list)
    note_id: UUID | None = None
    macro_goal_id: UUID | None = None

    # Related data (populated when fetching)
    topics: list[Topic] = field(default_factory=list)
    evidence: list[Evidence] = field(default_factory=list)


@dataclass
class MacroGoal:
    """A strategic goal, inferred or written by the user."""

    id: UUID = field(default_factory=uuid4)
    goal: str = ""
    topic_keys: list[str] = field(default_factory=list)
    edited_by_user: bool = False
    created_at: datetime = field(default_factory=_utc_now)
