"""Storage layer - SQLite records for notes, topics, actions and goals."""

from signote.storage.database import (
    Database,
    get_database,
    init_database,
    reset_database,
)
from signote.storage.models import (
    OPEN_STATUSES,
    Action,
    ActionStatus,
    Confidence,
    Evidence,
    MacroGoal,
    Note,
    Priority,
    Settings,
    StandingCadence,
    Topic,
    TopicCategory,
    TopicMention,
)

__all__ = [
    # Database
    "Database",
    "get_database",
    "init_database",
    "reset_database",
    # Models
    "OPEN_STATUSES",
    "Action",
    "ActionStatus",
    "Confidence",
    "Evidence",
    "MacroGoal",
    "Note",
    "Priority",
    "Settings",
    "StandingCadence",
    "Topic",
    "TopicCategory",
    "TopicMention",
]
