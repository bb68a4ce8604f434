"""Macro goals: inference from aggregate statistics and topic-overlap assignment."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from signote.engine.dates import as_utc
from signote.engine.frequency import WINDOW_DAYS, window_start
from signote.processing.extraction import (
    GoalInferrer,
    InferredGoal,
    get_goal_inferrer,
    normalize_key,
)
from signote.storage import (
    OPEN_STATUSES,
    Action,
    ActionStatus,
    Database,
    MacroGoal,
    Settings,
)

logger = logging.getLogger(__name__)

TOP_TOPICS = 20
MAX_ACTION_PATTERNS = 30


@dataclass
class GoalUpdate:
    """Outcome of one goal inference and assignment pass."""

    goals_removed: int
    goals_created: int
    actions_assigned: int


async def build_goal_statistics(
    db: Database,
    *,
    now: datetime,
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Summarize the window for the goal inferrer.

    Returns (topic_summary, action_patterns). Raw note text is never included.
    """
    since = window_start(now)

    topic_summary = []
    for topic in await db.list_topics(mentioned_since=since, limit=TOP_TOPICS):
        mentions = await db.list_mentions(topic_id=topic.id, since=since)
        topic_summary.append(
            {
                "name": topic.name,
                "normKey": topic.norm_key,
                "frequency": round(topic.frequency, 2),
                "ceoMentions": sum(1 for m in mentions if m.ceo_mentioned),
                "totalMentions": len(mentions),
                "asks": sum(1 for m in mentions if m.is_ask),
                "actionCount": await db.count_topic_actions(topic.id),
            }
        )

    actions = await db.list_actions(
        statuses=[ActionStatus.ACTIVE, ActionStatus.DONE, ActionStatus.SUGGESTED],
        created_since=since,
        with_topics=True,
        limit=MAX_ACTION_PATTERNS,
    )
    action_patterns = [
        {
            "activity": action.activity,
            "priority": action.priority.value,
            "isCeoRelated": action.is_ceo_related,
            "topics": [topic.name for topic in action.topics],
        }
        for action in actions
    ]

    return topic_summary, action_patterns


async def replace_macro_goals(
    db: Database,
    inferred: list[InferredGoal],
    *,
    now: datetime | None = None,
) -> tuple[int, list[MacroGoal]]:
    """Delete all non-user-edited goals, then store the inferred ones.

    User-edited goals are never touched. Returns (removed_count, created).
    """
    now = as_utc(now) if now else datetime.now(UTC)

    removed = await db.delete_auto_goals()
    created = [
        await db.create_goal(
            MacroGoal(goal=g.goal, topic_keys=list(g.topic_keys), created_at=now)
        )
        for g in inferred
    ]

    logger.info(f"Replaced {removed} auto-generated goals with {len(created)} new ones")
    return removed, created


def build_key_index(goals: list[MacroGoal]) -> dict[str, list[int]]:
    """Map each normalized topic key to the positions of the goals listing it."""
    index: dict[str, list[int]] = defaultdict(list)
    for position, goal in enumerate(goals):
        for key in {normalize_key(k) for k in goal.topic_keys}:
            index[key].append(position)
    return index


def best_goal_for(
    action: Action,
    goals: list[MacroGoal],
    index: dict[str, list[int]],
) -> MacroGoal | None:
    """The goal sharing the most topic keys with the action.

    Ties go to the earlier goal; zero overlap gives None.
    """
    overlap = [0] * len(goals)
    for key in {normalize_key(topic.norm_key) for topic in action.topics}:
        for position in index.get(key, ()):
            overlap[position] += 1

    best_position = None
    best_overlap = 0
    for position, count in enumerate(overlap):
        if count > best_overlap:
            best_position, best_overlap = position, count

    return goals[best_position] if best_position is not None else None


async def assign_actions_to_goals(db: Database) -> int:
    """Give each unassigned open action its best-matching goal.

    Existing assignments are never changed. Returns the number assigned.
    """
    goals = await db.list_goals()
    if not goals:
        return 0

    index = build_key_index(goals)
    actions = await db.list_actions(
        statuses=OPEN_STATUSES,
        unassigned_only=True,
        with_topics=True,
    )

    assigned = 0
    for action in actions:
        goal = best_goal_for(action, goals, index)
        if goal and await db.assign_action_goal(action.id, goal.id):
            logger.debug(f"Assigned action {action.id} to goal '{goal.goal}'")
            assigned += 1

    logger.info(f"Assigned {assigned} of {len(actions)} unassigned actions to goals")
    return assigned


async def update_macro_goals(
    db: Database,
    *,
    settings: Settings,
    inferrer: GoalInferrer | None = None,
    now: datetime | None = None,
) -> GoalUpdate:
    """Infer goals, replace the auto-generated ones, then assign actions.

    An inferrer that yields nothing still clears the auto-generated goals.
    """
    now = as_utc(now) if now else datetime.now(UTC)
    inferrer = inferrer or get_goal_inferrer()

    topic_summary, action_patterns = await build_goal_statistics(db, now=now)
    inferred = await inferrer.infer_goals(
        topic_summary,
        action_patterns,
        settings=settings,
        window_days=WINDOW_DAYS,
    )

    removed, created = await replace_macro_goals(db, inferred, now=now)
    assigned = await assign_actions_to_goals(db)

    return GoalUpdate(
        goals_removed=removed,
        goals_created=len(created),
        actions_assigned=assigned,
    )
