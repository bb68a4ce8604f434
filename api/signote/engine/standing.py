"""Standing actions: recurring CEO asks turned into weekly obligations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

from signote.engine.dates import as_utc, next_monday
from signote.engine.frequency import window_start
from signote.storage import (
    Action,
    ActionStatus,
    Database,
    Priority,
    StandingCadence,
    TopicMention,
)

logger = logging.getLogger(__name__)

ASK_THRESHOLD = 3
RECENT_ASK_DAYS = 14
STANDING_ACTIVITY = "Send CEO update on {topic_name}"


@dataclass
class AskPattern:
    """Asks and nudges about one topic from CEO notes in the window."""

    topic_id: UUID
    ask_count: int
    last_ask: datetime


def group_asks(mentions: list[TopicMention]) -> dict[UUID, AskPattern]:
    """Count asks per topic and track the most recent one."""
    patterns: dict[UUID, AskPattern] = {}
    for mention in mentions:
        created_at = as_utc(mention.created_at)
        pattern = patterns.get(mention.topic_id)
        if pattern is None:
            patterns[mention.topic_id] = AskPattern(mention.topic_id, 1, created_at)
            continue
        pattern.ask_count += 1
        if created_at > pattern.last_ask:
            pattern.last_ask = created_at
    return patterns


def is_standing_pattern(pattern: AskPattern, now: datetime) -> bool:
    """Asked often enough, and recently enough."""
    recent_cutoff = now - timedelta(days=RECENT_ASK_DAYS)
    return pattern.ask_count >= ASK_THRESHOLD and pattern.last_ask >= recent_cutoff


async def detect_standing_actions(
    db: Database,
    *,
    now: datetime | None = None,
) -> list[Action]:
    """Create a standing action for each topic the CEO keeps asking about.

    A topic that already has a standing action, in any status, is left
    alone so a completed one is not resurrected. Returns the new actions.
    """
    now = as_utc(now) if now else datetime.now(UTC)

    mentions = await db.list_mentions(
        since=window_start(now),
        ceo_only=True,
        asks_or_nudges_only=True,
    )
    patterns = group_asks(mentions)

    created = []
    for topic_id, pattern in patterns.items():
        if not is_standing_pattern(pattern, now):
            continue
        if await db.find_standing_action(topic_id):
            continue

        topic = await db.get_topic(topic_id)
        if topic is None:
            continue

        action = await db.create_action(
            Action(
                activity=STANDING_ACTIVITY.format(topic_name=topic.name),
                priority=Priority.P0,
                due_date=next_monday(now),
                status=ActionStatus.ACTIVE,
                is_ceo_related=True,
                is_standing=True,
                standing_cadence=StandingCadence.WEEKLY,
                created_at=now,
            )
        )
        await db.link_action_topic(action.id, topic_id)
        created.append(action)

        logger.info(
            f"Created standing action for topic {topic.norm_key} "
            f"({pattern.ask_count} asks, due {action.due_date:%Y-%m-%d})"
        )

    return created


async def complete_standing(
    db: Database,
    action_id: UUID,
    *,
    now: datetime | None = None,
) -> Action | None:
    """Mark a standing action done and record the completion.

    The due date is not rolled forward and no new cycle is created; a new
    standing action only appears if detection finds the pattern again.
    Returns None without effect if the action is missing or not standing.
    """
    now = as_utc(now) if now else datetime.now(UTC)

    action = await db.get_action(action_id)
    if action is None or not action.is_standing:
        return None

    action.completion_history = [*action.completion_history, now]
    action.status = ActionStatus.DONE
    action.completed_at = now
    action.last_completed_at = now
    await db.update_action(action)

    logger.info(
        f"Completed standing action {action_id} "
        f"({len(action.completion_history)} completions)"
    )
    return action
