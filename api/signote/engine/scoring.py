"""Action scoring: a composite priority from independent weighted signals."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import UUID

from signote.engine.dates import as_utc, utc_date, whole_days_between
from signote.storage import OPEN_STATUSES, Action, Database

logger = logging.getLogger(__name__)

CEO_BOOST = 1000.0
STANDING_BOOST = 500.0

OVERDUE_BOOST = 200.0
DUE_TODAY_BOOST = 150.0
DUE_TOMORROW_BOOST = 100.0
DUE_SOON_BOOST = 50.0
DUE_SOON_DAYS = 3

AGE_POINTS_PER_DAY = 5.0
AGE_BOOST_CAP = 100.0


def due_date_boost(due_date: datetime | None, now: datetime) -> float:
    """Urgency from the due date. Exactly one bucket applies.

    Buckets compare UTC calendar dates, so a due time earlier on the same day
    counts as due today rather than overdue.
    """
    if due_date is None:
        return 0.0

    days_until = (utc_date(due_date) - utc_date(now)).days
    if days_until < 0:
        return OVERDUE_BOOST
    if days_until == 0:
        return DUE_TODAY_BOOST
    if days_until == 1:
        return DUE_TOMORROW_BOOST
    if days_until <= DUE_SOON_DAYS:
        return DUE_SOON_BOOST
    return 0.0


def age_boost(created_at: datetime, now: datetime) -> float:
    """Older open actions drift upward, capped."""
    days_open = max(whole_days_between(now, created_at), 0)
    return min(days_open * AGE_POINTS_PER_DAY, AGE_BOOST_CAP)


def score_action(action: Action, now: datetime) -> float:
    """Score an action whose topics are already loaded."""
    score = 0.0

    if action.is_ceo_related:
        score += CEO_BOOST
    if action.is_standing:
        score += STANDING_BOOST

    score += sum(topic.frequency for topic in action.topics)
    score += due_date_boost(action.due_date, now)
    score += age_boost(action.created_at, now)

    return score


async def calculate_action_score(
    db: Database,
    action_id: UUID,
    *,
    now: datetime | None = None,
) -> float:
    """Score one action. A missing action scores 0.0."""
    now = as_utc(now) if now else datetime.now(UTC)

    action = await db.get_action(action_id)
    if action is None:
        return 0.0
    return score_action(action, now)


async def recalculate_action_scores(
    db: Database,
    action_id: UUID | None = None,
    *,
    now: datetime | None = None,
) -> dict[UUID, float]:
    """Recompute and persist sort scores.

    With an action_id only that action is rescored; otherwise every active
    and suggested action is. The first failure aborts the batch.
    """
    now = as_utc(now) if now else datetime.now(UTC)

    if action_id is not None:
        action = await db.get_action(action_id)
        actions = [action] if action else []
    else:
        actions = await db.list_actions(statuses=OPEN_STATUSES, with_topics=True)

    scores = {}
    for action in actions:
        score = score_action(action, now)
        await db.update_action_score(action.id, score)
        scores[action.id] = score

    logger.info(f"Recalculated scores for {len(scores)} actions")
    return scores
