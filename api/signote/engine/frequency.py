"""Topic frequency: a decayed, weighted mention count over a rolling window."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from signote.engine.dates import as_utc, whole_days_between
from signote.storage import Database, TopicMention

logger = logging.getLogger(__name__)

WINDOW_DAYS = 28
CEO_MULTIPLIER = 3.0
ASK_BONUS = 2.0
NUDGE_BONUS = 1.0
# A mention at the edge of the window keeps this fraction of its weight
MAX_DECAY = 0.5


def window_start(now: datetime) -> datetime:
    return now - timedelta(days=WINDOW_DAYS)


def mention_weight(mention: TopicMention) -> float:
    """Base weight boosted by the CEO, ask and nudge signals."""
    weight = mention.weight
    if mention.ceo_mentioned:
        weight *= CEO_MULTIPLIER
    if mention.is_ask:
        weight += ASK_BONUS
    if mention.is_nudge:
        weight += NUDGE_BONUS
    return weight


def recency_multiplier(created_at: datetime, now: datetime) -> float:
    """Linear decay from 1.0 today to 0.5 at the window edge."""
    days_ago = min(max(whole_days_between(now, created_at), 0), WINDOW_DAYS)
    return 1 - (days_ago / WINDOW_DAYS) * MAX_DECAY


def mention_contribution(mention: TopicMention, now: datetime) -> float:
    """What one mention adds to its topic's frequency at time now."""
    if as_utc(mention.created_at) < window_start(as_utc(now)):
        return 0.0
    return mention_weight(mention) * recency_multiplier(mention.created_at, now)


async def calculate_topic_frequency(
    db: Database,
    topic_id: UUID,
    *,
    now: datetime | None = None,
) -> float:
    """Sum of decayed mention weights for a topic. Zero mentions gives 0.0."""
    now = as_utc(now) if now else datetime.now(UTC)
    mentions = await db.list_mentions(topic_id=topic_id, since=window_start(now))
    return sum(mention_contribution(m, now) for m in mentions)


async def update_all_topic_frequencies(
    db: Database,
    *,
    now: datetime | None = None,
) -> int:
    """Recompute and overwrite the frequency of every topic.

    Returns the number of topics updated.
    """
    now = as_utc(now) if now else datetime.now(UTC)
    topics = await db.list_topics()

    for topic in topics:
        frequency = await calculate_topic_frequency(db, topic.id, now=now)
        await db.update_topic_frequency(topic.id, frequency)
        logger.debug(f"Topic {topic.norm_key}: frequency {frequency:.2f}")

    logger.info(f"Updated frequencies for {len(topics)} topics")
    return len(topics)
