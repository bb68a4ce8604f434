"""Persist a note's extraction result as topics, mentions, actions and evidence."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, time
from uuid import UUID

from signote.processing.extraction import (
    ExtractionResult,
    NoteExtractor,
    get_note_extractor,
    normalize_key,
)
from signote.storage import (
    Action,
    ActionStatus,
    Database,
    Evidence,
    Settings,
    Topic,
    TopicMention,
)

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """Counts reported after processing a note."""

    note_id: UUID
    actions_created: int
    actions_skipped: int
    topics_seen: int
    ceo_mentioned: bool


async def store_extraction(
    db: Database,
    note_id: UUID,
    extraction: ExtractionResult,
    *,
    now: datetime | None = None,
) -> IngestResult | None:
    """Write an extraction result for a note. Returns None if the note is gone."""
    now = now or datetime.now(UTC)

    note = await db.get_note(note_id)
    if note is None:
        return None

    detection = extraction.ceo_detection
    note.ceo_mentioned = detection.mentioned
    note.ceo_confidence = detection.confidence
    note.ceo_evidence = detection.evidence
    await db.update_note(note)

    topic_ids: dict[str, UUID] = {}
    for extracted in extraction.topics:
        topic = await db.get_topic_by_norm_key(extracted.norm_key)
        if topic is None:
            topic = await db.create_topic(
                Topic(
                    name=extracted.name,
                    norm_key=extracted.norm_key,
                    category=extracted.category,
                    last_mentioned=now,
                )
            )
        else:
            await db.touch_topic(topic.id, now)
        topic_ids[extracted.norm_key] = topic.id

        await db.create_mention(
            TopicMention(
                topic_id=topic.id,
                note_id=note.id,
                weight=extracted.weight,
                is_ask=extracted.is_ask,
                is_nudge=extracted.is_nudge,
                created_at=now,
            )
        )

    created = 0
    skipped = 0
    for extracted_action in extraction.actions:
        if await db.find_action_for_note(note.id, extracted_action.activity):
            logger.info(f"Skipping duplicate action: {extracted_action.activity}")
            skipped += 1
            continue

        due_date = (
            datetime.combine(extracted_action.suggested_due_date, time(), tzinfo=UTC)
            if extracted_action.suggested_due_date
            else None
        )
        action = await db.create_action(
            Action(
                activity=extracted_action.activity,
                priority=extracted_action.suggested_priority,
                due_date=due_date,
                status=ActionStatus.SUGGESTED,
                is_ceo_related=detection.mentioned,
                created_at=now,
                note_id=note.id,
            )
        )
        await db.create_evidence(
            Evidence(
                action_id=action.id,
                note_id=note.id,
                excerpt=extracted_action.evidence,
                created_at=now,
            )
        )

        # Only topics extracted from this same note can be linked
        for topic_name in extracted_action.topics:
            topic_id = topic_ids.get(normalize_key(topic_name))
            if topic_id:
                await db.link_action_topic(action.id, topic_id)

        created += 1

    logger.info(
        f"Stored extraction for note {note.id}: {created} actions created, "
        f"{skipped} duplicates skipped, {len(extraction.topics)} topics"
    )

    return IngestResult(
        note_id=note.id,
        actions_created=created,
        actions_skipped=skipped,
        topics_seen=len(extraction.topics),
        ceo_mentioned=detection.mentioned,
    )


async def process_note(
    db: Database,
    note_id: UUID,
    *,
    settings: Settings,
    extractor: NoteExtractor | None = None,
    now: datetime | None = None,
) -> IngestResult | None:
    """Run extraction on a stored note and persist the result.

    Extraction failures propagate; nothing is written for the note in that case.
    """
    note = await db.get_note(note_id)
    if note is None:
        return None

    extractor = extractor or get_note_extractor()
    extraction = await extractor.extract(
        title=note.title,
        note_date=note.date,
        subtitle=note.subtitle,
        content=note.content,
        settings=settings,
    )
    return await store_extraction(db, note_id, extraction, now=now)
