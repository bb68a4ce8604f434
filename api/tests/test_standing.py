"""Tests for standing action detection and completion."""

import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path
from uuid import uuid4

import pytest

from signote.engine.dates import next_monday
from signote.engine.standing import complete_standing, detect_standing_actions
from signote.storage import (
    Action,
    ActionStatus,
    Database,
    Note,
    Priority,
    StandingCadence,
    Topic,
    TopicMention,
)

# A Wednesday
NOW = datetime(2026, 10, 14, 15, 0, tzinfo=UTC)


@pytest.fixture
async def db():
    """Create a temporary database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        database = Database(Path(tmpdir) / "test.db")
        await database.initialize()
        yield database


@pytest.fixture
async def topic(db: Database) -> Topic:
    return await db.create_topic(Topic(name="NVIDIA", norm_key="nvidia"))


async def add_ask(
    db: Database,
    topic: Topic,
    days_ago: float,
    *,
    ceo: bool = True,
    is_ask: bool = True,
    is_nudge: bool = False,
) -> None:
    note = await db.create_note(Note(title="Staff meeting", ceo_mentioned=ceo))
    await db.create_mention(
        TopicMention(
            topic_id=topic.id,
            note_id=note.id,
            is_ask=is_ask,
            is_nudge=is_nudge,
            created_at=NOW - timedelta(days=days_ago),
        )
    )


class TestNextMonday:
    """Tests for the standing due date."""

    def test_from_wednesday(self):
        assert next_monday(NOW) == datetime(2026, 10, 19, tzinfo=UTC)

    def test_from_sunday_is_tomorrow(self):
        sunday = datetime(2026, 10, 18, 23, 59, tzinfo=UTC)

        assert next_monday(sunday) == datetime(2026, 10, 19, tzinfo=UTC)

    def test_from_monday_is_a_week_out(self):
        monday = datetime(2026, 10, 19, 0, 0, tzinfo=UTC)

        assert next_monday(monday) == datetime(2026, 10, 26, tzinfo=UTC)


class TestDetectStandingActions:
    """Tests for detecting recurring CEO asks."""

    async def test_two_asks_are_not_enough(self, db: Database, topic: Topic):
        await add_ask(db, topic, 1)
        await add_ask(db, topic, 2)

        assert await detect_standing_actions(db, now=NOW) == []

    async def test_three_asks_create_standing_action(self, db: Database, topic: Topic):
        """Test that three recent CEO asks create one weekly P0 action."""
        await add_ask(db, topic, 20)
        await add_ask(db, topic, 15)
        await add_ask(db, topic, 10)

        created = await detect_standing_actions(db, now=NOW)

        assert len(created) == 1
        action = await db.get_action(created[0].id)
        assert action is not None
        assert action.activity == "Send CEO update on NVIDIA"
        assert action.priority == Priority.P0
        assert action.status == ActionStatus.ACTIVE
        assert action.is_ceo_related is True
        assert action.is_standing is True
        assert action.standing_cadence == StandingCadence.WEEKLY
        assert action.due_date == datetime(2026, 10, 19, tzinfo=UTC)
        assert [t.id for t in action.topics] == [topic.id]

    async def test_nudges_count_as_asks(self, db: Database, topic: Topic):
        await add_ask(db, topic, 1, is_ask=False, is_nudge=True)
        await add_ask(db, topic, 2, is_ask=False, is_nudge=True)
        await add_ask(db, topic, 3)

        assert len(await detect_standing_actions(db, now=NOW)) == 1

    async def test_detection_is_idempotent(self, db: Database, topic: Topic):
        for days_ago in (1, 2, 3):
            await add_ask(db, topic, days_ago)

        await detect_standing_actions(db, now=NOW)
        second = await detect_standing_actions(db, now=NOW)

        assert second == []
        assert len(await db.list_actions()) == 1

    async def test_stale_pattern_is_ignored(self, db: Database, topic: Topic):
        """Test that the most recent ask must fall within 14 days."""
        await add_ask(db, topic, 25)
        await add_ask(db, topic, 20)
        await add_ask(db, topic, 15)

        assert await detect_standing_actions(db, now=NOW) == []

    async def test_asks_outside_window_are_ignored(self, db: Database, topic: Topic):
        await add_ask(db, topic, 40)
        await add_ask(db, topic, 30)
        await add_ask(db, topic, 1)

        assert await detect_standing_actions(db, now=NOW) == []

    async def test_non_ceo_notes_are_ignored(self, db: Database, topic: Topic):
        for days_ago in (1, 2, 3):
            await add_ask(db, topic, days_ago, ceo=False)

        assert await detect_standing_actions(db, now=NOW) == []

    async def test_plain_mentions_are_ignored(self, db: Database, topic: Topic):
        for days_ago in (1, 2, 3):
            await add_ask(db, topic, days_ago, is_ask=False)

        assert await detect_standing_actions(db, now=NOW) == []

    async def test_completed_standing_action_is_not_recreated(
        self, db: Database, topic: Topic
    ):
        for days_ago in (1, 2, 3):
            await add_ask(db, topic, days_ago)
        created = await detect_standing_actions(db, now=NOW)
        await complete_standing(db, created[0].id, now=NOW)

        assert await detect_standing_actions(db, now=NOW + timedelta(days=1)) == []


class TestCompleteStanding:
    """Tests for completing a standing action."""

    async def test_records_completion(self, db: Database):
        due = datetime(2026, 10, 19, tzinfo=UTC)
        action = await db.create_action(
            Action(
                activity="Send CEO update on NVIDIA",
                is_standing=True,
                status=ActionStatus.ACTIVE,
                due_date=due,
            )
        )

        completed = await complete_standing(db, action.id, now=NOW)

        assert completed is not None
        stored = await db.get_action(action.id)
        assert stored is not None
        assert stored.status == ActionStatus.DONE
        assert stored.completed_at == NOW
        assert stored.last_completed_at == NOW
        assert stored.completion_history == [NOW]
        assert stored.due_date == due

    async def test_appends_to_history(self, db: Database):
        earlier = NOW - timedelta(days=7)
        action = await db.create_action(
            Action(activity="weekly", is_standing=True, completion_history=[earlier])
        )

        completed = await complete_standing(db, action.id, now=NOW)

        assert completed is not None
        assert completed.completion_history == [earlier, NOW]

    async def test_non_standing_action_is_untouched(self, db: Database):
        action = await db.create_action(Action(activity="one-off", status=ActionStatus.ACTIVE))

        assert await complete_standing(db, action.id, now=NOW) is None
        stored = await db.get_action(action.id)
        assert stored is not None
        assert stored.status == ActionStatus.ACTIVE

    async def test_missing_action(self, db: Database):
        assert await complete_standing(db, uuid4(), now=NOW) is None
