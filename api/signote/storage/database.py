"""Async SQLite database connection and schema management."""

import json
import os
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path
from uuid import UUID

import aiosqlite

from signote.storage.models import (
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

# Default database path
DEFAULT_DB_PATH = Path("data/signal_notes.db")

# Schema version for migrations
SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

-- Single-row user settings
CREATE TABLE IF NOT EXISTS settings (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    ceo_first_name TEXT,
    ceo_aliases TEXT NOT NULL DEFAULT '[]',  -- JSON array
    context_prompt TEXT,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS notes (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    subtitle TEXT,
    date TEXT NOT NULL,
    content TEXT NOT NULL DEFAULT '',
    ceo_mentioned INTEGER NOT NULL DEFAULT 0,
    ceo_confidence TEXT CHECK (ceo_confidence IN ('HIGH', 'MED', 'LOW')),
    ceo_evidence TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS topics (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    norm_key TEXT NOT NULL UNIQUE,
    category TEXT NOT NULL CHECK (category IN ('PERSON', 'ACCOUNT', 'TOPIC')),
    frequency REAL NOT NULL DEFAULT 0.0,
    last_mentioned TEXT,
    created_at TEXT NOT NULL
);

-- Append-only mention log, aggregated over a rolling window
CREATE TABLE IF NOT EXISTS topic_mentions (
    id TEXT PRIMARY KEY,
    topic_id TEXT NOT NULL REFERENCES topics(id) ON DELETE CASCADE,
    note_id TEXT NOT NULL REFERENCES notes(id) ON DELETE CASCADE,
    weight REAL NOT NULL DEFAULT 1.0,
    is_ask INTEGER NOT NULL DEFAULT 0,
    is_nudge INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS macro_goals (
    id TEXT PRIMARY KEY,
    goal TEXT NOT NULL,
    topic_keys TEXT NOT NULL DEFAULT '[]',  -- JSON array of topic norm keys
    edited_by_user INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS actions (
    id TEXT PRIMARY KEY,
    activity TEXT NOT NULL,
    priority TEXT NOT NULL CHECK (priority IN ('P0', 'P1', 'P2')),
    due_date TEXT,
    status TEXT NOT NULL CHECK (status IN ('suggested', 'active', 'done')),
    is_ceo_related INTEGER NOT NULL DEFAULT 0,
    is_standing INTEGER NOT NULL DEFAULT 0,
    standing_cadence TEXT CHECK (standing_cadence IN ('weekly')),
    sort_score REAL NOT NULL DEFAULT 0.0,
    created_at TEXT NOT NULL,
    completed_at TEXT,
    last_completed_at TEXT,
    completion_history TEXT NOT NULL DEFAULT '[]',  -- JSON array of timestamps
    note_id TEXT REFERENCES notes(id) ON DELETE SET NULL,
    macro_goal_id TEXT REFERENCES macro_goals(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS action_topics (
    action_id TEXT NOT NULL REFERENCES actions(id) ON DELETE CASCADE,
    topic_id TEXT NOT NULL REFERENCES topics(id) ON DELETE CASCADE,
    PRIMARY KEY (action_id, topic_id)
);

CREATE TABLE IF NOT EXISTS evidence (
    id TEXT PRIMARY KEY,
    action_id TEXT NOT NULL REFERENCES actions(id) ON DELETE CASCADE,
    note_id TEXT NOT NULL REFERENCES notes(id) ON DELETE CASCADE,
    excerpt TEXT NOT NULL,
    created_at TEXT NOT NULL
);

-- Indexes for common queries
CREATE INDEX IF NOT EXISTS idx_notes_date ON notes(date DESC);
CREATE INDEX IF NOT EXISTS idx_topics_frequency ON topics(frequency DESC);
CREATE INDEX IF NOT EXISTS idx_topic_mentions_topic_id ON topic_mentions(topic_id);
CREATE INDEX IF NOT EXISTS idx_topic_mentions_created_at ON topic_mentions(created_at);
CREATE INDEX IF NOT EXISTS idx_actions_status ON actions(status);
CREATE INDEX IF NOT EXISTS idx_actions_sort_score ON actions(sort_score DESC);
CREATE INDEX IF NOT EXISTS idx_actions_macro_goal_id ON actions(macro_goal_id);
CREATE INDEX IF NOT EXISTS idx_action_topics_topic_id ON action_topics(topic_id);
CREATE INDEX IF NOT EXISTS idx_evidence_action_id ON evidence(action_id);
"""


def to_db_time(value: datetime) -> str:
    """Serialize a datetime as a sortable UTC ISO-8601 string.

    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _from_db_time(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class Database:
    """Async SQLite database connection manager."""

    def __init__(self, db_path: Path = DEFAULT_DB_PATH):
        self.db_path = db_path

    async def initialize(self) -> None:
        """Initialize the database and apply schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        async with self.connect() as db:
            await db.executescript(SCHEMA_SQL)
            await db.execute(
                """
                INSERT OR REPLACE INTO schema_version (version, applied_at)
                VALUES (?, ?)
                """,
                (SCHEMA_VERSION, to_db_time(datetime.now(UTC))),
            )
            await db.commit()

    @asynccontextmanager
    async def connect(self) -> AsyncGenerator[aiosqlite.Connection, None]:
        """Get a database connection."""
        db = await aiosqlite.connect(self.db_path)
        db.row_factory = aiosqlite.Row
        try:
            await db.execute("PRAGMA foreign_keys = ON")
            yield db
        finally:
            await db.close()

    # ============== Settings ==============

    async def get_settings(self) -> Settings:
        """Get the settings row, creating an empty one on first access."""
        async with self.connect() as db:
            cursor = await db.execute("SELECT * FROM settings WHERE id = 1")
            row = await cursor.fetchone()
            if row:
                return self._row_to_settings(row)

            settings = Settings()
            await db.execute(
                "INSERT INTO settings (id, ceo_aliases, updated_at) VALUES (1, '[]', ?)",
                (to_db_time(settings.updated_at),),
            )
            await db.commit()
            return settings

    async def update_settings(self, settings: Settings) -> Settings:
        """Replace the settings row."""
        settings.updated_at = datetime.now(UTC)
        async with self.connect() as db:
            await db.execute(
                """
                INSERT OR REPLACE INTO settings
                    (id, ceo_first_name, ceo_aliases, context_prompt, updated_at)
                VALUES (1, ?, ?, ?, ?)
                """,
                (
                    settings.ceo_first_name,
                    json.dumps(settings.ceo_aliases),
                    settings.context_prompt,
                    to_db_time(settings.updated_at),
                ),
            )
            await db.commit()
        return settings

    # ============== Note CRUD ==============

    async def create_note(self, note: Note) -> Note:
        """Create a new note."""
        async with self.connect() as db:
            await db.execute(
                """
                INSERT INTO notes (id, title, subtitle, date, content, ceo_mentioned,
                                   ceo_confidence, ceo_evidence, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(note.id),
                    note.title,
                    note.subtitle,
                    to_db_time(note.date),
                    note.content,
                    1 if note.ceo_mentioned else 0,
                    note.ceo_confidence.value if note.ceo_confidence else None,
                    note.ceo_evidence,
                    to_db_time(note.created_at),
                ),
            )
            await db.commit()
        return note

    async def get_note(self, note_id: UUID) -> Note | None:
        """Get a note by ID."""
        async with self.connect() as db:
            cursor = await db.execute("SELECT * FROM notes WHERE id = ?", (str(note_id),))
            row = await cursor.fetchone()
            return self._row_to_note(row) if row else None

    async def list_notes(self, *, limit: int = 100, offset: int = 0) -> list[Note]:
        """List notes, newest first."""
        async with self.connect() as db:
            cursor = await db.execute(
                "SELECT * FROM notes ORDER BY date DESC LIMIT ? OFFSET ?",
                (limit, offset),
            )
            rows = await cursor.fetchall()
            return [self._row_to_note(row) for row in rows]

    async def update_note(self, note: Note) -> bool:
        """Update an existing note, including its CEO detection fields."""
        async with self.connect() as db:
            cursor = await db.execute(
                """
                UPDATE notes SET
                    title = ?,
                    subtitle = ?,
                    date = ?,
                    content = ?,
                    ceo_mentioned = ?,
                    ceo_confidence = ?,
                    ceo_evidence = ?
                WHERE id = ?
                """,
                (
                    note.title,
                    note.subtitle,
                    to_db_time(note.date),
                    note.content,
                    1 if note.ceo_mentioned else 0,
                    note.ceo_confidence.value if note.ceo_confidence else None,
                    note.ceo_evidence,
                    str(note.id),
                ),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def delete_note(self, note_id: UUID) -> bool:
        """Delete a note and its mentions and evidence."""
        async with self.connect() as db:
            cursor = await db.execute("DELETE FROM notes WHERE id = ?", (str(note_id),))
            await db.commit()
            return cursor.rowcount > 0

    # ============== Topics ==============

    async def create_topic(self, topic: Topic) -> Topic:
        """Create a new topic. The norm key must not exist yet."""
        async with self.connect() as db:
            await db.execute(
                """
                INSERT INTO topics (id, name, norm_key, category, frequency,
                                    last_mentioned, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(topic.id),
                    topic.name,
                    topic.norm_key,
                    topic.category.value,
                    topic.frequency,
                    to_db_time(topic.last_mentioned) if topic.last_mentioned else None,
                    to_db_time(topic.created_at),
                ),
            )
            await db.commit()
        return topic

    async def get_topic(self, topic_id: UUID) -> Topic | None:
        """Get a topic by ID."""
        async with self.connect() as db:
            cursor = await db.execute("SELECT * FROM topics WHERE id = ?", (str(topic_id),))
            row = await cursor.fetchone()
            return self._row_to_topic(row) if row else None

    async def get_topic_by_norm_key(self, norm_key: str) -> Topic | None:
        """Get a topic by its normalized key."""
        async with self.connect() as db:
            cursor = await db.execute(
                "SELECT * FROM topics WHERE norm_key = ?", (norm_key,)
            )
            row = await cursor.fetchone()
            return self._row_to_topic(row) if row else None

    async def list_topics(
        self,
        *,
        mentioned_since: datetime | None = None,
        limit: int | None = None,
    ) -> list[Topic]:
        """List topics by frequency, highest first.

        With mentioned_since, only topics with at least one mention at or after
        that time are returned.
        """
        query = "SELECT * FROM topics t WHERE 1=1"
        params: list = []

        if mentioned_since:
            query += """
                AND EXISTS (
                    SELECT 1 FROM topic_mentions m
                    WHERE m.topic_id = t.id AND m.created_at >= ?
                )
            """
            params.append(to_db_time(mentioned_since))

        query += " ORDER BY frequency DESC, created_at"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        async with self.connect() as db:
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [self._row_to_topic(row) for row in rows]

    async def update_topic_frequency(self, topic_id: UUID, frequency: float) -> bool:
        """Overwrite a topic's frequency."""
        async with self.connect() as db:
            cursor = await db.execute(
                "UPDATE topics SET frequency = ? WHERE id = ?",
                (frequency, str(topic_id)),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def touch_topic(self, topic_id: UUID, mentioned_at: datetime) -> bool:
        """Record the time a topic was last mentioned."""
        async with self.connect() as db:
            cursor = await db.execute(
                "UPDATE topics SET last_mentioned = ? WHERE id = ?",
                (to_db_time(mentioned_at), str(topic_id)),
            )
            await db.commit()
            return cursor.rowcount > 0

    # ============== Topic mentions ==============

    async def create_mention(self, mention: TopicMention) -> TopicMention:
        """Append a topic mention."""
        async with self.connect() as db:
            await db.execute(
                """
                INSERT INTO topic_mentions
                    (id, topic_id, note_id, weight, is_ask, is_nudge, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(mention.id),
                    str(mention.topic_id),
                    str(mention.note_id),
                    mention.weight,
                    1 if mention.is_ask else 0,
                    1 if mention.is_nudge else 0,
                    to_db_time(mention.created_at),
                ),
            )
            await db.commit()
        return mention

    async def list_mentions(
        self,
        *,
        topic_id: UUID | None = None,
        since: datetime | None = None,
        ceo_only: bool = False,
        asks_or_nudges_only: bool = False,
    ) -> list[TopicMention]:
        """List mentions joined with their note's CEO flag, oldest first."""
        query = """
            SELECT m.*, n.ceo_mentioned AS note_ceo_mentioned
            FROM topic_mentions m
            JOIN notes n ON m.note_id = n.id
            WHERE 1=1
        """
        params: list = []

        if topic_id:
            query += " AND m.topic_id = ?"
            params.append(str(topic_id))
        if since:
            query += " AND m.created_at >= ?"
            params.append(to_db_time(since))
        if ceo_only:
            query += " AND n.ceo_mentioned = 1"
        if asks_or_nudges_only:
            query += " AND (m.is_ask = 1 OR m.is_nudge = 1)"

        query += " ORDER BY m.created_at"

        async with self.connect() as db:
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [self._row_to_mention(row) for row in rows]

    # ============== Actions ==============

    async def create_action(self, action: Action) -> Action:
        """Create a new action."""
        async with self.connect() as db:
            await db.execute(
                """
                INSERT INTO actions
                    (id, activity, priority, due_date, status, is_ceo_related,
                     is_standing, standing_cadence, sort_score, created_at,
                     completed_at, last_completed_at, completion_history,
                     note_id, macro_goal_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(action.id),
                    action.activity,
                    action.priority.value,
                    to_db_time(action.due_date) if action.due_date else None,
                    action.status.value,
                    1 if action.is_ceo_related else 0,
                    1 if action.is_standing else 0,
                    action.standing_cadence.value if action.standing_cadence else None,
                    action.sort_score,
                    to_db_time(action.created_at),
                    to_db_time(action.completed_at) if action.completed_at else None,
                    to_db_time(action.last_completed_at)
                    if action.last_completed_at
                    else None,
                    json.dumps([to_db_time(t) for t in action.completion_history]),
                    str(action.note_id) if action.note_id else None,
                    str(action.macro_goal_id) if action.macro_goal_id else None,
                ),
            )
            await db.commit()
        return action

    async def get_action(self, action_id: UUID) -> Action | None:
        """Get an action by ID with its topics and evidence."""
        async with self.connect() as db:
            cursor = await db.execute(
                "SELECT * FROM actions WHERE id = ?", (str(action_id),)
            )
            row = await cursor.fetchone()
            if not row:
                return None

            action = self._row_to_action(row)

            cursor = await db.execute(
                """
                SELECT t.* FROM topics t
                JOIN action_topics lnk ON lnk.topic_id = t.id
                WHERE lnk.action_id = ?
                ORDER BY t.created_at
                """,
                (str(action_id),),
            )
            action.topics = [self._row_to_topic(r) for r in await cursor.fetchall()]

            cursor = await db.execute(
                "SELECT * FROM evidence WHERE action_id = ? ORDER BY created_at",
                (str(action_id),),
            )
            action.evidence = [self._row_to_evidence(r) for r in await cursor.fetchall()]

            return action

    async def list_actions(
        self,
        *,
        statuses: Sequence[ActionStatus] | None = None,
        created_since: datetime | None = None,
        macro_goal_id: UUID | None = None,
        unassigned_only: bool = False,
        with_topics: bool = False,
        limit: int | None = None,
    ) -> list[Action]:
        """List actions ordered by sort score, highest first.

        Ties are ordered newest first, then by ID, so callers slicing the list
        get a deterministic cut.
        """
        query = "SELECT * FROM actions WHERE 1=1"
        params: list = []

        if statuses:
            query += f" AND status IN ({', '.join('?' for _ in statuses)})"
            params.extend(s.value for s in statuses)
        if created_since:
            query += " AND created_at >= ?"
            params.append(to_db_time(created_since))
        if macro_goal_id:
            query += " AND macro_goal_id = ?"
            params.append(str(macro_goal_id))
        if unassigned_only:
            query += " AND macro_goal_id IS NULL"

        query += " ORDER BY sort_score DESC, created_at DESC, id"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        async with self.connect() as db:
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            actions = [self._row_to_action(row) for row in rows]

            if with_topics and actions:
                by_id = {str(a.id): a for a in actions}
                cursor = await db.execute(
                    f"""
                    SELECT lnk.action_id AS link_action_id, t.* FROM action_topics lnk
                    JOIN topics t ON lnk.topic_id = t.id
                    WHERE lnk.action_id IN ({', '.join('?' for _ in by_id)})
                    ORDER BY t.created_at
                    """,
                    list(by_id),
                )
                for row in await cursor.fetchall():
                    by_id[row["link_action_id"]].topics.append(self._row_to_topic(row))

            return actions

    async def update_action(self, action: Action) -> bool:
        """Update an action's mutable fields."""
        async with self.connect() as db:
            cursor = await db.execute(
                """
                UPDATE actions SET
                    activity = ?,
                    priority = ?,
                    due_date = ?,
                    status = ?,
                    sort_score = ?,
                    completed_at = ?,
                    last_completed_at = ?,
                    completion_history = ?,
                    macro_goal_id = ?
                WHERE id = ?
                """,
                (
                    action.activity,
                    action.priority.value,
                    to_db_time(action.due_date) if action.due_date else None,
                    action.status.value,
                    action.sort_score,
                    to_db_time(action.completed_at) if action.completed_at else None,
                    to_db_time(action.last_completed_at)
                    if action.last_completed_at
                    else None,
                    json.dumps([to_db_time(t) for t in action.completion_history]),
                    str(action.macro_goal_id) if action.macro_goal_id else None,
                    str(action.id),
                ),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def update_action_score(self, action_id: UUID, sort_score: float) -> bool:
        """Overwrite an action's sort score."""
        async with self.connect() as db:
            cursor = await db.execute(
                "UPDATE actions SET sort_score = ? WHERE id = ?",
                (sort_score, str(action_id)),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def assign_action_goal(self, action_id: UUID, macro_goal_id: UUID) -> bool:
        """Assign an action to a goal if it has none yet."""
        async with self.connect() as db:
            cursor = await db.execute(
                """
                UPDATE actions SET macro_goal_id = ?
                WHERE id = ? AND macro_goal_id IS NULL
                """,
                (str(macro_goal_id), str(action_id)),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def delete_action(self, action_id: UUID) -> bool:
        """Delete an action with its topic links and evidence."""
        async with self.connect() as db:
            cursor = await db.execute(
                "DELETE FROM actions WHERE id = ?", (str(action_id),)
            )
            await db.commit()
            return cursor.rowcount > 0

    async def find_action_for_note(self, note_id: UUID, activity: str) -> Action | None:
        """Find an action with this exact activity derived from a note."""
        async with self.connect() as db:
            cursor = await db.execute(
                "SELECT * FROM actions WHERE note_id = ? AND activity = ? LIMIT 1",
                (str(note_id), activity),
            )
            row = await cursor.fetchone()
            return self._row_to_action(row) if row else None

    async def find_standing_action(self, topic_id: UUID) -> Action | None:
        """Find a standing action linked to a topic, in any status."""
        async with self.connect() as db:
            cursor = await db.execute(
                """
                SELECT a.* FROM actions a
                JOIN action_topics lnk ON lnk.action_id = a.id
                WHERE a.is_standing = 1 AND lnk.topic_id = ?
                ORDER BY a.created_at
                LIMIT 1
                """,
                (str(topic_id),),
            )
            row = await cursor.fetchone()
            return self._row_to_action(row) if row else None

    async def link_action_topic(self, action_id: UUID, topic_id: UUID) -> None:
        """Link an action to a topic."""
        async with self.connect() as db:
            await db.execute(
                "INSERT OR IGNORE INTO action_topics (action_id, topic_id) VALUES (?, ?)",
                (str(action_id), str(topic_id)),
            )
            await db.commit()

    async def count_topic_actions(self, topic_id: UUID) -> int:
        """Count actions linked to a topic, in any status."""
        async with self.connect() as db:
            cursor = await db.execute(
                "SELECT COUNT(*) FROM action_topics WHERE topic_id = ?",
                (str(topic_id),),
            )
            row = await cursor.fetchone()
            return int(row[0]) if row else 0

    # ============== Evidence ==============

    async def create_evidence(self, evidence: Evidence) -> Evidence:
        """Attach an evidence excerpt to an action."""
        async with self.connect() as db:
            await db.execute(
                """
                INSERT INTO evidence (id, action_id, note_id, excerpt, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    str(evidence.id),
                    str(evidence.action_id),
                    str(evidence.note_id),
                    evidence.excerpt,
                    to_db_time(evidence.created_at),
                ),
            )
            await db.commit()
        return evidence

    # ============== Macro goals ==============

    async def create_goal(self, goal: MacroGoal) -> MacroGoal:
        """Create a macro goal."""
        async with self.connect() as db:
            await db.execute(
                """
                INSERT INTO macro_goals (id, goal, topic_keys, edited_by_user, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    str(goal.id),
                    goal.goal,
                    json.dumps(goal.topic_keys),
                    1 if goal.edited_by_user else 0,
                    to_db_time(goal.created_at),
                ),
            )
            await db.commit()
        return goal

    async def get_goal(self, goal_id: UUID) -> MacroGoal | None:
        """Get a macro goal by ID."""
        async with self.connect() as db:
            cursor = await db.execute(
                "SELECT * FROM macro_goals WHERE id = ?", (str(goal_id),)
            )
            row = await cursor.fetchone()
            return self._row_to_goal(row) if row else None

    async def list_goals(self, *, newest_first: bool = False) -> list[MacroGoal]:
        """List macro goals in creation order."""
        order = "DESC" if newest_first else "ASC"
        async with self.connect() as db:
            cursor = await db.execute(
                f"SELECT * FROM macro_goals ORDER BY created_at {order}, rowid {order}"
            )
            rows = await cursor.fetchall()
            return [self._row_to_goal(row) for row in rows]

    async def update_goal(self, goal: MacroGoal) -> bool:
        """Update a goal's text, topic keys and edited flag."""
        async with self.connect() as db:
            cursor = await db.execute(
                """
                UPDATE macro_goals SET goal = ?, topic_keys = ?, edited_by_user = ?
                WHERE id = ?
                """,
                (
                    goal.goal,
                    json.dumps(goal.topic_keys),
                    1 if goal.edited_by_user else 0,
                    str(goal.id),
                ),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def delete_goal(self, goal_id: UUID) -> bool:
        """Delete a goal; its actions become unassigned."""
        async with self.connect() as db:
            cursor = await db.execute(
                "DELETE FROM macro_goals WHERE id = ?", (str(goal_id),)
            )
            await db.commit()
            return cursor.rowcount > 0

    async def delete_auto_goals(self) -> int:
        """Delete every goal the user has not edited. Returns the count."""
        async with self.connect() as db:
            cursor = await db.execute("DELETE FROM macro_goals WHERE edited_by_user = 0")
            await db.commit()
            return cursor.rowcount

    # ============== Helpers ==============

    def _row_to_settings(self, row: aiosqlite.Row) -> Settings:
        return Settings(
            ceo_first_name=row["ceo_first_name"],
            ceo_aliases=json.loads(row["ceo_aliases"]),
            context_prompt=row["context_prompt"],
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _row_to_note(self, row: aiosqlite.Row) -> Note:
        """Convert a database row to a Note."""
        return Note(
            id=UUID(row["id"]),
            title=row["title"],
            subtitle=row["subtitle"],
            date=datetime.fromisoformat(row["date"]),
            content=row["content"],
            ceo_mentioned=bool(row["ceo_mentioned"]),
            ceo_confidence=Confidence(row["ceo_confidence"])
            if row["ceo_confidence"]
            else None,
            ceo_evidence=row["ceo_evidence"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_topic(self, row: aiosqlite.Row) -> Topic:
        """Convert a database row to a Topic."""
        return Topic(
            id=UUID(row["id"]),
            name=row["name"],
            norm_key=row["norm_key"],
            category=TopicCategory(row["category"]),
            frequency=row["frequency"],
            last_mentioned=_from_db_time(row["last_mentioned"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_mention(self, row: aiosqlite.Row) -> TopicMention:
        """Convert a joined mention row to a TopicMention."""
        return TopicMention(
            id=UUID(row["id"]),
            topic_id=UUID(row["topic_id"]),
            note_id=UUID(row["note_id"]),
            weight=row["weight"],
            is_ask=bool(row["is_ask"]),
            is_nudge=bool(row["is_nudge"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            ceo_mentioned=bool(row["note_ceo_mentioned"]),
        )

    def _row_to_action(self, row: aiosqlite.Row) -> Action:
        """Convert a database row to an Action."""
        return Action(
            id=UUID(row["id"]),
            activity=row["activity"],
            priority=Priority(row["priority"]),
            due_date=_from_db_time(row["due_date"]),
            status=ActionStatus(row["status"]),
            is_ceo_related=bool(row["is_ceo_related"]),
            is_standing=bool(row["is_standing"]),
            standing_cadence=StandingCadence(row["standing_cadence"])
            if row["standing_cadence"]
            else None,
            sort_score=row["sort_score"],
            created_at=datetime.fromisoformat(row["created_at"]),
            completed_at=_from_db_time(row["completed_at"]),
            last_completed_at=_from_db_time(row["last_completed_at"]),
            completion_history=[
                datetime.fromisoformat(t) for t in json.loads(row["completion_history"])
            ],
            note_id=UUID(row["note_id"]) if row["note_id"] else None,
            macro_goal_id=UUID(row["macro_goal_id"]) if row["macro_goal_id"] else None,
        )

    def _row_to_evidence(self, row: aiosqlite.Row) -> Evidence:
        return Evidence(
            id=UUID(row["id"]),
            action_id=UUID(row["action_id"]),
            note_id=UUID(row["note_id"]),
            excerpt=row["excerpt"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_goal(self, row: aiosqlite.Row) -> MacroGoal:
        """Convert a database row to a MacroGoal."""
        return MacroGoal(
            id=UUID(row["id"]),
            goal=row["goal"],
            topic_keys=json.loads(row["topic_keys"]),
            edited_by_user=bool(row["edited_by_user"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


# Global database instance
_db: Database | None = None


def get_database(db_path: Path | None = None) -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        env_path = os.getenv("SIGNOTE_DB_PATH")
        _db = Database(db_path or (Path(env_path) if env_path else DEFAULT_DB_PATH))
    return _db


async def init_database(db_path: Path | None = None) -> Database:
    """Initialize and return the database."""
    db = get_database(db_path)
    await db.initialize()
    return db


def reset_database() -> None:
    """Reset the global database instance (useful for testing)."""
    global _db
    _db = None
