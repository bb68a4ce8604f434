"""Global refresh: re-derive frequencies, standing actions, goals and scores."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from signote.engine.dates import as_utc
from signote.engine.frequency import update_all_topic_frequencies
from signote.engine.goals import update_macro_goals
from signote.engine.scoring import recalculate_action_scores
from signote.engine.standing import detect_standing_actions
from signote.processing.extraction import GoalInferrer
from signote.storage import ActionStatus, Database, Settings, get_database

logger = logging.getLogger(__name__)

SUGGESTION_LIMIT = 10


class RefreshInProgressError(RuntimeError):
    """Raised when a refresh is requested while another is running."""


@dataclass
class StepResult:
    """What one refresh step did."""

    name: str
    detail: dict[str, Any] = field(default_factory=dict)


@dataclass
class RefreshReport:
    """Outcome of a refresh. Steps before a failure stay committed."""

    success: bool
    started_at: datetime
    finished_at: datetime
    steps: list[StepResult] = field(default_factory=list)
    failed_step: str | None = None
    error: str | None = None


async def prune_suggested_actions(db: Database, *, keep: int = SUGGESTION_LIMIT) -> int:
    """Delete suggested actions beyond the top `keep` by score.

    Returns the number deleted.
    """
    suggested = await db.list_actions(statuses=[ActionStatus.SUGGESTED])
    to_delete = suggested[keep:]

    for action in to_delete:
        await db.delete_action(action.id)

    if to_delete:
        logger.info(f"Pruned {len(to_delete)} low-priority suggestions")
    return len(to_delete)


class RefreshOrchestrator:
    """Runs the refresh steps in order, one refresh at a time.

    Order: topic frequencies, standing actions, macro goals, action scores,
    suggestion pruning. Each step completes before the next starts.
    """

    def __init__(
        self,
        db: Database | None = None,
        *,
        goal_inferrer: GoalInferrer | None = None,
        suggestion_limit: int = SUGGESTION_LIMIT,
    ):
        self._db = db
        self._goal_inferrer = goal_inferrer
        self.suggestion_limit = suggestion_limit
        self._lock = asyncio.Lock()

    def _get_db(self) -> Database:
        if self._db is None:
            self._db = get_database()
        return self._db

    @property
    def running(self) -> bool:
        """Whether a refresh is in progress."""
        return self._lock.locked()

    async def refresh(
        self,
        *,
        settings: Settings | None = None,
        now: datetime | None = None,
    ) -> RefreshReport:
        """Bring all derived state up to date.

        Raises:
            RefreshInProgressError: If another refresh has not finished.
        """
        if self._lock.locked():
            raise RefreshInProgressError("A refresh is already running")

        async with self._lock:
            return await self._run(settings=settings, now=now)

    async def _run(self, *, settings: Settings | None, now: datetime | None) -> RefreshReport:
        db = self._get_db()
        now = as_utc(now) if now else datetime.now(UTC)
        started_at = datetime.now(UTC)

        if settings is None:
            settings = await db.get_settings()

        async def frequencies() -> dict[str, Any]:
            return {"topics_updated": await update_all_topic_frequencies(db, now=now)}

        async def standing() -> dict[str, Any]:
            created = await detect_standing_actions(db, now=now)
            return {"standing_created": len(created)}

        async def goals() -> dict[str, Any]:
            update = await update_macro_goals(
                db, settings=settings, inferrer=self._goal_inferrer, now=now
            )
            return {
                "goals_removed": update.goals_removed,
                "goals_created": update.goals_created,
                "actions_assigned": update.actions_assigned,
            }

        async def scores() -> dict[str, Any]:
            return {"actions_scored": len(await recalculate_action_scores(db, now=now))}

        async def prune() -> dict[str, Any]:
            pruned = await prune_suggested_actions(db, keep=self.suggestion_limit)
            return {"suggestions_pruned": pruned}

        steps: list[tuple[str, Callable[[], Awaitable[dict[str, Any]]]]] = [
            ("topic_frequencies", frequencies),
            ("standing_actions", standing),
            ("macro_goals", goals),
            ("action_scores", scores),
            ("prune_suggestions", prune),
        ]

        logger.info("Starting global refresh...")
        completed: list[StepResult] = []

        for name, step in steps:
            logger.info(f"Refresh step: {name}")
            try:
                detail = await step()
            except Exception as e:
                logger.error(f"Refresh failed at step {name}: {e}")
                return RefreshReport(
                    success=False,
                    started_at=started_at,
                    finished_at=datetime.now(UTC),
                    steps=completed,
                    failed_step=name,
                    error=str(e) or type(e).__name__,
                )
            completed.append(StepResult(name=name, detail=detail))

        logger.info("Refresh complete!")
        return RefreshReport(
            success=True,
            started_at=started_at,
            finished_at=datetime.now(UTC),
            steps=completed,
        )


# Global orchestrator instance
_orchestrator: RefreshOrchestrator | None = None


def get_refresh_orchestrator() -> RefreshOrchestrator:
    """Get or create the global refresh orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = RefreshOrchestrator()
    return _orchestrator


def reset_refresh_orchestrator() -> None:
    """Reset the global refresh orchestrator (useful for testing)."""
    global _orchestrator
    _orchestrator = None
