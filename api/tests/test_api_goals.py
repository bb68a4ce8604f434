"""Tests for the macro goals and settings API endpoints."""

import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from fastapi import status
from httpx import ASGITransport, AsyncClient

from signote.api.main import app
from signote.storage import Action, ActionStatus, Database, MacroGoal


@pytest.fixture
async def test_db():
    """Create a temporary database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        database = Database(Path(tmpdir) / "test.db")
        await database.initialize()
        yield database


@pytest.fixture
async def client(test_db):
    """Create a test client with mocked services."""
    with (
        patch("signote.api.routes.goals.get_database", return_value=test_db),
        patch("signote.api.routes.settings.get_database", return_value=test_db),
        patch("signote.api.main.init_database", new_callable=AsyncMock),
    ):
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac


class TestListGoals:
    """Tests for GET /api/macro-goals."""

    async def test_newest_first_with_top_actions(self, client: AsyncClient, test_db: Database):
        now = datetime.now(UTC)
        older = await test_db.create_goal(
            MacroGoal(goal="Older", created_at=now - timedelta(days=1))
        )
        await test_db.create_goal(MacroGoal(goal="Newer", created_at=now))
        for score in range(5):
            await test_db.create_action(
                Action(
                    activity=f"a{score}",
                    status=ActionStatus.ACTIVE,
                    sort_score=score,
                    macro_goal_id=older.id,
                )
            )
        await test_db.create_action(
            Action(
                activity="finished",
                status=ActionStatus.DONE,
                sort_score=99,
                macro_goal_id=older.id,
            )
        )

        response = await client.get("/api/macro-goals")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert [g["goal"] for g in data] == ["Newer", "Older"]
        assert data[0]["actions"] == []
        assert [a["activity"] for a in data[1]["actions"]] == ["a4", "a3", "a2"]


class TestGoalEdits:
    """Tests for creating, editing and deleting goals."""

    async def test_create_goal_is_user_edited(self, client: AsyncClient):
        response = await client.post(
            "/api/macro-goals",
            json={"goal": "Grow partner revenue", "topic_keys": ["nvidia"]},
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["edited_by_user"] is True
        assert data["topic_keys"] == ["nvidia"]

    async def test_update_marks_goal_edited(self, client: AsyncClient, test_db: Database):
        goal = await test_db.create_goal(MacroGoal(goal="Auto", topic_keys=["nvidia"]))

        response = await client.patch(
            f"/api/macro-goals/{goal.id}", json={"goal": "Land NVIDIA co-sell"}
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["goal"] == "Land NVIDIA co-sell"
        assert data["topic_keys"] == ["nvidia"]
        assert data["edited_by_user"] is True
        assert (await test_db.get_goal(goal.id)).edited_by_user is True

    async def test_update_not_found(self, client: AsyncClient):
        response = await client.patch(f"/api/macro-goals/{uuid4()}", json={"goal": "x"})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    async def test_delete_unassigns_actions(self, client: AsyncClient, test_db: Database):
        goal = await test_db.create_goal(MacroGoal(goal="Auto"))
        action = await test_db.create_action(Action(activity="a", macro_goal_id=goal.id))

        response = await client.delete(f"/api/macro-goals/{goal.id}")

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert (await test_db.get_action(action.id)).macro_goal_id is None

    async def test_invalid_id(self, client: AsyncClient):
        response = await client.delete("/api/macro-goals/nope")

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestSettings:
    """Tests for /api/settings."""

    async def test_defaults(self, client: AsyncClient):
        response = await client.get("/api/settings")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["ceo_first_name"] is None
        assert data["ceo_aliases"] == []

    async def test_update(self, client: AsyncClient):
        response = await client.patch(
            "/api/settings",
            json={"ceo_first_name": "Eric", "ceo_aliases": ["E"], "context_prompt": "Partnerships"},
        )
        assert response.status_code == status.HTTP_200_OK

        data = (await client.get("/api/settings")).json()
        assert data["ceo_first_name"] == "Eric"
        assert data["ceo_aliases"] == ["E"]
        assert data["context_prompt"] == "Partnerships"
