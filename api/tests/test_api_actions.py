"""Tests for the actions API endpoints."""

import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from fastapi import status
from httpx import ASGITransport, AsyncClient

from signote.api.main import app
from signote.storage import (
    Action,
    ActionStatus,
    Database,
    Evidence,
    MacroGoal,
    Note,
    Topic,
)


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
        patch("signote.api.routes.actions.get_database", return_value=test_db),
        patch("signote.api.main.init_database", new_callable=AsyncMock),
    ):
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac


class TestListActions:
    """Tests for GET /api/actions."""

    async def test_lists_open_actions_by_score(self, client: AsyncClient, test_db: Database):
        topic = await test_db.create_topic(Topic(name="NVIDIA", norm_key="nvidia"))
        high = await test_db.create_action(
            Action(activity="high", status=ActionStatus.ACTIVE, sort_score=1500)
        )
        await test_db.create_action(Action(activity="low", sort_score=10))
        await test_db.create_action(Action(activity="done", status=ActionStatus.DONE))
        await test_db.link_action_topic(high.id, topic.id)

        response = await client.get("/api/actions")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert [a["activity"] for a in data] == ["high", "low"]
        assert data[0]["topics"][0]["norm_key"] == "nvidia"

    async def test_empty(self, client: AsyncClient):
        response = await client.get("/api/actions")

        assert response.json() == []


class TestCreateAction:
    """Tests for POST /api/actions."""

    async def test_manual_action_is_active(self, client: AsyncClient):
        response = await client.post(
            "/api/actions",
            json={"activity": "Draft QBR deck", "priority": "P0", "due_date": "2026-10-20T00:00:00Z"},
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["status"] == "active"
        assert data["priority"] == "P0"
        assert data["is_standing"] is False

    async def test_unknown_note(self, client: AsyncClient):
        response = await client.post(
            "/api/actions",
            json={"activity": "Draft QBR deck", "note_id": str(uuid4())},
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    async def test_invalid_priority(self, client: AsyncClient):
        response = await client.post("/api/actions", json={"activity": "x", "priority": "P9"})

        assert response.status_code == 422


class TestGetAction:
    """Tests for GET /api/actions/{id}."""

    async def test_includes_evidence(self, client: AsyncClient, test_db: Database):
        note = await test_db.create_note(Note(title="Staff meeting"))
        action = await test_db.create_action(Action(activity="a", note_id=note.id))
        await test_db.create_evidence(
            Evidence(action_id=action.id, note_id=note.id, excerpt="Eric asked")
        )

        response = await client.get(f"/api/actions/{action.id}")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["evidence"] == [{"note_id": str(note.id), "excerpt": "Eric asked"}]

    async def test_not_found(self, client: AsyncClient):
        response = await client.get(f"/api/actions/{uuid4()}")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    async def test_invalid_id(self, client: AsyncClient):
        response = await client.get("/api/actions/nope")

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestUpdateAction:
    """Tests for PATCH /api/actions/{id}."""

    async def test_mark_done_records_completion(self, client: AsyncClient, test_db: Database):
        action = await test_db.create_action(Action(activity="a", status=ActionStatus.ACTIVE))

        response = await client.patch(f"/api/actions/{action.id}", json={"status": "done"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["completed_at"] is not None
        stored = await test_db.get_action(action.id)
        assert stored.status == ActionStatus.DONE

    async def test_edit_fields(self, client: AsyncClient, test_db: Database):
        action = await test_db.create_action(Action(activity="a"))

        response = await client.patch(
            f"/api/actions/{action.id}",
            json={"activity": "Call Sarah at Snowflake", "priority": "P2"},
        )

        data = response.json()
        assert data["activity"] == "Call Sarah at Snowflake"
        assert data["priority"] == "P2"
        assert data["status"] == "suggested"

    async def test_assign_goal(self, client: AsyncClient, test_db: Database):
        goal = await test_db.create_goal(MacroGoal(goal="Grow partner revenue"))
        action = await test_db.create_action(Action(activity="a"))

        response = await client.patch(
            f"/api/actions/{action.id}", json={"macro_goal_id": str(goal.id)}
        )

        assert response.json()["macro_goal_id"] == str(goal.id)

    async def test_unknown_goal(self, client: AsyncClient, test_db: Database):
        action = await test_db.create_action(Action(activity="a"))

        response = await client.patch(
            f"/api/actions/{action.id}", json={"macro_goal_id": str(uuid4())}
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.parametrize(
        ("current", "requested"),
        [
            (ActionStatus.DONE, "active"),
            (ActionStatus.DONE, "suggested"),
            (ActionStatus.ACTIVE, "suggested"),
        ],
    )
    async def test_status_cannot_move_backward(
        self, client: AsyncClient, test_db: Database, current: ActionStatus, requested: str
    ):
        action = await test_db.create_action(Action(activity="a", status=current))

        response = await client.patch(f"/api/actions/{action.id}", json={"status": requested})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert (await test_db.get_action(action.id)).status == current

    async def test_mark_standing_done_records_completion(
        self, client: AsyncClient, test_db: Database
    ):
        action = await test_db.create_action(
            Action(activity="Send CEO update on NVIDIA", is_standing=True, status=ActionStatus.ACTIVE)
        )

        response = await client.patch(
            f"/api/actions/{action.id}", json={"status": "done", "priority": "P0"}
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "done"
        assert len(data["completion_history"]) == 1
        stored = await test_db.get_action(action.id)
        assert stored.priority.value == "P0"
        assert stored.last_completed_at is not None
        assert stored.completed_at == stored.last_completed_at


class TestAcceptAction:
    """Tests for POST /api/actions/{id}/accept."""

    async def test_accept_suggestion(self, client: AsyncClient, test_db: Database):
        action = await test_db.create_action(Action(activity="a"))

        response = await client.post(f"/api/actions/{action.id}/accept")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "active"

    async def test_accept_active_conflicts(self, client: AsyncClient, test_db: Database):
        action = await test_db.create_action(Action(activity="a", status=ActionStatus.ACTIVE))

        response = await client.post(f"/api/actions/{action.id}/accept")

        assert response.status_code == status.HTTP_409_CONFLICT


class TestCompleteStanding:
    """Tests for POST /api/actions/{id}/complete-standing."""

    async def test_completes_standing_action(self, client: AsyncClient, test_db: Database):
        action = await test_db.create_action(
            Action(activity="Send CEO update on NVIDIA", is_standing=True, status=ActionStatus.ACTIVE)
        )

        response = await client.post(f"/api/actions/{action.id}/complete-standing")

        assert response.json() == {"success": True, "completed": True}
        stored = await test_db.get_action(action.id)
        assert stored.status == ActionStatus.DONE
        assert len(stored.completion_history) == 1

    async def test_non_standing_is_a_no_op(self, client: AsyncClient, test_db: Database):
        action = await test_db.create_action(Action(activity="a", status=ActionStatus.ACTIVE))

        response = await client.post(f"/api/actions/{action.id}/complete-standing")

        assert response.json() == {"success": True, "completed": False}
        assert (await test_db.get_action(action.id)).status == ActionStatus.ACTIVE


class TestRescoreAndDelete:
    """Tests for POST /api/actions/scores and DELETE /api/actions/{id}."""

    async def test_rescore_all(self, client: AsyncClient, test_db: Database):
        action = await test_db.create_action(Action(activity="a", is_ceo_related=True))

        response = await client.post("/api/actions/scores")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["scores"] == {str(action.id): 1000.0}

    async def test_rescore_one(self, client: AsyncClient, test_db: Database):
        first = await test_db.create_action(Action(activity="a", is_standing=True))
        await test_db.create_action(Action(activity="b", is_standing=True))

        response = await client.post("/api/actions/scores", params={"action_id": str(first.id)})

        assert response.json()["scores"] == {str(first.id): 500.0}

    async def test_delete(self, client: AsyncClient, test_db: Database):
        action = await test_db.create_action(Action(activity="a"))

        response = await client.delete(f"/api/actions/{action.id}")
        assert response.status_code == status.HTTP_204_NO_CONTENT

        response = await client.delete(f"/api/actions/{action.id}")
        assert response.status_code == status.HTTP_404_NOT_FOUND
