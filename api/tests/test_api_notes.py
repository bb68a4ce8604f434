"""Tests for the notes API endpoints."""

import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from fastapi import status
from httpx import ASGITransport, AsyncClient

from signote.api.main import app
from signote.processing import (
    CEODetection,
    ExtractedAction,
    ExtractedTopic,
    ExtractionError,
    ExtractionResult,
)
from signote.storage import Confidence, Database, Settings


@pytest.fixture
async def test_db():
    """Create a temporary database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        database = Database(Path(tmpdir) / "test.db")
        await database.initialize()
        yield database


@pytest.fixture
def mock_extractor():
    """Mock the note extractor."""
    extractor = AsyncMock()
    extractor.extract.return_value = ExtractionResult(
        actions=[
            ExtractedAction(
                activity="Send Eric an NVIDIA partnership update",
                evidence="Eric asked about NVIDIA",
                topics=["NVIDIA"],
            )
        ],
        topics=[ExtractedTopic(name="NVIDIA", norm_key="nvidia", is_ask=True)],
        ceo_detection=CEODetection(mentioned=True, confidence=Confidence.HIGH),
    )
    return extractor


@pytest.fixture
async def client(test_db, mock_extractor):
    """Create a test client with mocked services."""
    with (
        patch("signote.api.routes.notes.get_database", return_value=test_db),
        patch("signote.processing.ingest.get_note_extractor", return_value=mock_extractor),
        patch("signote.api.main.init_database", new_callable=AsyncMock),
    ):
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac


async def create_note(client: AsyncClient, **fields) -> dict:
    payload = {"title": "Staff meeting", "content": "<p>Eric asked about NVIDIA</p>"}
    payload.update(fields)
    response = await client.post("/api/notes", json=payload)
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


class TestNoteCrud:
    """Tests for /api/notes CRUD endpoints."""

    async def test_create_note(self, client: AsyncClient):
        data = await create_note(client, subtitle="Weekly", date="2026-10-14T09:00:00Z")

        assert data["title"] == "Staff meeting"
        assert data["subtitle"] == "Weekly"
        assert data["date"].startswith("2026-10-14T09:00:00")
        assert data["ceo_mentioned"] is False

    async def test_create_note_requires_title(self, client: AsyncClient):
        response = await client.post("/api/notes", json={"title": "", "content": "x"})

        assert response.status_code == 422

    async def test_get_note(self, client: AsyncClient):
        created = await create_note(client)

        response = await client.get(f"/api/notes/{created['id']}")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == created["id"]

    async def test_get_note_not_found(self, client: AsyncClient):
        response = await client.get(f"/api/notes/{uuid4()}")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    async def test_get_note_invalid_id(self, client: AsyncClient):
        response = await client.get("/api/notes/not-a-uuid")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Invalid note ID format"

    async def test_list_notes(self, client: AsyncClient):
        await create_note(client, title="Old", date="2026-10-01T09:00:00Z")
        await create_note(client, title="New", date="2026-10-14T09:00:00Z")

        response = await client.get("/api/notes")

        assert [n["title"] for n in response.json()] == ["New", "Old"]

    async def test_update_note(self, client: AsyncClient):
        created = await create_note(client, subtitle="Weekly")

        response = await client.patch(
            f"/api/notes/{created['id']}",
            json={"title": "Renamed", "subtitle": None},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["title"] == "Renamed"
        assert data["subtitle"] is None
        assert data["content"] == created["content"]

    async def test_delete_note(self, client: AsyncClient):
        created = await create_note(client)

        response = await client.delete(f"/api/notes/{created['id']}")
        assert response.status_code == status.HTTP_204_NO_CONTENT

        response = await client.delete(f"/api/notes/{created['id']}")
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestExtractNote:
    """Tests for POST /api/notes/{id}/extract."""

    async def test_extract_note(self, client: AsyncClient, test_db: Database, mock_extractor):
        await test_db.update_settings(Settings(ceo_first_name="Eric"))
        created = await create_note(client)

        response = await client.post(f"/api/notes/{created['id']}/extract")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["actions_created"] == 1
        assert data["actions_skipped"] == 0
        assert data["topics_seen"] == 1
        assert data["ceo_mentioned"] is True
        assert mock_extractor.extract.call_args.kwargs["settings"].ceo_first_name == "Eric"

        note = await client.get(f"/api/notes/{created['id']}")
        assert note.json()["ceo_mentioned"] is True

    async def test_extract_missing_note(self, client: AsyncClient):
        response = await client.post(f"/api/notes/{uuid4()}/extract")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.parametrize(
        "error", [ExtractionError("bad json"), ConnectionError("Cannot connect")]
    )
    async def test_extract_failure_is_bad_gateway(
        self, client: AsyncClient, test_db: Database, mock_extractor, error: Exception
    ):
        mock_extractor.extract.side_effect = error
        created = await create_note(client)

        response = await client.post(f"/api/notes/{created['id']}/extract")

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert await test_db.list_actions() == []
