"""Note API endpoints, including LLM extraction."""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, Response, status

from signote.api.routes import parse_uuid
from signote.api.schemas import (
    ExtractResponse,
    NoteCreateRequest,
    NoteResponse,
    NoteUpdateRequest,
)
from signote.processing import ExtractionError, process_note
from signote.storage import Note, get_database

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
async def create_note(request: NoteCreateRequest) -> NoteResponse:
    """Create a note. Extraction is a separate call."""
    db = get_database()
    note = await db.create_note(
        Note(
            title=request.title,
            subtitle=request.subtitle,
            date=request.date or datetime.now(UTC),
            content=request.content,
        )
    )
    return NoteResponse.model_validate(note)


@router.get("", response_model=list[NoteResponse])
async def list_notes(limit: int = 100, offset: int = 0) -> list[NoteResponse]:
    """List notes, newest first."""
    db = get_database()
    notes = await db.list_notes(limit=limit, offset=offset)
    return [NoteResponse.model_validate(n) for n in notes]


@router.get("/{note_id}", response_model=NoteResponse)
async def get_note(note_id: str) -> NoteResponse:
    """Get a note by ID."""
    db = get_database()
    note = await db.get_note(parse_uuid(note_id, "note ID"))
    if note is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Note not found")
    return NoteResponse.model_validate(note)


@router.patch("/{note_id}", response_model=NoteResponse)
async def update_note(note_id: str, request: NoteUpdateRequest) -> NoteResponse:
    """Edit a note's title, subtitle, date or content."""
    db = get_database()
    note = await db.get_note(parse_uuid(note_id, "note ID"))
    if note is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Note not found")

    if request.title is not None:
        note.title = request.title
    if "subtitle" in request.model_fields_set:
        note.subtitle = request.subtitle
    if request.date is not None:
        note.date = request.date
    if request.content is not None:
        note.content = request.content

    await db.update_note(note)
    return NoteResponse.model_validate(note)


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(note_id: str) -> Response:
    """Delete a note with its mentions and evidence."""
    db = get_database()
    if not await db.delete_note(parse_uuid(note_id, "note ID")):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Note not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{note_id}/extract", response_model=ExtractResponse)
async def extract_note(note_id: str) -> ExtractResponse:
    """Extract actions, topics and CEO signals from a note and store them."""
    db = get_database()
    settings = await db.get_settings()

    try:
        result = await process_note(db, parse_uuid(note_id, "note ID"), settings=settings)
    except (ExtractionError, ConnectionError) as e:
        logger.error(f"Extraction failed for note {note_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Extraction failed: {e}",
        ) from e

    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Note not found")

    return ExtractResponse(
        actions_created=result.actions_created,
        actions_skipped=result.actions_skipped,
        topics_seen=result.topics_seen,
        ceo_mentioned=result.ceo_mentioned,
    )
