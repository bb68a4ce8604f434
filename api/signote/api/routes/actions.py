"""Action API endpoints."""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, Response, status
from pydantic import BaseModel

from signote.api.routes import parse_uuid
from signote.api.schemas import (
    ActionCreateRequest,
    ActionResponse,
    ActionUpdateRequest,
)
from signote.engine import complete_standing, recalculate_action_scores
from signote.storage import OPEN_STATUSES, Action, ActionStatus, get_database

logger = logging.getLogger(__name__)

router = APIRouter()

# Status only moves forward.
STATUS_ORDER = {
    ActionStatus.SUGGESTED: 0,
    ActionStatus.ACTIVE: 1,
    ActionStatus.DONE: 2,
}


class CompleteStandingResponse(BaseModel):
    """Result of completing a standing action."""

    success: bool = True
    completed: bool


class ScoresResponse(BaseModel):
    """Recomputed sort scores keyed by action ID."""

    scores: dict[str, float]


async def _get_action_or_404(action_id: str) -> Action:
    db = get_database()
    action = await db.get_action(parse_uuid(action_id, "action ID"))
    if action is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Action not found",
        )
    return action


@router.get("", response_model=list[ActionResponse])
async def list_actions() -> list[ActionResponse]:
    """List open (active and suggested) actions, highest score first."""
    db = get_database()
    actions = await db.list_actions(statuses=OPEN_STATUSES, with_topics=True)
    return [ActionResponse.model_validate(a) for a in actions]


@router.post(
    "",
    response_model=ActionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_action(request: ActionCreateRequest) -> ActionResponse:
    """Create a manual action. Manual actions start active."""
    db = get_database()

    if request.note_id and await db.get_note(request.note_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Note not found",
        )

    action = await db.create_action(
        Action(
            activity=request.activity,
            priority=request.priority,
            due_date=request.due_date,
            status=ActionStatus.ACTIVE,
            note_id=request.note_id,
        )
    )
    logger.info(f"Created manual action {action.id}")
    return ActionResponse.model_validate(action)


@router.post("/scores", response_model=ScoresResponse)
async def rescore_actions(action_id: str | None = None) -> ScoresResponse:
    """Recompute sort scores for one action, or for all open actions."""
    db = get_database()
    target = parse_uuid(action_id, "action ID") if action_id else None
    scores = await recalculate_action_scores(db, target)
    return ScoresResponse(scores={str(k): v for k, v in scores.items()})


@router.get("/{action_id}", response_model=ActionResponse)
async def get_action(action_id: str) -> ActionResponse:
    """Get an action with its topics and evidence."""
    return ActionResponse.model_validate(await _get_action_or_404(action_id))


@router.patch("/{action_id}", response_model=ActionResponse)
async def update_action(action_id: str, request: ActionUpdateRequest) -> ActionResponse:
    """Edit an action. Moving it to done records the completion time.

    Status only moves forward. Marking a standing action done records a
    standing completion.
    """
    db = get_database()
    action = await _get_action_or_404(action_id)

    if request.activity is not None:
        action.activity = request.activity
    if request.priority is not None:
        action.priority = request.priority
    if "due_date" in request.model_fields_set:
        action.due_date = request.due_date
    if request.macro_goal_id is not None:
        if await db.get_goal(request.macro_goal_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Macro goal not found",
            )
        action.macro_goal_id = request.macro_goal_id
    if request.status is not None and request.status != action.status:
        if STATUS_ORDER[request.status] < STATUS_ORDER[action.status]:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=(
                    f"Cannot move an action from {action.status.value} "
                    f"back to {request.status.value}"
                ),
            )
        if request.status == ActionStatus.DONE and action.is_standing:
            await db.update_action(action)
            completed = await complete_standing(db, action.id)
            return ActionResponse.model_validate(completed)
        action.status = request.status
        action.completed_at = (
            datetime.now(UTC) if request.status == ActionStatus.DONE else None
        )

    await db.update_action(action)
    return ActionResponse.model_validate(action)


@router.post("/{action_id}/accept", response_model=ActionResponse)
async def accept_action(action_id: str) -> ActionResponse:
    """Accept a suggested action, making it active."""
    db = get_database()
    action = await _get_action_or_404(action_id)

    if action.status != ActionStatus.SUGGESTED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Only suggested actions can be accepted (status is {action.status.value})",
        )

    action.status = ActionStatus.ACTIVE
    await db.update_action(action)
    return ActionResponse.model_validate(action)


@router.post("/{action_id}/complete-standing", response_model=CompleteStandingResponse)
async def complete_standing_action(action_id: str) -> CompleteStandingResponse:
    """Complete a standing action. Missing or non-standing actions are ignored."""
    db = get_database()
    action = await complete_standing(db, parse_uuid(action_id, "action ID"))
    return CompleteStandingResponse(completed=action is not None)


@router.delete("/{action_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_action(action_id: str) -> Response:
    """Delete an action."""
    db = get_database()
    deleted = await db.delete_action(parse_uuid(action_id, "action ID"))
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Action not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
