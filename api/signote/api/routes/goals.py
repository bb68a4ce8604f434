"""Macro goal API endpoints."""

from fastapi import APIRouter, HTTPException, Response, status

from signote.api.routes import parse_uuid
from signote.api.schemas import (
    ActionResponse,
    GoalCreateRequest,
    GoalResponse,
    GoalUpdateRequest,
)
from signote.storage import OPEN_STATUSES, MacroGoal, get_database

router = APIRouter()

# Open actions shown under each goal
ACTIONS_PER_GOAL = 3


async def _to_response(goal: MacroGoal) -> GoalResponse:
    db = get_database()
    actions = await db.list_actions(
        statuses=OPEN_STATUSES,
        macro_goal_id=goal.id,
        limit=ACTIONS_PER_GOAL,
    )
    return GoalResponse(
        id=goal.id,
        goal=goal.goal,
        topic_keys=goal.topic_keys,
        edited_by_user=goal.edited_by_user,
        created_at=goal.created_at,
        actions=[ActionResponse.model_validate(a) for a in actions],
    )


@router.get("", response_model=list[GoalResponse])
async def list_goals() -> list[GoalResponse]:
    """List goals, newest first, each with its top open actions."""
    db = get_database()
    return [await _to_response(g) for g in await db.list_goals(newest_first=True)]


@router.post("", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
async def create_goal(request: GoalCreateRequest) -> GoalResponse:
    """Create a user goal. Refreshes never overwrite it."""
    db = get_database()
    goal = await db.create_goal(
        MacroGoal(goal=request.goal, topic_keys=request.topic_keys, edited_by_user=True)
    )
    return await _to_response(goal)


@router.patch("/{goal_id}", response_model=GoalResponse)
async def update_goal(goal_id: str, request: GoalUpdateRequest) -> GoalResponse:
    """Edit a goal. Edited goals are protected from refreshes."""
    db = get_database()
    goal = await db.get_goal(parse_uuid(goal_id, "goal ID"))
    if goal is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Goal not found")

    if request.goal is not None:
        goal.goal = request.goal
    if request.topic_keys is not None:
        goal.topic_keys = request.topic_keys
    goal.edited_by_user = True

    await db.update_goal(goal)
    return await _to_response(goal)


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_goal(goal_id: str) -> Response:
    """Delete a goal; its actions become unassigned."""
    db = get_database()
    if not await db.delete_goal(parse_uuid(goal_id, "goal ID")):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Goal not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
