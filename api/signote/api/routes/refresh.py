"""Global refresh endpoint."""

from fastapi import APIRouter, HTTPException, Response, status

from signote.api.schemas import RefreshResponse, RefreshStepResponse
from signote.engine import RefreshInProgressError, get_refresh_orchestrator

router = APIRouter()


@router.post(
    "",
    response_model=RefreshResponse,
    responses={
        200: {"description": "System refreshed"},
        409: {"description": "A refresh is already running"},
        500: {"description": "A refresh step failed; earlier steps stay committed"},
    },
)
async def refresh(response: Response) -> RefreshResponse:
    """Recompute frequencies, standing actions, goals and scores, then prune."""
    orchestrator = get_refresh_orchestrator()

    try:
        report = await orchestrator.refresh()
    except RefreshInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    if not report.success:
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    return RefreshResponse(
        success=report.success,
        message="System refreshed successfully"
        if report.success
        else f"Refresh failed at {report.failed_step}",
        started_at=report.started_at,
        finished_at=report.finished_at,
        steps=[RefreshStepResponse.model_validate(s) for s in report.steps],
        failed_step=report.failed_step,
        error=report.error,
    )
