"""Settings API endpoints."""

from fastapi import APIRouter

from signote.api.schemas import SettingsResponse, SettingsUpdateRequest
from signote.storage import Settings, get_database

router = APIRouter()


@router.get("", response_model=SettingsResponse)
async def get_settings() -> SettingsResponse:
    """Get settings, creating defaults on first access."""
    db = get_database()
    return SettingsResponse.model_validate(await db.get_settings())


@router.patch("", response_model=SettingsResponse)
async def update_settings(request: SettingsUpdateRequest) -> SettingsResponse:
    """Replace the CEO identity and context prompt."""
    db = get_database()
    settings = await db.update_settings(
        Settings(
            ceo_first_name=request.ceo_first_name,
            ceo_aliases=request.ceo_aliases,
            context_prompt=request.context_prompt,
        )
    )
    return SettingsResponse.model_validate(settings)
