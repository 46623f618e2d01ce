"""
Settings routers.
"""
from fastapi import APIRouter, Depends, HTTPException, status

from minimarket.auth.dependencies import get_current_user_id, require_admin
from minimarket.common.schemas import JSendResponse
from .schemas import AllSettings
from .services import SettingsProvider, get_settings_provider

router = APIRouter()


@router.get("", response_model=JSendResponse[AllSettings])
async def read_settings(
    user_id: str = Depends(get_current_user_id),
    provider: SettingsProvider = Depends(get_settings_provider)
):
    """
    Get the current shop settings.
    """
    return JSendResponse.success(await provider.get())


@router.post("/refresh", response_model=JSendResponse[AllSettings])
async def refresh_settings(
    admin: dict = Depends(require_admin),
    provider: SettingsProvider = Depends(get_settings_provider)
):
    """
    Reload the settings after they were changed in the store.
    """
    try:
        return JSendResponse.success(await provider.refresh())
    except HTTPException as e:
        return JSendResponse.error(
            message=str(e.detail),
            code=e.status_code
        )
    except Exception as e:
        return JSendResponse.error(
            message=str(e),
            code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
