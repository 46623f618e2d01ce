from fastapi import APIRouter, Depends

from minimarket.common.schemas import JSendResponse
from .dependencies import get_current_profile
from .schemas import ProfileData

router = APIRouter()


@router.get("/me", response_model=JSendResponse[ProfileData])
async def read_current_profile(profile: dict = Depends(get_current_profile)):
    """
    Get the profile and role of the signed-in user.
    """
    return JSendResponse.success(ProfileData(**profile))
