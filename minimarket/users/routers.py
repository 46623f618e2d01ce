"""
User management routers with full CRUD operations.
Every endpoint is restricted to administrators.
"""

from fastapi import APIRouter, Depends, HTTPException, Path, status

from minimarket.auth.dependencies import require_admin
from minimarket.common.schemas import JSendResponse, MessageData
from .schemas import UserCreate, UserListData, UserSaved, UserUpdate
from .services import create_user_service, delete_user_service, list_users_service, update_user_service

router = APIRouter()


@router.get("", response_model=JSendResponse[UserListData])
async def get_user_list(admin: dict = Depends(require_admin)):
    """
    Get all users with their role.
    """
    try:
        return JSendResponse.success(await list_users_service())
    except HTTPException as e:
        return JSendResponse.error(message=str(e.detail), code=e.status_code)
    except Exception as e:
        return JSendResponse.error(message=str(e), code=status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.post("", response_model=JSendResponse[UserSaved])
async def create_user(user_data: UserCreate, admin: dict = Depends(require_admin)):
    """
    Create a user, or update the account already registered with the email.
    """
    try:
        return JSendResponse.success(await create_user_service(user_data))
    except HTTPException as e:
        return JSendResponse.error(message=str(e.detail), code=e.status_code)
    except Exception as e:
        return JSendResponse.error(message=str(e), code=status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.put("/{user_id}", response_model=JSendResponse[UserSaved])
async def update_user(
    update_data: UserUpdate,
    user_id: str = Path(..., description="User ID"),
    admin: dict = Depends(require_admin)
):
    """
    Update the email, password, name or role of a user.
    """
    try:
        return JSendResponse.success(await update_user_service(user_id, update_data))
    except HTTPException as e:
        return JSendResponse.error(message=str(e.detail), code=e.status_code)
    except Exception as e:
        return JSendResponse.error(message=str(e), code=status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.delete("/{user_id}", response_model=JSendResponse[MessageData])
async def delete_user(
    user_id: str = Path(..., description="User ID"),
    admin: dict = Depends(require_admin)
):
    """
    Delete a user and its profile. Administrators cannot delete themselves.
    """
    try:
        if user_id == admin.get("id"):
            raise HTTPException(status_code=400, detail="You cannot delete your own account")
        await delete_user_service(user_id)
        return JSendResponse.success(MessageData(message="User deleted successfully"))
    except HTTPException as e:
        return JSendResponse.error(message=str(e.detail), code=e.status_code)
    except Exception as e:
        return JSendResponse.error(message=str(e), code=status.HTTP_500_INTERNAL_SERVER_ERROR)
