"""
User management services: Firebase Auth accounts and their profiles.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException
from firebase_admin import auth
from firebase_admin.auth import UserNotFoundError

from minimarket.common.database import PROFILES_COLLECTION, get_firestore_client
from minimarket.common.schemas import CASHIER_ROLE
from .schemas import UserCreate, UserInfo, UserListData, UserSaved, UserUpdate

logger = logging.getLogger(__name__)


def _convert_timestamp(milliseconds: Optional[int]) -> Optional[datetime]:
    """Convert a Firebase Auth metadata timestamp (ms since epoch)."""
    if milliseconds is None:
        return None
    return datetime.fromtimestamp(milliseconds / 1000, tz=timezone.utc)


def _upsert_profile(user_id: str, email: Optional[str], full_name: Optional[str], role: Optional[str]) -> None:
    db = get_firestore_client()
    profile_ref = db.collection(PROFILES_COLLECTION).document(user_id)

    profile_data = {"updatedAt": datetime.now(timezone.utc)}
    if email is not None:
        profile_data["username"] = email
    if full_name is not None:
        profile_data["fullName"] = full_name
    if role is not None:
        profile_data["role"] = role

    if profile_ref.get().exists:
        profile_ref.update(profile_data)
    else:
        profile_data.setdefault("role", CASHIER_ROLE)
        profile_ref.set(profile_data)


async def list_users_service() -> UserListData:
    """Get every auth account merged with its profile; accounts without one are cashiers."""
    try:
        db = get_firestore_client()
        profiles = {doc.id: doc.to_dict() or {} for doc in db.collection(PROFILES_COLLECTION).stream()}

        users = []
        for user in auth.list_users().iterate_all():
            profile = profiles.get(user.uid, {})
            users.append(UserInfo(
                id=user.uid,
                email=user.email,
                role=profile.get("role") or CASHIER_ROLE,
                fullName=profile.get("fullName"),
                username=profile.get("username"),
                createdAt=_convert_timestamp(user.user_metadata.creation_timestamp)
            ))
        return UserListData(items=users)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to retrieve users: {str(e)}")


async def create_user_service(user_data: UserCreate) -> UserSaved:
    """
    Create an auth account and its profile.

    When an account with the email already exists its password (if given) is
    updated instead, and its profile is created or overwritten.
    """
    try:
        try:
            user_record = auth.get_user_by_email(user_data.email)
            if user_data.password:
                auth.update_user(user_record.uid, password=user_data.password)
            logger.info("Updating existing user %s", user_record.uid)
        except UserNotFoundError:
            if not user_data.password:
                raise HTTPException(status_code=400, detail="A password is required for a new user")
            user_record = auth.create_user(
                email=user_data.email,
                password=user_data.password,
                display_name=user_data.fullName,
                email_verified=True
            )
            logger.info("Created user %s", user_record.uid)

        _upsert_profile(user_record.uid, user_data.email, user_data.fullName, user_data.role)
        return UserSaved(userId=user_record.uid)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=400, detail=str(e))


async def update_user_service(user_id: str, update_data: UserUpdate) -> UserSaved:
    """Update the auth account (email, password) and the profile of a user."""
    try:
        # Profiles are only written for accounts that exist
        auth.get_user(user_id)

        auth_changes = {}
        if update_data.email is not None:
            auth_changes["email"] = update_data.email
        if update_data.password:
            auth_changes["password"] = update_data.password
        if auth_changes:
            auth.update_user(user_id, **auth_changes)

        _upsert_profile(user_id, update_data.email, update_data.fullName, update_data.role)
        return UserSaved(userId=user_id, message="User updated successfully")
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    except Exception as e:
        raise HTTPException(status_code=400, detail=str(e))


async def delete_user_service(user_id: str) -> bool:
    """Delete the profile of a user, then the auth account."""
    try:
        db = get_firestore_client()
        db.collection(PROFILES_COLLECTION).document(user_id).delete()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete profile: {str(e)}")

    try:
        auth.delete_user(user_id)
    except UserNotFoundError:
        logger.warning("User %s had a profile but no auth account", user_id)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Failed to delete user: {str(e)}")

    logger.info("Deleted user %s", user_id)
    return True
