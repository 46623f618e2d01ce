"""
User management schemas for CRUD operations.
"""

from datetime import datetime
from typing import Literal, Optional, List

from pydantic import BaseModel, EmailStr, Field

UserRole = Literal["admin", "cashier"]


class UserCreate(BaseModel):
    """
    Schema for creating a user, or updating the one already registered with
    this email.
    """
    email: EmailStr
    password: Optional[str] = Field(None, min_length=6)
    fullName: Optional[str] = None
    role: UserRole = "cashier"


class UserUpdate(BaseModel):
    """
    Schema for updating a user. Omitted fields keep their value.
    """
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)
    fullName: Optional[str] = None
    role: Optional[UserRole] = None


class UserInfo(BaseModel):
    """
    Auth account merged with its profile.
    """
    id: str
    email: Optional[str] = None
    role: str = "cashier"
    fullName: Optional[str] = None
    username: Optional[str] = None
    createdAt: Optional[datetime] = None


class UserListData(BaseModel):
    items: List[UserInfo]


class UserSaved(BaseModel):
    """Confirmation of a create or update."""
    userId: str
    message: str = "User saved successfully"
