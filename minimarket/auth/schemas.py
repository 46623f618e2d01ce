"""
This module defines the Pydantic models used for authentication.
These models are used for request and response validation and serialization.
"""

from typing import Optional

from pydantic import BaseModel


class ProfileData(BaseModel):
    """
    Profile of the signed-in user, as used by the role checks.
    """
    id: str
    fullName: Optional[str] = None
    username: Optional[str] = None
    role: str
