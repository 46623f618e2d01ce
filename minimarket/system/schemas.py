"""
Schemas of the diagnostics endpoints.
"""
from typing import Optional

from pydantic import BaseModel


class EnvironmentStatus(BaseModel):
    """Which pieces of configuration are present. Values are never echoed."""
    firebaseCredentials: bool
    firebaseProjectId: bool
    redisConfigured: bool
    redisAvailable: bool
    environment: str


class ConnectionStatus(BaseModel):
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
