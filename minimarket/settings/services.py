"""
Settings provider shared by every endpoint that formats amounts or receipts.
"""
import logging
from typing import Optional

from fastapi import HTTPException

from minimarket.common.database import SETTINGS_COLLECTION, get_firestore_client
from minimarket.settings.schemas import AllSettings

logger = logging.getLogger(__name__)

SETTINGS_DOCUMENT = "store"


def _read_settings() -> AllSettings:
    db = get_firestore_client()
    doc = db.collection(SETTINGS_COLLECTION).document(SETTINGS_DOCUMENT).get()
    if not doc.exists:
        return AllSettings()

    stored = doc.to_dict() or {}
    # Unknown sections are ignored, missing ones take their defaults
    return AllSettings(**{section: value for section, value in stored.items()
                          if section in AllSettings.model_fields and isinstance(value, dict)})


class SettingsProvider:
    """
    Holds one copy of the settings for the whole process.

    The settings are read from the store on first use and only re-read when
    refresh() is called.
    """

    def __init__(self):
        self._settings: Optional[AllSettings] = None

    async def get(self) -> AllSettings:
        if self._settings is None:
            try:
                self._settings = _read_settings()
            except Exception as e:
                logger.warning("Could not load settings, using defaults: %s", e)
                return AllSettings()
        return self._settings

    async def refresh(self) -> AllSettings:
        """
        Reload the settings from the store.

        Raises:
            HTTPException: If the store cannot be read
        """
        try:
            self._settings = _read_settings()
        except Exception as e:
            raise HTTPException(
                status_code=500,
                detail=f"Failed to load settings: {str(e)}"
            )
        logger.info("Settings reloaded")
        return self._settings

    async def currency(self) -> str:
        return (await self.get()).general.currency

    def reset(self) -> None:
        self._settings = None


settings_provider = SettingsProvider()


def get_settings_provider() -> SettingsProvider:
    """FastAPI dependency returning the process-wide settings provider."""
    return settings_provider
