"""
Environment and connection diagnostics.
"""
import logging
import os

from minimarket.common import cache
from minimarket.common.database import SETTINGS_COLLECTION, get_firestore_client
from .schemas import ConnectionStatus, EnvironmentStatus

logger = logging.getLogger(__name__)


def check_environment() -> EnvironmentStatus:
    return EnvironmentStatus(
        firebaseCredentials=bool(
            os.environ.get("FIREBASE_CREDENTIALS_JSON_CONTENT") or os.environ.get("FIREBASE_CREDENTIALS_FILE")
        ),
        firebaseProjectId=bool(os.environ.get("FIREBASE_PROJECT_ID")),
        redisConfigured=bool(os.environ.get("REDIS_URL")),
        redisAvailable=cache.get_redis_client() is not None,
        environment=os.environ.get("ENV", "production")
    )


def probe_store_connection() -> ConnectionStatus:
    """
    Read at most one settings document to prove the store answers.

    An empty collection still counts as a working connection.
    """
    try:
        db = get_firestore_client()
        docs = list(db.collection(SETTINGS_COLLECTION).limit(1).stream())
    except Exception as e:
        logger.error("Error testing store connection: %s", e)
        return ConnectionStatus(success=False, error=f"Failed to connect to the store: {str(e)}")

    if not docs:
        return ConnectionStatus(
            success=True,
            message="Connected to the store, but no settings have been saved yet."
        )
    return ConnectionStatus(success=True, message="Successfully connected to the store.")
