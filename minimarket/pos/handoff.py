"""
Transient hand-off of a persisted sale from the sales history to the POS.

The payload lives in Redis under one key per user and is consumed once.
"""
import logging
import os
from typing import Optional

from minimarket.common.cache import pop_cache, set_cache
from minimarket.pos.exceptions import TransientStorageUnavailable
from minimarket.pos.schemas import PendingSale

logger = logging.getLogger(__name__)

PENDING_SALE_TTL = int(os.environ.get("PENDING_SALE_TTL", 3600))


def pending_sale_key(user_id: str) -> str:
    return f"pending_sale:{user_id}"


async def save_pending_sale(user_id: str, pending_sale: PendingSale) -> None:
    """
    Store the sale to continue, replacing any earlier one for this user.

    Raises:
        TransientStorageUnavailable: If Redis did not accept the payload
    """
    stored = await set_cache(pending_sale_key(user_id), pending_sale.model_dump(mode="json"), PENDING_SALE_TTL)
    if not stored:
        raise TransientStorageUnavailable()
    logger.info("Sale %s handed over to the POS of %s", pending_sale.saleId, user_id)


async def consume_pending_sale(user_id: str) -> Optional[PendingSale]:
    """
    Take the pending sale of a user, removing it from storage.

    Returns:
        The payload, or None if there is nothing to continue
    """
    data = await pop_cache(pending_sale_key(user_id))
    if not data:
        return None
    return PendingSale(**data)
