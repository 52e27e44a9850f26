"""
Store backend selection.

USE_MOCK_DB=true selects the in-process memory backend; otherwise the
Firestore backend is initialized from the configured credentials.
"""

import logging
from typing import Optional

from civicworks.core.settings import settings
from civicworks.stores.base import StoreBundle
from civicworks.stores.memory_store import create_memory_stores

logger = logging.getLogger(__name__)

_stores: Optional[StoreBundle] = None


def _build_stores() -> StoreBundle:
    if settings.USE_MOCK_DB:
        logger.info("[STORES] USING IN-MEMORY DOCUMENT STORE")
        return create_memory_stores()

    from civicworks.config.firebase import get_db
    from civicworks.stores.firestore_store import create_firestore_stores

    logger.info("[STORES] USING FIRESTORE DOCUMENT STORE")
    return create_firestore_stores(get_db())


def get_stores() -> StoreBundle:
    """Get or create the configured StoreBundle singleton."""
    global _stores
    if _stores is None:
        _stores = _build_stores()
    return _stores
