"""
Document stores - persistence primitives for reports, users, comments and
notifications. Two backends share one contract: Firestore and in-memory.
"""

from civicworks.stores.base import (
    CommentStore,
    NotificationStore,
    ReportStore,
    StoreBundle,
    UserStore,
)
from civicworks.stores.memory_store import create_memory_stores
from civicworks.stores.registry import get_stores

__all__ = [
    "CommentStore",
    "NotificationStore",
    "ReportStore",
    "StoreBundle",
    "UserStore",
    "create_memory_stores",
    "get_stores",
]
