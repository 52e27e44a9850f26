"""
In-process document store.

Used when USE_MOCK_DB=true (local development without Firebase credentials)
and by the test suite. Mirrors the Firestore backend's semantics: documents
are copied on the way in and out, and each primitive runs under one lock so
it is atomic with respect to concurrent requests.
"""

import copy
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from civicworks.core.exceptions import ConflictError, NotFoundError
from civicworks.stores.base import (
    CommentStore,
    NotificationStore,
    ReportStore,
    StoreBundle,
    UserStore,
    build_history_entry,
)
from civicworks.utils.time import parse_timestamp

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex[:20]


def _newest_first(docs: List[Dict]) -> List[Dict]:
    # Equal timestamps keep latest-inserted first
    ordered = list(reversed(docs))
    ordered.sort(key=lambda d: parse_timestamp(d.get("created_at")) or _EPOCH, reverse=True)
    return ordered


class MemoryDatabase:
    """Named collections of documents guarded by a single re-entrant lock."""

    def __init__(self):
        self.lock = threading.RLock()
        self.collections: Dict[str, Dict[str, Dict]] = {}

    def collection(self, name: str) -> Dict[str, Dict]:
        return self.collections.setdefault(name, {})


class _MemoryCollection:
    collection_name = ""

    def __init__(self, database: MemoryDatabase):
        self.database = database

    @property
    def _docs(self) -> Dict[str, Dict]:
        return self.database.collection(self.collection_name)

    def _insert(self, data: Dict) -> Dict:
        doc = copy.deepcopy(data)
        doc["id"] = doc.get("id") or _new_id()
        with self.database.lock:
            self._docs[doc["id"]] = doc
            return copy.deepcopy(doc)

    def _get(self, doc_id: str) -> Optional[Dict]:
        with self.database.lock:
            doc = self._docs.get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def _require(self, doc_id: str, resource: str) -> Dict:
        """Live document for in-place mutation; caller must hold the lock."""
        doc = self._docs.get(doc_id)
        if doc is None:
            raise NotFoundError(resource, doc_id)
        return doc

    def _select(self, equals: Optional[Dict[str, Any]] = None) -> List[Dict]:
        equals = {k: v for k, v in (equals or {}).items() if v is not None}
        with self.database.lock:
            return [
                copy.deepcopy(doc) for doc in self._docs.values()
                if all(doc.get(k) == v for k, v in equals.items())
            ]


class MemoryReportStore(_MemoryCollection, ReportStore):
    collection_name = "reports"

    def create(self, data: Dict) -> Dict:
        return self._insert(data)

    def get(self, report_id: str) -> Optional[Dict]:
        return self._get(report_id)

    def delete(self, report_id: str) -> bool:
        with self.database.lock:
            return self._docs.pop(report_id, None) is not None

    def update(self, report_id: str, fields: Dict, history_entry=None) -> Dict:
        with self.database.lock:
            doc = self._require(report_id, "Report")
            entry = None
            if history_entry is not None:
                entry = build_history_entry(history_entry, copy.deepcopy(doc))
            doc.update(copy.deepcopy(fields))
            if entry is not None:
                doc.setdefault("status_history", []).append(copy.deepcopy(entry))
            return copy.deepcopy(doc)

    def resolve(self, report_id, resolved_at, history_entry, after_photos=None, fields=None) -> Dict:
        with self.database.lock:
            doc = self._require(report_id, "Report")
            entry = build_history_entry(history_entry, copy.deepcopy(doc))
            doc.update(copy.deepcopy(fields or {}))
            doc["status"] = "resolved"
            if doc.get("resolved_at") is None:
                doc["resolved_at"] = resolved_at
            if after_photos:
                doc["after_photos"] = list(after_photos)
            doc.setdefault("status_history", []).append(copy.deepcopy(entry))
            return copy.deepcopy(doc)

    def toggle_member(self, report_id, field, user_id, exclusive_with=None, fields=None) -> Tuple[Dict, bool, bool]:
        with self.database.lock:
            doc = self._require(report_id, "Report")
            removed_from_other = False
            if exclusive_with:
                others = doc.get(exclusive_with, [])
                removed_from_other = user_id in others
                doc[exclusive_with] = [u for u in others if u != user_id]
            members = doc.get(field, [])
            if user_id in members:
                doc[field] = [u for u in members if u != user_id]
                is_member = False
            else:
                doc[field] = members + [user_id]
                is_member = True
            doc.update(copy.deepcopy(fields or {}))
            return copy.deepcopy(doc), is_member, removed_from_other

    def add_view(self, report_id: str, user_id: Optional[str] = None) -> Tuple[int, bool]:
        with self.database.lock:
            doc = self._require(report_id, "Report")
            if user_id is not None:
                viewed_by = doc.setdefault("viewed_by", [])
                if user_id in viewed_by:
                    return doc.get("view_count", 0), False
                viewed_by.append(user_id)
            doc["view_count"] = doc.get("view_count", 0) + 1
            return doc["view_count"], True

    def find(self, equals: Optional[Dict[str, Any]] = None) -> List[Dict]:
        return _newest_first(self._select(equals))


class MemoryUserStore(_MemoryCollection, UserStore):
    collection_name = "users"

    def create(self, data: Dict) -> Dict:
        with self.database.lock:
            if self.get_by_email(data.get("email", "")) is not None:
                raise ConflictError(f"A user with email {data.get('email')} already exists")
            return self._insert(data)

    def get(self, user_id: str) -> Optional[Dict]:
        return self._get(user_id)

    def get_by_email(self, email: str) -> Optional[Dict]:
        matches = self._select({"email": email})
        return matches[0] if matches else None

    def update(self, user_id: str, fields: Dict) -> Dict:
        with self.database.lock:
            doc = self._require(user_id, "User")
            for key, value in fields.items():
                target = doc
                *parents, leaf = key.split(".")
                for parent in parents:
                    if not isinstance(target.get(parent), dict):
                        target[parent] = {}
                    target = target[parent]
                target[leaf] = copy.deepcopy(value)
            return copy.deepcopy(doc)

    def increment(self, user_id: str, deltas: Dict[str, int]) -> None:
        with self.database.lock:
            doc = self._require(user_id, "User")
            for field, delta in deltas.items():
                doc[field] = doc.get(field, 0) + delta

    def grant_badges(self, user_id: str, badge_points: Dict[str, int]) -> List[str]:
        with self.database.lock:
            doc = self._require(user_id, "User")
            held = doc.setdefault("badges", [])
            granted = [badge_id for badge_id in badge_points if badge_id not in held]
            held.extend(granted)
            doc["points"] = doc.get("points", 0) + sum(badge_points[b] for b in granted)
            return granted


class MemoryCommentStore(_MemoryCollection, CommentStore):
    collection_name = "comments"

    def create(self, data: Dict) -> Dict:
        return self._insert(data)

    def get(self, comment_id: str) -> Optional[Dict]:
        return self._get(comment_id)

    def delete(self, comment_id: str) -> bool:
        with self.database.lock:
            return self._docs.pop(comment_id, None) is not None

    def list_for_report(self, report_id: str) -> List[Dict]:
        return _newest_first(self._select({"report_id": report_id}))

    def delete_for_report(self, report_id: str) -> int:
        with self.database.lock:
            doomed = [cid for cid, doc in self._docs.items() if doc.get("report_id") == report_id]
            for cid in doomed:
                del self._docs[cid]
            return len(doomed)


class MemoryNotificationStore(_MemoryCollection, NotificationStore):
    collection_name = "notifications"

    def create(self, data: Dict) -> Dict:
        return self._insert(data)

    def _for_user(self, user_id: str, unread_only: bool) -> List[Dict]:
        equals = {"recipient": user_id}
        if unread_only:
            equals["read"] = False
        return self._select(equals)

    def list_for_user(self, user_id, unread_only=False, offset=0, limit=None) -> List[Dict]:
        items = _newest_first(self._for_user(user_id, unread_only))
        end = None if limit is None else offset + limit
        return items[offset:end]

    def count_for_user(self, user_id: str, unread_only: bool = False) -> int:
        return len(self._for_user(user_id, unread_only))

    def mark_read(self, notification_id: str, user_id: str, read_at: datetime) -> Optional[Dict]:
        with self.database.lock:
            doc = self._docs.get(notification_id)
            if doc is None or doc.get("recipient") != user_id:
                return None
            doc["read"] = True
            doc["read_at"] = read_at
            return copy.deepcopy(doc)

    def mark_all_read(self, user_id: str, read_at: datetime) -> int:
        with self.database.lock:
            updated = 0
            for doc in self._docs.values():
                if doc.get("recipient") == user_id and not doc.get("read"):
                    doc["read"] = True
                    doc["read_at"] = read_at
                    updated += 1
            return updated

    def delete(self, notification_id: str, user_id: str) -> bool:
        with self.database.lock:
            doc = self._docs.get(notification_id)
            if doc is None or doc.get("recipient") != user_id:
                return False
            del self._docs[notification_id]
            return True


def create_memory_stores(database: Optional[MemoryDatabase] = None) -> StoreBundle:
    database = database or MemoryDatabase()
    return StoreBundle(
        reports=MemoryReportStore(database),
        users=MemoryUserStore(database),
        comments=MemoryCommentStore(database),
        notifications=MemoryNotificationStore(database),
        backend="memory",
    )
