"""
Firestore-backed document stores.

Unconditional counter changes use server-side transforms (Increment).
Anything that depends on the current document (toggles, view dedup,
one-time resolved_at, badge grants, history appends) runs inside a
Firestore transaction, which retries on contention instead of overwriting
a concurrent write.

Composite indexes required:
- notifications: recipient ASC, created_at DESC
- notifications: recipient ASC, read ASC, created_at DESC
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from firebase_admin import firestore
from google.api_core.exceptions import Conflict, NotFound

from civicworks.core.exceptions import ConflictError, NotFoundError
from civicworks.stores.base import (
    CommentStore,
    NotificationStore,
    ReportStore,
    StoreBundle,
    UserStore,
    build_history_entry,
)
from civicworks.utils.firestore_helpers import apply_equality_filters, snapshot_to_dict, where_filter
from civicworks.utils.time import parse_timestamp

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
BATCH_LIMIT = 500


def _sort_newest_first(docs: List[Dict]) -> List[Dict]:
    return sorted(docs, key=lambda d: parse_timestamp(d.get("created_at")) or _EPOCH, reverse=True)


class _FirestoreCollection:
    collection_name = ""

    def __init__(self, db):
        self.db = db

    @property
    def _ref(self):
        return self.db.collection(self.collection_name)

    def _run_transaction(self, func, *args):
        transaction = self.db.transaction()
        return firestore.transactional(func)(transaction, *args)

    def _insert(self, data: Dict) -> Dict:
        doc_ref = self._ref.document()
        doc = dict(data)
        doc["id"] = doc_ref.id
        doc_ref.set(doc)
        return doc

    def _get(self, doc_id: str) -> Optional[Dict]:
        snapshot = self._ref.document(doc_id).get()
        if not snapshot.exists:
            return None
        return snapshot_to_dict(snapshot)


class FirestoreReportStore(_FirestoreCollection, ReportStore):
    collection_name = "reports"

    def create(self, data: Dict) -> Dict:
        return self._insert(data)

    def get(self, report_id: str) -> Optional[Dict]:
        return self._get(report_id)

    def delete(self, report_id: str) -> bool:
        doc_ref = self._ref.document(report_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        return True

    def _read_for_write(self, transaction, doc_ref) -> Dict:
        snapshot = doc_ref.get(transaction=transaction)
        if not snapshot.exists:
            raise NotFoundError("Report", doc_ref.id)
        return snapshot_to_dict(snapshot)

    def update(self, report_id: str, fields: Dict, history_entry=None) -> Dict:
        doc_ref = self._ref.document(report_id)

        def _apply(transaction, doc_ref):
            current = self._read_for_write(transaction, doc_ref)
            updates = dict(fields)
            if history_entry is not None:
                entry = build_history_entry(history_entry, dict(current))
                updates["status_history"] = current.get("status_history", []) + [entry]
            transaction.update(doc_ref, updates)
            current.update(updates)
            return current

        return self._run_transaction(_apply, doc_ref)

    def resolve(self, report_id, resolved_at, history_entry, after_photos=None, fields=None) -> Dict:
        doc_ref = self._ref.document(report_id)

        def _apply(transaction, doc_ref):
            current = self._read_for_write(transaction, doc_ref)
            entry = build_history_entry(history_entry, dict(current))
            updates = dict(fields or {})
            updates["status"] = "resolved"
            if current.get("resolved_at") is None:
                updates["resolved_at"] = resolved_at
            if after_photos:
                updates["after_photos"] = list(after_photos)
            updates["status_history"] = current.get("status_history", []) + [entry]
            transaction.update(doc_ref, updates)
            current.update(updates)
            return current

        return self._run_transaction(_apply, doc_ref)

    def toggle_member(self, report_id, field, user_id, exclusive_with=None, fields=None) -> Tuple[Dict, bool, bool]:
        doc_ref = self._ref.document(report_id)

        def _apply(transaction, doc_ref):
            current = self._read_for_write(transaction, doc_ref)
            updates = dict(fields or {})
            local = {}
            removed_from_other = False
            if exclusive_with:
                others = current.get(exclusive_with, [])
                removed_from_other = user_id in others
                updates[exclusive_with] = firestore.ArrayRemove([user_id])
                local[exclusive_with] = [u for u in others if u != user_id]
            members = current.get(field, [])
            is_member = user_id not in members
            if is_member:
                updates[field] = firestore.ArrayUnion([user_id])
                local[field] = members + [user_id]
            else:
                updates[field] = firestore.ArrayRemove([user_id])
                local[field] = [u for u in members if u != user_id]
            transaction.update(doc_ref, updates)
            current.update(fields or {})
            current.update(local)
            return current, is_member, removed_from_other

        return self._run_transaction(_apply, doc_ref)

    def add_view(self, report_id: str, user_id: Optional[str] = None) -> Tuple[int, bool]:
        doc_ref = self._ref.document(report_id)

        def _apply(transaction, doc_ref):
            current = self._read_for_write(transaction, doc_ref)
            view_count = current.get("view_count", 0)
            updates = {"view_count": firestore.Increment(1)}
            if user_id is not None:
                if user_id in current.get("viewed_by", []):
                    return view_count, False
                updates["viewed_by"] = firestore.ArrayUnion([user_id])
            transaction.update(doc_ref, updates)
            return view_count + 1, True

        return self._run_transaction(_apply, doc_ref)

    def find(self, equals: Optional[Dict[str, Any]] = None) -> List[Dict]:
        query = apply_equality_filters(self._ref, equals or {})
        return _sort_newest_first([snapshot_to_dict(doc) for doc in query.stream()])


class FirestoreUserStore(_FirestoreCollection, UserStore):
    """
    Users live in `users`; `user_emails/{email}` reserves each email so
    uniqueness is enforced by Firestore's create-if-absent. The reservation
    and the user document are committed in one batch.
    """

    collection_name = "users"

    def create(self, data: Dict) -> Dict:
        doc_ref = self._ref.document()
        email_ref = self.db.collection("user_emails").document(data["email"].lower())
        doc = dict(data)
        doc["id"] = doc_ref.id
        batch = self.db.batch()
        batch.create(email_ref, {"user_id": doc_ref.id})
        batch.set(doc_ref, doc)
        try:
            batch.commit()
        except Conflict as e:
            raise ConflictError(f"A user with email {data['email']} already exists") from e
        return doc

    def get(self, user_id: str) -> Optional[Dict]:
        return self._get(user_id)

    def get_by_email(self, email: str) -> Optional[Dict]:
        docs = list(where_filter(self._ref, "email", "==", email).limit(1).stream())
        return snapshot_to_dict(docs[0]) if docs else None

    def update(self, user_id: str, fields: Dict) -> Dict:
        doc_ref = self._ref.document(user_id)
        try:
            doc_ref.update(fields)
        except NotFound as e:
            raise NotFoundError("User", user_id) from e
        return snapshot_to_dict(doc_ref.get())

    def increment(self, user_id: str, deltas: Dict[str, int]) -> None:
        try:
            self._ref.document(user_id).update(
                {field: firestore.Increment(delta) for field, delta in deltas.items()}
            )
        except NotFound as e:
            raise NotFoundError("User", user_id) from e

    def grant_badges(self, user_id: str, badge_points: Dict[str, int]) -> List[str]:
        doc_ref = self._ref.document(user_id)

        def _apply(transaction, doc_ref):
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise NotFoundError("User", user_id)
            held = (snapshot.to_dict() or {}).get("badges", [])
            granted = [badge_id for badge_id in badge_points if badge_id not in held]
            if granted:
                transaction.update(doc_ref, {
                    "badges": firestore.ArrayUnion(granted),
                    "points": firestore.Increment(sum(badge_points[b] for b in granted)),
                })
            return granted

        return self._run_transaction(_apply, doc_ref)


class FirestoreCommentStore(_FirestoreCollection, CommentStore):
    collection_name = "comments"

    def create(self, data: Dict) -> Dict:
        return self._insert(data)

    def get(self, comment_id: str) -> Optional[Dict]:
        return self._get(comment_id)

    def delete(self, comment_id: str) -> bool:
        doc_ref = self._ref.document(comment_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        return True

    def list_for_report(self, report_id: str) -> List[Dict]:
        query = where_filter(self._ref, "report_id", "==", report_id)
        return _sort_newest_first([snapshot_to_dict(doc) for doc in query.stream()])

    def delete_for_report(self, report_id: str) -> int:
        docs = list(where_filter(self._ref, "report_id", "==", report_id).stream())
        for start in range(0, len(docs), BATCH_LIMIT):
            batch = self.db.batch()
            for doc in docs[start:start + BATCH_LIMIT]:
                batch.delete(doc.reference)
            batch.commit()
        return len(docs)


class FirestoreNotificationStore(_FirestoreCollection, NotificationStore):
    collection_name = "notifications"

    def create(self, data: Dict) -> Dict:
        return self._insert(data)

    def _query_for_user(self, user_id: str, unread_only: bool):
        query = where_filter(self._ref, "recipient", "==", user_id)
        if unread_only:
            query = where_filter(query, "read", "==", False)
        return query

    def list_for_user(self, user_id, unread_only=False, offset=0, limit=None) -> List[Dict]:
        query = self._query_for_user(user_id, unread_only).order_by(
            "created_at", direction=firestore.Query.DESCENDING
        )
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [snapshot_to_dict(doc) for doc in query.stream()]

    def count_for_user(self, user_id: str, unread_only: bool = False) -> int:
        results = self._query_for_user(user_id, unread_only).count().get()
        return int(results[0][0].value)

    def mark_read(self, notification_id: str, user_id: str, read_at: datetime) -> Optional[Dict]:
        doc_ref = self._ref.document(notification_id)
        snapshot = doc_ref.get()
        if not snapshot.exists or snapshot.get("recipient") != user_id:
            return None
        doc_ref.update({"read": True, "read_at": read_at})
        return snapshot_to_dict(doc_ref.get())

    def mark_all_read(self, user_id: str, read_at: datetime) -> int:
        docs = list(self._query_for_user(user_id, unread_only=True).stream())
        for start in range(0, len(docs), BATCH_LIMIT):
            batch = self.db.batch()
            for doc in docs[start:start + BATCH_LIMIT]:
                batch.update(doc.reference, {"read": True, "read_at": read_at})
            batch.commit()
        return len(docs)

    def delete(self, notification_id: str, user_id: str) -> bool:
        doc_ref = self._ref.document(notification_id)
        snapshot = doc_ref.get()
        if not snapshot.exists or snapshot.get("recipient") != user_id:
            return False
        doc_ref.delete()
        return True


def create_firestore_stores(db) -> StoreBundle:
    return StoreBundle(
        reports=FirestoreReportStore(db),
        users=FirestoreUserStore(db),
        comments=FirestoreCommentStore(db),
        notifications=FirestoreNotificationStore(db),
        backend="firestore",
    )
