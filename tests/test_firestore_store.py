"""Firestore backend: transactional primitives and batch writes against a mocked client."""

from datetime import datetime, timezone
from unittest import mock

import pytest
from firebase_admin import firestore
from google.api_core.exceptions import Conflict, NotFound

from civicworks.core.exceptions import ConflictError, NotFoundError
from civicworks.stores import firestore_store
from civicworks.stores.firestore_store import (
    BATCH_LIMIT,
    FirestoreCommentStore,
    FirestoreNotificationStore,
    FirestoreReportStore,
    FirestoreUserStore,
)

NOW = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def snapshot(doc_id, data):
    snap = mock.MagicMock()
    snap.exists = data is not None
    snap.id = doc_id
    snap.to_dict.side_effect = lambda: dict(data) if data is not None else None
    snap.get.side_effect = lambda field: (data or {}).get(field)
    return snap


@pytest.fixture
def db(monkeypatch):
    # Transactions run their function once against the mocked transaction
    monkeypatch.setattr(firestore_store.firestore, "transactional", lambda func: func)
    client = mock.MagicMock()
    collections = {}
    client.collection.side_effect = lambda name: collections.setdefault(name, mock.MagicMock(name=name))
    return client


@pytest.fixture
def transaction(db):
    return db.transaction.return_value


def doc_ref(db, collection, data, doc_id="doc-1"):
    ref = db.collection(collection).document.return_value
    ref.id = doc_id
    ref.get.return_value = snapshot(doc_id, data)
    return ref


def written(transaction):
    """The update payload of the single transaction.update call."""
    transaction.update.assert_called_once()
    return transaction.update.call_args[0][1]


# =============================================================================
# Reports
# =============================================================================

class TestReportTransactions:

    def test_reads_through_the_transaction(self, db, transaction):
        ref = doc_ref(db, "reports", {"status": "pending"})

        FirestoreReportStore(db).update("doc-1", {"priority": "high"})

        ref.get.assert_called_once_with(transaction=transaction)
        assert written(transaction) == {"priority": "high"}

    def test_missing_report(self, db, transaction):
        doc_ref(db, "reports", None)

        with pytest.raises(NotFoundError):
            FirestoreReportStore(db).update("doc-1", {"priority": "high"})
        transaction.update.assert_not_called()

    def test_update_appends_history_built_from_stored_status(self, db, transaction):
        history = [{"status": "pending", "note": "Report created"}]
        doc_ref(db, "reports", {"status": "under_review", "status_history": history})
        seen = []

        def entry(current):
            seen.append(current["status"])
            return {"status": current["status"], "note": "Escalated: flood"}

        report = FirestoreReportStore(db).update("doc-1", {"is_emergency": True}, history_entry=entry)

        assert seen == ["under_review"]
        assert written(transaction)["status_history"] == history + [
            {"status": "under_review", "note": "Escalated: flood"}
        ]
        assert report["is_emergency"] is True

    def test_resolve_sets_resolved_at_first_time(self, db, transaction):
        doc_ref(db, "reports", {"status": "in_progress", "resolved_at": None})

        report = FirestoreReportStore(db).resolve(
            "doc-1", resolved_at=NOW, history_entry={"status": "resolved"}, after_photos=["/a.jpg"]
        )

        updates = written(transaction)
        assert updates["status"] == "resolved"
        assert updates["resolved_at"] == NOW
        assert updates["after_photos"] == ["/a.jpg"]
        assert report["resolved_at"] == NOW

    def test_resolve_keeps_earlier_resolved_at(self, db, transaction):
        first = datetime(2024, 2, 1, tzinfo=timezone.utc)
        doc_ref(db, "reports", {"status": "pending", "resolved_at": first, "after_photos": ["/old.jpg"]})

        report = FirestoreReportStore(db).resolve("doc-1", resolved_at=NOW, history_entry={"status": "resolved"})

        updates = written(transaction)
        assert "resolved_at" not in updates
        assert "after_photos" not in updates
        assert report["resolved_at"] == first

    def test_resolve_passes_pre_write_status_to_history_builder(self, db, transaction):
        doc_ref(db, "reports", {"status": "rejected"})

        FirestoreReportStore(db).resolve(
            "doc-1", resolved_at=NOW,
            history_entry=lambda current: {"status": "resolved", "note": f"from {current['status']}"}
        )

        assert written(transaction)["status_history"] == [{"status": "resolved", "note": "from rejected"}]


class TestToggleMember:

    def test_like_removes_dislike_in_same_write(self, db, transaction):
        doc_ref(db, "reports", {"likes": [], "dislikes": ["u1", "u2"]})

        report, is_member, removed = FirestoreReportStore(db).toggle_member(
            "doc-1", "likes", "u1", exclusive_with="dislikes", fields={"updated_at": NOW}
        )

        updates = written(transaction)
        assert isinstance(updates["likes"], firestore.ArrayUnion)
        assert updates["likes"].values == ["u1"]
        assert isinstance(updates["dislikes"], firestore.ArrayRemove)
        assert updates["dislikes"].values == ["u1"]
        assert updates["updated_at"] == NOW
        assert (is_member, removed) == (True, True)
        assert report["likes"] == ["u1"]
        assert report["dislikes"] == ["u2"]

    def test_second_toggle_removes_member(self, db, transaction):
        doc_ref(db, "reports", {"false_reports": ["u1"]})

        report, is_member, removed = FirestoreReportStore(db).toggle_member("doc-1", "false_reports", "u1")

        updates = written(transaction)
        assert isinstance(updates["false_reports"], firestore.ArrayRemove)
        assert set(updates) == {"false_reports"}
        assert (is_member, removed) == (False, False)
        assert report["false_reports"] == []


class TestAddView:

    def test_repeat_viewer_is_not_counted(self, db, transaction):
        doc_ref(db, "reports", {"view_count": 4, "viewed_by": ["u1"]})

        assert FirestoreReportStore(db).add_view("doc-1", "u1") == (4, False)
        transaction.update.assert_not_called()

    def test_new_viewer_incremented_and_recorded(self, db, transaction):
        doc_ref(db, "reports", {"view_count": 4, "viewed_by": ["u1"]})

        assert FirestoreReportStore(db).add_view("doc-1", "u2") == (5, True)

        updates = written(transaction)
        assert isinstance(updates["view_count"], firestore.Increment)
        assert updates["view_count"].value == 1
        assert updates["viewed_by"].values == ["u2"]

    def test_anonymous_view_always_counts(self, db, transaction):
        doc_ref(db, "reports", {"view_count": 0})

        assert FirestoreReportStore(db).add_view("doc-1") == (1, True)
        assert set(written(transaction)) == {"view_count"}


class TestReportQueries:

    def test_find_chains_equality_filters_and_sorts(self, db):
        reports = db.collection("reports")
        query = reports.where.return_value
        query.stream.return_value = [
            snapshot("old", {"created_at": datetime(2024, 1, 1, tzinfo=timezone.utc)}),
            snapshot("new", {"created_at": datetime(2024, 2, 1, tzinfo=timezone.utc)}),
        ]

        found = FirestoreReportStore(db).find({"category": "road", "status": None})

        reports.where.assert_called_once_with("category", "==", "road")
        assert [r["id"] for r in found] == ["new", "old"]

    def test_delete_unknown_report(self, db):
        ref = doc_ref(db, "reports", None)

        assert FirestoreReportStore(db).delete("doc-1") is False
        ref.delete.assert_not_called()


# =============================================================================
# Users
# =============================================================================

class TestUserStore:

    def test_create_commits_reservation_and_user_together(self, db):
        user_ref = db.collection("users").document.return_value
        user_ref.id = "user-1"
        email_ref = db.collection("user_emails").document.return_value
        batch = db.batch.return_value

        user = FirestoreUserStore(db).create({"name": "Asha", "email": "Asha@Example.com"})

        db.collection("user_emails").document.assert_called_once_with("asha@example.com")
        batch.create.assert_called_once_with(email_ref, {"user_id": "user-1"})
        batch.set.assert_called_once_with(user_ref, user)
        batch.commit.assert_called_once_with()
        user_ref.set.assert_not_called()
        email_ref.create.assert_not_called()
        assert user["id"] == "user-1"

    def test_taken_email_is_conflict(self, db):
        db.batch.return_value.commit.side_effect = Conflict("exists")

        with pytest.raises(ConflictError):
            FirestoreUserStore(db).create({"name": "Asha", "email": "asha@example.com"})

    def test_update_passes_dotted_paths_through(self, db):
        ref = doc_ref(db, "users", {"notification_settings": {"likes": False}})

        FirestoreUserStore(db).update("doc-1", {"notification_settings.likes": False})

        ref.update.assert_called_once_with({"notification_settings.likes": False})

    def test_update_unknown_user(self, db):
        ref = doc_ref(db, "users", None)
        ref.update.side_effect = NotFound("missing")

        with pytest.raises(NotFoundError):
            FirestoreUserStore(db).update("doc-1", {"language": "hi"})

    def test_increment_uses_server_transforms(self, db):
        ref = doc_ref(db, "users", {})

        FirestoreUserStore(db).increment("doc-1", {"total_reports": 1, "points": 10})

        payload = ref.update.call_args[0][0]
        assert {field: value.value for field, value in payload.items()} == {"total_reports": 1, "points": 10}

    def test_grant_badges_adds_only_missing_ones(self, db, transaction):
        doc_ref(db, "users", {"badges": ["first_report"], "points": 60})

        granted = FirestoreUserStore(db).grant_badges(
            "doc-1", {"first_report": 50, "active_reporter": 50, "popular_voice": 50}
        )

        assert granted == ["active_reporter", "popular_voice"]
        updates = written(transaction)
        assert isinstance(updates["badges"], firestore.ArrayUnion)
        assert updates["badges"].values == ["active_reporter", "popular_voice"]
        assert updates["points"].value == 100

    def test_grant_badges_already_held(self, db, transaction):
        doc_ref(db, "users", {"badges": ["first_report"]})

        assert FirestoreUserStore(db).grant_badges("doc-1", {"first_report": 50}) == []
        transaction.update.assert_not_called()

    def test_grant_badges_unknown_user(self, db, transaction):
        doc_ref(db, "users", None)

        with pytest.raises(NotFoundError):
            FirestoreUserStore(db).grant_badges("doc-1", {"first_report": 50})


# =============================================================================
# Comments and notifications
# =============================================================================

class TestBatchWrites:

    def test_comment_cascade_splits_into_batches(self, db):
        docs = [mock.MagicMock() for _ in range(BATCH_LIMIT + 1)]
        db.collection("comments").where.return_value.stream.return_value = docs
        batches = [mock.MagicMock(), mock.MagicMock()]
        db.batch.side_effect = batches

        assert FirestoreCommentStore(db).delete_for_report("report-1") == BATCH_LIMIT + 1

        assert batches[0].delete.call_count == BATCH_LIMIT
        assert batches[1].delete.call_count == 1
        for batch in batches:
            batch.commit.assert_called_once_with()

    def test_mark_all_read_updates_unread_only(self, db):
        notifications = db.collection("notifications")
        unread = notifications.where.return_value.where.return_value
        unread.stream.return_value = [mock.MagicMock(), mock.MagicMock()]

        assert FirestoreNotificationStore(db).mark_all_read("user-1", NOW) == 2

        notifications.where.assert_called_once_with("recipient", "==", "user-1")
        notifications.where.return_value.where.assert_called_once_with("read", "==", False)
        batch = db.batch.return_value
        assert batch.update.call_args_list[0][0][1] == {"read": True, "read_at": NOW}
        batch.commit.assert_called_once_with()


class TestNotificationStore:

    def test_list_orders_newest_first_with_paging(self, db):
        ordered = db.collection("notifications").where.return_value.order_by.return_value
        ordered.offset.return_value.limit.return_value.stream.return_value = [snapshot("n1", {"read": False})]

        listed = FirestoreNotificationStore(db).list_for_user("user-1", offset=20, limit=20)

        db.collection("notifications").where.return_value.order_by.assert_called_once_with(
            "created_at", direction=firestore.Query.DESCENDING
        )
        ordered.offset.assert_called_once_with(20)
        assert listed == [{"read": False, "id": "n1"}]

    def test_count_reads_aggregation_value(self, db):
        aggregate = mock.MagicMock(value=7)
        db.collection("notifications").where.return_value.count.return_value.get.return_value = [[aggregate]]

        assert FirestoreNotificationStore(db).count_for_user("user-1") == 7

    def test_other_users_notification_is_untouched(self, db):
        ref = doc_ref(db, "notifications", {"recipient": "user-2", "read": False})
        store = FirestoreNotificationStore(db)

        assert store.mark_read("doc-1", "user-1", NOW) is None
        assert store.delete("doc-1", "user-1") is False
        ref.update.assert_not_called()
        ref.delete.assert_not_called()

    def test_mark_read_own_notification(self, db):
        ref = doc_ref(db, "notifications", {"recipient": "user-1", "read": False})

        FirestoreNotificationStore(db).mark_read("doc-1", "user-1", NOW)

        ref.update.assert_called_once_with({"read": True, "read_at": NOW})
