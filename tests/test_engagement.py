"""Likes, dislikes, false-report flags and views."""

import threading

import pytest

from civicworks.core.exceptions import NotFoundError


class TestReactions:

    def test_like_then_unlike_restores_state(self, container, make_report, neighbor, stores):
        report = make_report()

        liked = container.engagement.toggle_like(report["id"], neighbor["id"])
        assert liked == {"likes": 1, "dislikes": 0, "liked": True, "disliked": False}

        unliked = container.engagement.toggle_like(report["id"], neighbor["id"])
        assert unliked == {"likes": 0, "dislikes": 0, "liked": False, "disliked": False}
        assert stores.reports.get(report["id"])["likes"] == []

    def test_like_and_dislike_are_exclusive(self, container, make_report, neighbor, stores):
        report = make_report()

        container.engagement.toggle_dislike(report["id"], neighbor["id"])
        result = container.engagement.toggle_like(report["id"], neighbor["id"])
        assert result == {"likes": 1, "dislikes": 0, "liked": True, "disliked": False}

        result = container.engagement.toggle_dislike(report["id"], neighbor["id"])
        assert result == {"likes": 0, "dislikes": 1, "liked": False, "disliked": True}

        stored = stores.reports.get(report["id"])
        assert neighbor["id"] not in stored["likes"]
        assert stored["dislikes"] == [neighbor["id"]]

    def test_owner_like_counter_follows_likes(self, container, make_report, owner, neighbor):
        report = make_report()

        container.engagement.toggle_like(report["id"], neighbor["id"])
        assert container.users.get_profile(owner["id"])["total_likes_received"] == 1

        # A dislike takes the like (and its credit) away
        container.engagement.toggle_dislike(report["id"], neighbor["id"])
        assert container.users.get_profile(owner["id"])["total_likes_received"] == 0

        # Removing a dislike changes nothing for the owner
        container.engagement.toggle_dislike(report["id"], neighbor["id"])
        assert container.users.get_profile(owner["id"])["total_likes_received"] == 0

    def test_false_report_flag_is_independent(self, container, make_report, neighbor, stores):
        report = make_report()
        container.engagement.toggle_like(report["id"], neighbor["id"])

        assert container.engagement.toggle_false_report(report["id"], neighbor["id"]) == {
            "false_reports": 1, "flagged": True
        }
        assert stores.reports.get(report["id"])["likes"] == [neighbor["id"]]
        assert container.engagement.toggle_false_report(report["id"], neighbor["id"]) == {
            "false_reports": 0, "flagged": False
        }

    def test_unknown_report(self, container, neighbor):
        with pytest.raises(NotFoundError):
            container.engagement.toggle_like("missing", neighbor["id"])

    def test_concurrent_toggles_never_leave_user_in_both_sets(self, container, make_report, neighbor, stores):
        report = make_report()

        def worker(toggle):
            for _ in range(25):
                toggle(report["id"], neighbor["id"])

        threads = [
            threading.Thread(target=worker, args=(container.engagement.toggle_like,)),
            threading.Thread(target=worker, args=(container.engagement.toggle_dislike,)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stored = stores.reports.get(report["id"])
        assert not (set(stored["likes"]) & set(stored["dislikes"]))
        assert len(stored["likes"]) <= 1 and len(stored["dislikes"]) <= 1


class TestRecordView:

    def test_signed_in_user_counts_once(self, container, make_report, neighbor):
        report = make_report()

        assert container.engagement.record_view(report["id"], neighbor["id"]) == {
            "view_count": 1, "is_new_view": True
        }
        assert container.engagement.record_view(report["id"], neighbor["id"]) == {
            "view_count": 1, "is_new_view": False
        }

    def test_anonymous_views_always_count(self, container, make_report):
        report = make_report()

        container.engagement.record_view(report["id"])
        result = container.engagement.record_view(report["id"])

        assert result == {"view_count": 2, "is_new_view": True}

    def test_concurrent_views_by_same_user_count_once(self, container, make_report, neighbor, stores):
        report = make_report()
        results = []

        def view():
            results.append(container.engagement.record_view(report["id"], neighbor["id"]))

        threads = [threading.Thread(target=view) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stored = stores.reports.get(report["id"])
        assert stored["view_count"] == 1
        assert stored["viewed_by"] == [neighbor["id"]]
        assert sum(1 for r in results if r["is_new_view"]) == 1

    def test_unknown_report(self, container):
        with pytest.raises(NotFoundError):
            container.engagement.record_view("missing")
