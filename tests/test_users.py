"""User registration, profile and preferences."""

import pytest

from civicworks.core.exceptions import ConflictError, NotFoundError, ValidationError


class TestRegistration:

    def test_new_user_defaults(self, container):
        user = container.users.create_user("Asha Rao", "Asha@Example.com", password_hash="opaque")

        assert user["email"] == "asha@example.com"
        assert user["role"] == "user"
        assert user["language"] == "en"
        assert user["badges"] == [] and user["points"] == 0
        assert user["notification_settings"] == {
            "status_updates": True, "comments": True, "likes": True, "email": False
        }
        assert "password_hash" not in user

    def test_duplicate_email(self, container):
        container.users.create_user("Asha", "asha@example.com")
        with pytest.raises(ConflictError):
            container.users.create_user("Asha Again", "ASHA@example.com")


class TestProfile:

    def test_profile_hides_credentials(self, container, make_user):
        user = make_user(password_hash="secret-hash")
        assert "password_hash" not in container.users.get_profile(user["id"])

    def test_unknown_user(self, container):
        with pytest.raises(NotFoundError):
            container.users.get_profile("nobody")

    def test_update_language(self, container, owner):
        assert container.users.update_language(owner["id"], "HI")["language"] == "hi"
        with pytest.raises(ValidationError):
            container.users.update_language(owner["id"], "fr")

    def test_partial_notification_settings(self, container, owner):
        updated = container.users.update_notification_settings(owner["id"], {"comments": False, "email": None})

        assert updated["notification_settings"] == {
            "status_updates": True, "comments": False, "likes": True, "email": False
        }

    def test_settings_written_per_flag(self, container, stores, owner, monkeypatch):
        writes = []
        original = stores.users.update

        def recording_update(user_id, fields):
            writes.append(dict(fields))
            return original(user_id, fields)

        monkeypatch.setattr(stores.users, "update", recording_update)

        container.users.update_notification_settings(owner["id"], {"likes": False, "comments": None})

        assert len(writes) == 1
        assert writes[0]["notification_settings.likes"] is False
        assert "notification_settings" not in writes[0]
        assert "notification_settings.comments" not in writes[0]

    def test_updates_of_different_flags_both_persist(self, container, stores, owner, monkeypatch):
        """A second update lands between the first one's read and write."""
        original = stores.users.update

        def racing_update(user_id, fields):
            monkeypatch.setattr(stores.users, "update", original)
            container.users.update_notification_settings(user_id, {"email": True})
            return original(user_id, fields)

        monkeypatch.setattr(stores.users, "update", racing_update)

        container.users.update_notification_settings(owner["id"], {"likes": False})

        assert stores.users.get(owner["id"])["notification_settings"] == {
            "status_updates": True, "comments": True, "likes": False, "email": True
        }

    def test_settings_filled_in_for_documents_without_them(self, container, stores, owner):
        stores.users.update(owner["id"], {"notification_settings": None})

        updated = container.users.update_notification_settings(owner["id"], {"email": True})

        assert updated["notification_settings"] == {
            "status_updates": True, "comments": True, "likes": True, "email": True
        }
        assert stores.users.get(owner["id"])["notification_settings"] == {"email": True}

    def test_unknown_notification_flag(self, container, owner):
        with pytest.raises(ValidationError):
            container.users.update_notification_settings(owner["id"], {"sms": True})

    def test_badges_overview(self, container, owner, make_report):
        make_report()

        overview = container.users.get_badges(owner["id"])

        assert [b["id"] for b in overview["badges"]] == ["first_report"]
        assert overview["points"] == 60
        assert overview["stats"]["total_reports"] == 1
        assert overview["stats"]["false_reports_caught"] == 0
        assert len(overview["available"]) == 7
