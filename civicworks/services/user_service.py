"""
User Service - registration, profile, preferences and badge overview.

Credentials are verified by the identity provider; this service only stores
the opaque hash it is handed and never returns it.
"""

from datetime import datetime
from typing import Callable, Dict, Optional
import logging

from civicworks.core.exceptions import NotFoundError, ValidationError
from civicworks.models.user import Language, NotificationSettings, StatsSnapshot, UserRole
from civicworks.services.badge_service import BadgeRuleEngine
from civicworks.stores.base import UserStore
from civicworks.utils.time import utcnow

logger = logging.getLogger(__name__)

PRIVATE_FIELDS = ("password_hash",)


def _public(user: Dict) -> Dict:
    return {k: v for k, v in user.items() if k not in PRIVATE_FIELDS}


class UserService:
    """
    Service for user management.
    """

    def __init__(self, users: UserStore, badges: BadgeRuleEngine, clock: Callable[[], datetime] = utcnow):
        self.users = users
        self.badges = badges
        self.clock = clock

    def _require_user(self, user_id: str) -> Dict:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def create_user(
        self,
        name: str,
        email: str,
        password_hash: Optional[str] = None,
        role: str = UserRole.USER.value,
        language: str = Language.EN.value
    ) -> Dict:
        """
        Register a user with zeroed stats and default preferences.

        Raises:
            ConflictError: If the email is already registered
        """
        now = self.clock()
        user = self.users.create({
            "name": name.strip(),
            "email": self._normalize_email(email),
            "password_hash": password_hash,
            "role": UserRole(role).value,
            "language": Language(language).value,
            "badges": [],
            "points": 0,
            "notification_settings": NotificationSettings().model_dump(),
            "total_reports": 0,
            "total_likes_received": 0,
            "total_comments_received": 0,
            "emergency_reports": 0,
            "created_at": now,
            "updated_at": now,
        })
        logger.info(f"User created: {user['id']}")
        return _public(user)

    def get_profile(self, user_id: str) -> Dict:
        return _public(self._require_user(user_id))

    def update_language(self, user_id: str, language: str) -> Dict:
        try:
            language = Language((language or "").strip().lower()).value
        except ValueError:
            allowed = [lang.value for lang in Language]
            raise ValidationError(f"Unsupported language '{language}'. Allowed: {allowed}", field="language")
        self._require_user(user_id)
        return _public(self.users.update(user_id, {"language": language, "updated_at": self.clock()}))

    def update_notification_settings(self, user_id: str, changes: Dict) -> Dict:
        """
        Set the given flags on the user's notification settings.

        Each flag is written as its own field path, so concurrent updates of
        different flags do not overwrite each other.
        """
        unknown = sorted(set(changes) - set(NotificationSettings.model_fields))
        if unknown:
            raise ValidationError(f"Unknown notification settings: {unknown}", field="notification_settings")
        self._require_user(user_id)
        fields = {
            f"notification_settings.{flag}": bool(value)
            for flag, value in changes.items() if value is not None
        }
        fields["updated_at"] = self.clock()
        updated = self.users.update(user_id, fields)
        # Older documents may lack some flags
        updated["notification_settings"] = NotificationSettings(
            **(updated.get("notification_settings") or {})
        ).model_dump()
        return _public(updated)

    def get_badges(self, user_id: str) -> Dict:
        """Earned badges with catalog details, points, stats and the full catalog."""
        user = self._require_user(user_id)
        earned = []
        for badge_id in user.get("badges") or []:
            rule = self.badges.get_rule(badge_id)
            if rule is not None:
                earned.append(rule.to_dict())
        return {
            "badges": earned,
            "points": user.get("points") or 0,
            "stats": StatsSnapshot.from_user(user).model_dump(),
            "available": self.badges.list_catalog(),
        }

    def _normalize_email(self, email: str) -> str:
        return (email or "").strip().lower()
