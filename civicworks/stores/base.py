"""
Document store contracts.

Every backend must implement these primitives as single-document atomic
operations. The services never read a counter or set, modify it and write
it back; anything conditional (view dedup, like/dislike exclusivity, one-time
resolved_at, badge grants) is a primitive here so the backend can run it
inside a transaction or under a lock.

Documents are plain dicts carrying their "id".
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

# A ready history entry, or a builder called with the report as stored just
# before the write, inside the same lock or transaction.
HistoryEntry = Union[Dict, Callable[[Dict], Dict]]


def build_history_entry(history_entry: HistoryEntry, current: Dict) -> Dict:
    if callable(history_entry):
        return history_entry(current)
    return history_entry


class ReportStore(ABC):
    """Reports collection."""

    @abstractmethod
    def create(self, data: Dict) -> Dict:
        """Insert a new report and return it with its generated id."""

    @abstractmethod
    def get(self, report_id: str) -> Optional[Dict]:
        pass

    @abstractmethod
    def delete(self, report_id: str) -> bool:
        """Hard delete. Returns False when the report did not exist."""

    @abstractmethod
    def update(self, report_id: str, fields: Dict, history_entry: Optional[HistoryEntry] = None) -> Dict:
        """
        Set `fields` and optionally append one status_history entry in a
        single write. A callable entry sees the report before `fields` are
        applied. Raises NotFoundError for an unknown id.
        """

    @abstractmethod
    def resolve(
        self,
        report_id: str,
        resolved_at: datetime,
        history_entry: HistoryEntry,
        after_photos: Optional[List[str]] = None,
        fields: Optional[Dict] = None
    ) -> Dict:
        """
        Move the report to `resolved`. resolved_at is written only when the
        report has never been resolved before. A callable history entry sees
        the report before the move.
        """

    @abstractmethod
    def toggle_member(
        self,
        report_id: str,
        field: str,
        user_id: str,
        exclusive_with: Optional[str] = None,
        fields: Optional[Dict] = None
    ) -> Tuple[Dict, bool, bool]:
        """
        Toggle `user_id` in the array `field`. When `exclusive_with` names
        another array the user is removed from it in the same write.

        Returns (updated report, True if the user is now a member,
        True if the user was removed from `exclusive_with`).
        """

    @abstractmethod
    def add_view(self, report_id: str, user_id: Optional[str] = None) -> Tuple[int, bool]:
        """
        Count a view. Anonymous views always count; a user id counts once.

        Returns (view_count after the call, whether this call counted).
        """

    @abstractmethod
    def find(self, equals: Optional[Dict[str, Any]] = None) -> List[Dict]:
        """All reports matching the equality filters, newest first."""


class UserStore(ABC):
    """Users collection, including the denormalized stats counters."""

    @abstractmethod
    def create(self, data: Dict) -> Dict:
        """Insert a user. Raises ConflictError when the email is taken."""

    @abstractmethod
    def get(self, user_id: str) -> Optional[Dict]:
        pass

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[Dict]:
        pass

    @abstractmethod
    def update(self, user_id: str, fields: Dict) -> Dict:
        """
        Set top-level fields. A dotted key (`notification_settings.likes`)
        sets one entry of a map field and leaves its siblings untouched.
        """

    @abstractmethod
    def increment(self, user_id: str, deltas: Dict[str, int]) -> None:
        """Atomically add each delta to its counter field."""

    @abstractmethod
    def grant_badges(self, user_id: str, badge_points: Dict[str, int]) -> List[str]:
        """
        Add every badge in `badge_points` the user does not hold yet and add
        its points, in one conditional write. Returns the ids actually granted.
        """


class CommentStore(ABC):
    """Comments collection."""

    @abstractmethod
    def create(self, data: Dict) -> Dict:
        pass

    @abstractmethod
    def get(self, comment_id: str) -> Optional[Dict]:
        pass

    @abstractmethod
    def delete(self, comment_id: str) -> bool:
        pass

    @abstractmethod
    def list_for_report(self, report_id: str) -> List[Dict]:
        """Comments of a report, newest first."""

    @abstractmethod
    def delete_for_report(self, report_id: str) -> int:
        pass


class NotificationStore(ABC):
    """Notifications collection (append-only apart from read state)."""

    @abstractmethod
    def create(self, data: Dict) -> Dict:
        pass

    @abstractmethod
    def list_for_user(
        self,
        user_id: str,
        unread_only: bool = False,
        offset: int = 0,
        limit: Optional[int] = None
    ) -> List[Dict]:
        """Recipient's notifications, newest first."""

    @abstractmethod
    def count_for_user(self, user_id: str, unread_only: bool = False) -> int:
        pass

    @abstractmethod
    def mark_read(self, notification_id: str, user_id: str, read_at: datetime) -> Optional[Dict]:
        """Returns None unless the notification exists and belongs to user_id."""

    @abstractmethod
    def mark_all_read(self, user_id: str, read_at: datetime) -> int:
        pass

    @abstractmethod
    def delete(self, notification_id: str, user_id: str) -> bool:
        pass


class StoreBundle:
    """The four stores a backend provides."""

    def __init__(
        self,
        reports: ReportStore,
        users: UserStore,
        comments: CommentStore,
        notifications: NotificationStore,
        backend: str = "unknown"
    ):
        self.reports = reports
        self.users = users
        self.comments = comments
        self.notifications = notifications
        self.backend = backend
