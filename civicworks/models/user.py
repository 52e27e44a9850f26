"""
User models for registration, profile and badge views.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Dict
from enum import Enum


class Language(str, Enum):
    EN = "en"
    HI = "hi"
    MR = "mr"
    TA = "ta"
    TE = "te"
    BN = "bn"
    GU = "gu"
    KN = "kn"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class NotificationSettings(BaseModel):
    status_updates: bool = True
    comments: bool = True
    likes: bool = True
    email: bool = False


class NotificationSettingsUpdate(BaseModel):
    """Partial update; omitted flags keep their current value."""
    status_updates: Optional[bool] = None
    comments: Optional[bool] = None
    likes: Optional[bool] = None
    email: Optional[bool] = None


class LanguageUpdate(BaseModel):
    language: str = Field(..., min_length=2, max_length=5, description="Language code")


class UserCreate(BaseModel):
    """Model for registering a user (credentials are verified upstream)."""
    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", description="Unique email address")
    password_hash: Optional[str] = Field(None, description="Opaque credential hash from the identity provider")
    role: UserRole = Field(default=UserRole.USER)
    language: Language = Field(default=Language.EN)


class StatsSnapshot(BaseModel):
    """The counters badge predicates read."""
    total_reports: int = 0
    total_likes_received: int = 0
    total_comments_received: int = 0
    emergency_reports: int = 0
    false_reports_caught: int = 0

    @classmethod
    def from_user(cls, user: Dict) -> "StatsSnapshot":
        return cls(
            total_reports=user.get("total_reports") or 0,
            total_likes_received=user.get("total_likes_received") or 0,
            total_comments_received=user.get("total_comments_received") or 0,
            emergency_reports=user.get("emergency_reports") or 0,
            # No writer for this counter yet
            false_reports_caught=0,
        )


class UserResponse(BaseModel):
    """Model for user responses. Never carries the credential hash."""
    id: str = Field(..., description="Document ID")
    name: str
    email: str
    role: str = UserRole.USER.value
    language: str = Language.EN.value
    badges: List[str] = Field(default_factory=list)
    points: int = 0
    notification_settings: NotificationSettings = Field(default_factory=NotificationSettings)
    total_reports: int = 0
    total_likes_received: int = 0
    total_comments_received: int = 0
    emergency_reports: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, data: Dict) -> "UserResponse":
        return cls(**{k: v for k, v in data.items() if k in cls.model_fields})


class BadgeInfo(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    points: int


class BadgesResponse(BaseModel):
    badges: List[BadgeInfo]
    points: int
    stats: StatsSnapshot
    available: List[BadgeInfo]
