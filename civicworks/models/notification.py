"""
Notification models.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Dict
from enum import Enum


class NotificationType(str, Enum):
    STATUS_UPDATE = "status_update"      # Report status changed
    COMMENT = "comment"                  # Someone commented on your report
    LIKE = "like"                        # Someone liked your report
    BADGE_EARNED = "badge_earned"        # You earned a new badge
    ESCALATION = "escalation"            # Your report was escalated
    RESOLUTION = "resolution"            # Your report was resolved
    EMERGENCY_ALERT = "emergency_alert"  # Emergency in your area
    SYSTEM = "system"


class NotificationData(BaseModel):
    report_id: Optional[str] = None
    comment_id: Optional[str] = None
    badge: Optional[str] = None
    link: Optional[str] = None


class NotificationResponse(BaseModel):
    id: str
    recipient: str
    type: NotificationType
    title: str
    message: str
    data: Optional[NotificationData] = None
    read: bool = False
    read_at: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_document(cls, data: Dict) -> "NotificationResponse":
        return cls(**{k: v for k, v in data.items() if k in cls.model_fields})


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    total: int
    unread_count: int
    page: int
    pages: int


class MarkAllReadResponse(BaseModel):
    message: str
    updated: int = Field(..., ge=0)
