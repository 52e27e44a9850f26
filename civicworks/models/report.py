"""
Pydantic models for citizen reports.
These models handle validation for report submission and responses.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Dict
from enum import Enum


class ReportStatus(str, Enum):
    """Review lifecycle states. Any state may move to any other."""
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ReportCreate(BaseModel):
    """
    Model for creating a new report (incoming POST request).

    category/lat/lng are optional at the schema level so that a missing
    value surfaces as a 400 ValidationError from the service, not a 422.
    """
    category: Optional[str] = Field(None, max_length=100, description="Issue category, e.g. road, water, garbage")
    description: Optional[str] = Field(None, max_length=2000, description="What the citizen observed")
    lat: Optional[float] = Field(None, description="Latitude in degrees")
    lng: Optional[float] = Field(None, description="Longitude in degrees")
    photos: List[str] = Field(default_factory=list, description="Evidence photo URLs (already uploaded)")
    is_emergency: bool = Field(default=False, description="Report as an emergency")
    priority: Optional[Priority] = Field(None, description="Requested priority (ignored for emergencies)")

    class Config:
        json_schema_extra = {
            "example": {
                "category": "road",
                "description": "Large pothole near the bus stop",
                "lat": 28.61,
                "lng": 77.20,
                "photos": ["/uploads/1700000000-pothole.jpg"],
                "is_emergency": False,
            }
        }
        extra = "ignore"


class StatusUpdateRequest(BaseModel):
    status: str = Field(..., description="New status")
    note: Optional[str] = Field(None, max_length=1000, description="Optional note for the history entry")
    after_photos: Optional[List[str]] = Field(None, description="After-resolution photo URLs")


class EscalationRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500, description="Why the report is (de-)escalated")


class StatusHistoryEntry(BaseModel):
    """Status history entry (append-only)."""
    status: str = Field(..., description="Status at the time of the entry")
    changed_by: str = Field(..., description="User who made the change")
    note: Optional[str] = Field(None, description="Note explaining the change")
    timestamp: datetime = Field(..., description="When the change occurred")


class ReportResponse(BaseModel):
    """
    Model for report responses (what API returns).
    Includes system-generated fields like ID and timestamps.
    """
    id: str = Field(..., description="Document ID")
    owner: str
    category: str
    description: Optional[str] = None
    lat: float
    lng: float
    photos: List[str] = Field(default_factory=list)
    after_photos: List[str] = Field(default_factory=list)
    status: str = Field(default=ReportStatus.PENDING.value)
    status_history: List[StatusHistoryEntry] = Field(default_factory=list)
    resolved_at: Optional[datetime] = None
    is_emergency: bool = False
    priority: str = Field(default=Priority.MEDIUM.value)
    escalated_at: Optional[datetime] = None
    escalation_level: int = Field(default=0, ge=0, le=2)
    escalation_reason: Optional[str] = None
    likes: List[str] = Field(default_factory=list)
    dislikes: List[str] = Field(default_factory=list)
    false_reports: List[str] = Field(default_factory=list)
    view_count: int = Field(default=0, ge=0)
    viewed_by: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, data: Dict) -> "ReportResponse":
        return cls(**{k: v for k, v in data.items() if k in cls.model_fields})


class ReportListResponse(BaseModel):
    reports: List[ReportResponse]
    total: int
    page: int
    pages: int


class ReactionResponse(BaseModel):
    """Counts after a like/dislike toggle."""
    likes: int
    dislikes: int
    liked: bool
    disliked: bool


class FalseReportResponse(BaseModel):
    false_reports: int
    flagged: bool


class ViewResponse(BaseModel):
    view_count: int
    is_new_view: bool
