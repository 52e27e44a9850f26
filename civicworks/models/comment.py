"""
Comment models.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Dict


class CommentCreate(BaseModel):
    """Model for creating a comment. Emptiness after trimming is checked by the service."""
    text: str = Field(..., max_length=1000)


class CommentResponse(BaseModel):
    id: str
    report_id: str
    owner: str
    text: str
    created_at: datetime

    @classmethod
    def from_document(cls, data: Dict) -> "CommentResponse":
        return cls(**{k: v for k, v in data.items() if k in cls.model_fields})
