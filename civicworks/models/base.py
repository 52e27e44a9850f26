"""
Shared response models.
"""

from pydantic import BaseModel
from typing import Optional


class MessageResponse(BaseModel):
    """Plain acknowledgement for deletes and bulk updates."""
    success: bool = True
    message: Optional[str] = None
