from pydantic import BaseModel
from typing import Optional, Literal


class ReviewDecision(BaseModel):
    """Admin decision on an event in review"""
    action: Literal["approve", "reject"]
    comments: Optional[str] = None
    rejection_reason: Optional[str] = None
