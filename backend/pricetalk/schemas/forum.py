"""
Forum schemas.
"""
from typing import Optional

from pydantic import BaseModel, Field


class PostCreate(BaseModel):
    title: str = Field(..., min_length=5, max_length=255)
    content: str = Field(..., min_length=10)
    category: str = Field(..., min_length=1, max_length=50)
    tags: list[str] = Field(default_factory=list)


class ReplyCreate(BaseModel):
    content: str = Field(..., min_length=1)
    parent_reply_id: Optional[str] = None


class VoteRequest(BaseModel):
    """Vote body; anything but up/down is rejected by the service."""
    type: Optional[str] = None
