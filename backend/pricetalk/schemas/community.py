"""
Community (challenges, chat) schemas.
"""
from typing import Optional

from pydantic import BaseModel


class ChatMessageCreate(BaseModel):
    """Chat message body; content rules are enforced by the service."""
    content: Optional[str] = None
