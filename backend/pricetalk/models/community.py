"""
Community and forum models.
"""
from enum import Enum


class ChallengeStatus(str, Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"


class VoteType(str, Enum):
    UP = "up"
    DOWN = "down"


MAX_CHAT_MESSAGE_LENGTH = 500
