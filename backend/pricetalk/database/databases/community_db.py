"""
Community database configuration.
Challenges, chat rooms and the forum.
"""

DB_NAME = "community_db"


class Collections:
    """Collection names in community_db."""
    CHALLENGES = "challenges"
    CHALLENGE_PARTICIPANTS = "challenge_participants"
    CHAT_MESSAGES = "chat_messages"
    FORUM_POSTS = "forum_posts"
    FORUM_REPLIES = "forum_replies"
    METADATA = "_metadata"


DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "Trading challenges, chat messages and forum threads",
    "collections": [
        Collections.CHALLENGES,
        Collections.CHALLENGE_PARTICIPANTS,
        Collections.CHAT_MESSAGES,
        Collections.FORUM_POSTS,
        Collections.FORUM_REPLIES,
        Collections.METADATA,
    ],
    "access_level": "standard",
}
