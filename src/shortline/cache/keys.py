"""Cache key schema for shortline.

Key format: {namespace}:{identifier}

Where namespace is one of:
- "user": cached user record
- "short": cached short record
- "shorts_user": ids of the shorts owned by a user
- "followers_user": ids of a user's followers
- "likes_short": ids of the users who liked a short
- "feed_user": ordered short ids of a user's feed
- "bytes": materialised blob content

Search results are keyed by the upper-cased pattern: user_search_{PATTERN}.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Literal

Namespace = Literal[
    "user", "short", "shorts_user", "followers_user", "likes_short", "feed_user", "bytes"
]


class CacheKeys:
    """Cache key generator following consistent naming convention."""

    SEARCH_PREFIX = "user_search_"

    @staticmethod
    def _key(namespace: Namespace, identifier: str) -> str:
        return f"{namespace}:{identifier}"

    @classmethod
    def user(cls, user_id: str) -> str:
        """Key for a user record."""
        return cls._key("user", user_id)

    @classmethod
    def short(cls, short_id: str) -> str:
        """Key for a short record."""
        return cls._key("short", short_id)

    @classmethod
    def shorts_of_user(cls, user_id: str) -> str:
        """Key for the short ids owned by a user."""
        return cls._key("shorts_user", user_id)

    @classmethod
    def followers_of_user(cls, user_id: str) -> str:
        """Key for a user's follower ids."""
        return cls._key("followers_user", user_id)

    @classmethod
    def likes_of_short(cls, short_id: str) -> str:
        """Key for the liker ids of a short."""
        return cls._key("likes_short", short_id)

    @classmethod
    def feed_of_user(cls, user_id: str) -> str:
        """Key for a user's feed."""
        return cls._key("feed_user", user_id)

    @classmethod
    def blob_bytes(cls, blob_id: str) -> str:
        """Key for materialised blob bytes."""
        return cls._key("bytes", blob_id)

    @classmethod
    def user_search(cls, pattern: str) -> str:
        """Key for search results; patterns are case-insensitive."""
        return f"{cls.SEARCH_PREFIX}{pattern.upper()}"

    @classmethod
    def feeds_of(cls, user_ids: Iterable[str]) -> list[str]:
        """Feed keys for several users (fan-out invalidation)."""
        return [cls.feed_of_user(user_id) for user_id in user_ids]

