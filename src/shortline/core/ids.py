from __future__ import annotations

from typing import Final
from uuid import uuid4

# Separator between the owner id and the random suffix of a short id
SHORT_ID_SEPARATOR: Final[str] = "+"


class InvalidShortId(ValueError):
    pass


def mint_short_id(owner_id: str) -> str:
    """Create a fresh short id that embeds its owner id as a prefix."""
    if not owner_id:
        raise InvalidShortId("empty owner id")
    return f"{owner_id}{SHORT_ID_SEPARATOR}{uuid4()}"


def owner_of(short_id: str) -> str:
    """Recover the owner id embedded in a short id."""
    owner, sep, suffix = short_id.rpartition(SHORT_ID_SEPARATOR)
    if not sep or not owner or not suffix:
        raise InvalidShortId(f"not an owner-embedded id: {short_id!r}")
    return owner


def blob_url(base_url: str, blob_id: str, token: str) -> str:
    """Derive the media URI of the blob backing a short."""
    return f"{base_url.rstrip('/')}/{blob_id}?token={token}"
