"""Domain models: users and shorts.

Models use Pydantic v2. The camelCase aliases are the JSON wire names used
both by the HTTP surface and by cached projections.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ShortlineModel(BaseModel):
    """Base model for shortline entities."""

    model_config = {
        "extra": "ignore",
        "populate_by_name": True,
    }

    def to_cache(self) -> dict[str, Any]:
        """JSON-compatible projection stored in the cache (wire aliases)."""
        return self.model_dump(mode="json", by_alias=True)


class User(ShortlineModel):
    """A registered user. `pwd` is an opaque credential compared by exact match."""

    id: str = ""
    pwd: str = ""
    email: str = ""
    display_name: str = Field(default="", alias="displayName")

    def is_complete(self) -> bool:
        """All fields required at creation are non-empty."""
        return all((self.id, self.pwd, self.email, self.display_name))

    def public(self) -> "User":
        """Copy with the credential blanked, for listings."""
        return self.model_copy(update={"pwd": ""})


class UserPatch(ShortlineModel):
    """Partial update for a user; fields left as None keep their value."""

    id: str | None = None
    pwd: str | None = None
    email: str | None = None
    display_name: str | None = Field(default=None, alias="displayName")


class Short(ShortlineModel):
    """A short video post. Its blob shares the short's id."""

    id: str
    owner_id: str = Field(alias="ownerId")
    blob_url: str = Field(alias="blobUrl")
    created_at: datetime | None = Field(default=None, alias="createdAt")
