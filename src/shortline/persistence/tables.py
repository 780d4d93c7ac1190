"""SQLAlchemy ORM models for the system of record.

Four tables, no foreign keys: dependent rows are removed by the
application-level delete cascade (shortline.services.cascade) in a fixed
order, so the relational store never has to know about the cache or the
blob store.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def _utcnow() -> datetime:
    return datetime.now(UTC)


class UserTable(Base):
    """Registered users."""

    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)

    # Opaque credential, compared by exact match
    pwd: Mapped[str] = mapped_column(Text, nullable=False)

    email: Mapped[str] = mapped_column(Text, nullable=False)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)


class ShortTable(Base):
    """Shorts. The id embeds the owner id; the blob shares the id."""

    __tablename__ = "shorts"

    short_id: Mapped[str] = mapped_column(String(512), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    blob_url: Mapped[str] = mapped_column(Text, nullable=False)

    # Set client-side with microsecond precision; drives feed ordering
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (Index("idx_shorts_user_created", "user_id", "created_at"),)


class FollowingTable(Base):
    """Follow edges (follower -> followee), unique per pair."""

    __tablename__ = "following"

    follower: Mapped[str] = mapped_column(String(255), primary_key=True)
    followee: Mapped[str] = mapped_column(String(255), primary_key=True, index=True)


class LikeTable(Base):
    """Like edges. owner_id is denormalised from the short."""

    __tablename__ = "likes"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    short_id: Mapped[str] = mapped_column(String(512), primary_key=True, index=True)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
