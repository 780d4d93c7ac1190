"""Persistence layer for shortline.

This module provides:
- Async PostgreSQL engine and session factory
- SQLAlchemy ORM tables for users, shorts, follow and like edges
- One repository per table with parameterised queries

The relational store is the system of record; the cache is never consulted
here.
"""

from shortline.persistence.db import get_engine, get_session_factory, init_db, session_context
from shortline.persistence.repositories import (
    FollowRepository,
    LikeRepository,
    ShortRepository,
    UserRepository,
)
from shortline.persistence.tables import FollowingTable, LikeTable, ShortTable, UserTable

__all__ = [
    # DB
    "get_engine",
    "get_session_factory",
    "init_db",
    "session_context",
    # Tables
    "UserTable",
    "ShortTable",
    "FollowingTable",
    "LikeTable",
    # Repositories
    "UserRepository",
    "ShortRepository",
    "FollowRepository",
    "LikeRepository",
]
