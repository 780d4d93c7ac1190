"""User endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from shortline.api.deps import ServicesDep
from shortline.api.errors import unwrap_or_raise
from shortline.core.model import User, UserPatch
from shortline.observability.logging import LogContext

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("")
async def create_user(user: User, services: ServicesDep) -> str:
    """Register a user; returns its id."""
    return unwrap_or_raise(await services.users.create(user))


@router.get("")
async def search_users(services: ServicesDep, query: str = "") -> list[dict[str, Any]]:
    """Search users by display name or email (credentials are blanked)."""
    users = unwrap_or_raise(await services.users.search(query))
    return [user.to_cache() for user in users]


@router.get("/{user_id}")
async def get_user(user_id: str, services: ServicesDep, pwd: str = Query("")) -> dict[str, Any]:
    return unwrap_or_raise(await services.users.get(user_id, pwd)).to_cache()


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    patch: UserPatch,
    services: ServicesDep,
    pwd: str = Query(""),
) -> dict[str, Any]:
    with LogContext(user_id=user_id):
        return unwrap_or_raise(await services.users.update(user_id, pwd, patch)).to_cache()


@router.delete("/{user_id}")
async def delete_user(user_id: str, services: ServicesDep, pwd: str = Query("")) -> dict[str, Any]:
    """Delete a user and everything they own."""
    with LogContext(user_id=user_id):
        return unwrap_or_raise(await services.users.delete(user_id, pwd)).to_cache()
