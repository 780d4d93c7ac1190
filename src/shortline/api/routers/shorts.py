"""Short, follow, like and feed endpoints.

Routes follow the /shorts resource layout: a single path segment is a
short id or a user id depending on the operation.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Query

from shortline.api.deps import ServicesDep
from shortline.api.errors import ShortlineApiError, unwrap_or_raise
from shortline.core.errors import ErrorCode
from shortline.observability.logging import LogContext

router = APIRouter(prefix="/shorts", tags=["Shorts"])


@router.post("/{user_id}")
async def create_short(user_id: str, services: ServicesDep, pwd: str = Query("")) -> dict[str, Any]:
    with LogContext(user_id=user_id):
        return unwrap_or_raise(await services.shorts.create(user_id, pwd)).to_cache()


@router.get("/{short_id}")
async def get_short(short_id: str, services: ServicesDep) -> dict[str, Any]:
    return unwrap_or_raise(await services.shorts.get(short_id)).to_cache()


@router.delete("/{short_id}", status_code=204)
async def delete_short(short_id: str, services: ServicesDep, pwd: str = Query("")) -> None:
    unwrap_or_raise(await services.shorts.delete(short_id, pwd))


@router.get("/{user_id}/shorts")
async def list_shorts(user_id: str, services: ServicesDep) -> list[str]:
    return unwrap_or_raise(await services.shorts.list_by_owner(user_id))


@router.delete("/{user_id}/shorts")
async def delete_all_shorts(
    user_id: str, services: ServicesDep, token: str = Query("")
) -> dict[str, Any]:
    """Internal cascade entry point, gated by a service token for user_id."""
    if not services.tokens.is_valid(token, user_id):
        raise ShortlineApiError.from_code(ErrorCode.FORBIDDEN, "Invalid service token")
    with LogContext(user_id=user_id):
        report = unwrap_or_raise(await services.shorts.delete_all(user_id))
    return report.to_dict()


@router.post("/{user_id1}/{user_id2}/followers", status_code=204)
async def follow(
    user_id1: str,
    user_id2: str,
    services: ServicesDep,
    is_following: bool = Body(...),
    pwd: str = Query(""),
) -> None:
    """user_id1 follows (true) or unfollows (false) user_id2."""
    with LogContext(user_id=user_id1):
        unwrap_or_raise(await services.social.follow(user_id1, user_id2, is_following, pwd))


@router.get("/{user_id}/followers")
async def followers(user_id: str, services: ServicesDep, pwd: str = Query("")) -> list[str]:
    return unwrap_or_raise(await services.social.followers(user_id, pwd))


@router.post("/{short_id}/{user_id}/likes", status_code=204)
async def like(
    short_id: str,
    user_id: str,
    services: ServicesDep,
    is_liked: bool = Body(...),
    pwd: str = Query(""),
) -> None:
    """user_id likes (true) or unlikes (false) a short."""
    with LogContext(user_id=user_id):
        unwrap_or_raise(await services.engagement.like(short_id, user_id, is_liked, pwd))


@router.get("/{short_id}/likes")
async def likes(short_id: str, services: ServicesDep, pwd: str = Query("")) -> list[str]:
    return unwrap_or_raise(await services.engagement.likes(short_id, pwd))


@router.get("/{user_id}/feed")
async def feed(user_id: str, services: ServicesDep, pwd: str = Query("")) -> list[str]:
    return unwrap_or_raise(await services.shorts.feed(user_id, pwd))
