"""Blob endpoints: raw media bytes addressed by short id."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request
from starlette.responses import Response

from shortline.api.deps import ServicesDep
from shortline.api.errors import unwrap_or_raise
from shortline.observability.logging import LogContext

router = APIRouter(prefix="/blobs", tags=["Blob Storage"])


@router.post("/{blob_id}", status_code=204)
async def upload_blob(
    blob_id: str, request: Request, services: ServicesDep, token: str = Query("")
) -> None:
    """Upload the bytes of a short; re-uploading identical bytes is a no-op."""
    data = await request.body()
    unwrap_or_raise(await services.blobs.upload(blob_id, data, token))


@router.get("/{blob_id}")
async def download_blob(blob_id: str, services: ServicesDep, token: str = Query("")) -> Response:
    data = unwrap_or_raise(await services.blobs.download(blob_id, token))
    return Response(content=data, media_type="application/octet-stream")


@router.delete("/{blob_id}", status_code=204)
async def delete_blob(blob_id: str, services: ServicesDep, token: str = Query("")) -> None:
    unwrap_or_raise(await services.blobs.delete(blob_id, token))


@router.delete("/{user_id}/blobs", status_code=204)
async def delete_all_blobs(user_id: str, services: ServicesDep, pwd: str = Query("")) -> None:
    """Delete the blobs of every short a user owns."""
    with LogContext(user_id=user_id):
        unwrap_or_raise(await services.blobs.delete_all_for_owner(user_id, pwd))
