"""
Storage Routes
Serves Supabase Storage objects (avatars, consultant images) through the API
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from ..security_utils import sanitize_storage_path
from ..services.supabase_service import (
    StorageObjectError,
    SupabaseNotConfiguredError,
    SupabaseService,
    get_supabase_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Storage"])

CONTENT_TYPES = {
    "png": "image/png",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "webp": "image/webp",
}
DEFAULT_CONTENT_TYPE = "image/jpeg"
CACHE_CONTROL = "public, max-age=31536000, immutable"


def content_type_for(path: str) -> str:
    extension = path.rsplit(".", 1)[-1].lower() if "." in path else ""
    return CONTENT_TYPES.get(extension, DEFAULT_CONTENT_TYPE)


@router.get("/image/{bucket}/{path:path}")
async def get_image(
    bucket: str,
    path: str,
    supabase: SupabaseService = Depends(get_supabase_service),
):
    try:
        object_path = sanitize_storage_path(path)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    try:
        data = await run_in_threadpool(supabase.download_object, bucket, object_path)
    except SupabaseNotConfiguredError as e:
        logger.error(f"❌ Storage unavailable: {e}")
        raise HTTPException(status_code=500, detail="Storage not configured") from e
    except StorageObjectError as e:
        raise HTTPException(status_code=404, detail=f"Image not found: {e}") from e

    return Response(
        content=data,
        media_type=content_type_for(object_path),
        headers={"Cache-Control": CACHE_CONTROL},
    )
