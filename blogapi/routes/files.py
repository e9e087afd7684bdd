"""
Blog API — Stored Image Route
===============================

What:  GET /api/files/{path} serves images attached to blogs.
Why:   The storage directory is outside any web root; this route is the only
       way in, and FileService.resolve_path() keeps it inside STORAGE_ROOT.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from blogapi.context import AppContext, get_context
from blogapi.schemas.common import ErrorResponse
from blogapi.services.file_service import media_type_for

router = APIRouter(prefix="/api", tags=["Files"])


@router.get(
    "/files/{file_path:path}",
    summary="Serve an uploaded image",
    responses={
        200: {"description": "Image file"},
        400: {"description": "Path outside storage", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
)
async def serve_file(file_path: str, ctx: AppContext = Depends(get_context)) -> FileResponse:
    full_path = ctx.files.resolve_path(file_path)
    return FileResponse(
        path=str(full_path),
        media_type=media_type_for(file_path),
        # Stored names are UUIDs; content at a path never changes
        headers={"Cache-Control": "public, max-age=86400"},
    )
