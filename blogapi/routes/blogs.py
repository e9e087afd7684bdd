"""
Blog API — Blog Route Handlers
================================

What:  HTTP surface of the blog lifecycle: list, search, read, create,
       update, publish, image upload, delete, like and unlike.
How:   Thin handlers; the principal dependency runs first, BlogService does
       the loading, policy check and mutation.

Route order matters: /blogs/mine and /blogs/search are declared before
/blogs/{blog_id} so they are not parsed as IDs.
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.context import AppContext, get_context
from blogapi.database import get_db_session
from blogapi.exceptions import ValidationError
from blogapi.schemas.blog import (
    BlogCreate,
    BlogListResponse,
    BlogResponse,
    BlogSearchResponse,
    BlogUpdate,
)
from blogapi.schemas.common import ErrorResponse, MessageResponse
from blogapi.security.principal import Principal, optional_principal, require_principal

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Blogs"])

AUTH_ERRORS = {
    401: {"description": "Missing, invalid or expired token", "model": ErrorResponse},
}
OWNER_ERRORS = {
    **AUTH_ERRORS,
    403: {"description": "Caller is not the blog's author", "model": ErrorResponse},
    404: {"description": "Blog not found", "model": ErrorResponse},
}


def _split(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


@router.get(
    "/blogs",
    response_model=BlogListResponse,
    summary="List published blogs",
    description="Every published blog, newest first.",
)
async def list_blogs(
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> BlogListResponse:
    blogs = await ctx.blogs.list_published(db)
    return BlogListResponse(blogs=blogs, total_count=len(blogs))


@router.get(
    "/blogs/mine",
    response_model=BlogListResponse,
    responses=AUTH_ERRORS,
    summary="List my blogs",
    description="All blogs written by the caller, drafts included.",
)
async def list_my_blogs(
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> BlogListResponse:
    blogs = await ctx.blogs.list_mine(db, principal)
    return BlogListResponse(blogs=blogs, total_count=len(blogs))


@router.get(
    "/blogs/search",
    response_model=BlogSearchResponse,
    responses={400: {"description": "Invalid filter", "model": ErrorResponse}},
    summary="Search published blogs",
    description=(
        "Full-text match on title and content (`q`), plus comma-separated "
        "`tags` and `categories` filters. Paginated."
    ),
)
async def search_blogs(
    q: Optional[str] = Query(default=None, max_length=200, description="Text to look for"),
    tags: Optional[str] = Query(default=None, description="Comma-separated tags (any match)"),
    categories: Optional[str] = Query(
        default=None, description="Comma-separated category IDs (any match)"
    ),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> BlogSearchResponse:
    try:
        category_ids = [uuid.UUID(raw) for raw in _split(categories)]
    except ValueError:
        raise ValidationError(message="categories must be a comma-separated list of IDs", field="categories")

    return await ctx.blogs.search(
        db,
        q=q.strip() if q else None,
        tags=_split(tags),
        categories=category_ids,
        page=page,
        limit=limit,
    )


@router.get(
    "/blogs/{blog_id}",
    response_model=BlogResponse,
    responses={404: {"description": "Blog not found or not visible", "model": ErrorResponse}},
    summary="Get a blog",
    description="Returns one blog. Each successful read of a published blog counts one view.",
)
async def get_blog(
    blog_id: uuid.UUID,
    principal: Optional[Principal] = Depends(optional_principal),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> BlogResponse:
    return await ctx.blogs.get_blog(db, blog_id, principal)


@router.get(
    "/blogs/{blog_id}/related",
    response_model=BlogListResponse,
    responses={404: {"description": "Blog not found", "model": ErrorResponse}},
    summary="Related blogs",
    description="Up to five published blogs sharing a tag or a category with this one.",
)
async def related_blogs(
    blog_id: uuid.UUID,
    principal: Optional[Principal] = Depends(optional_principal),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> BlogListResponse:
    blogs = await ctx.blogs.related(db, blog_id, principal)
    return BlogListResponse(blogs=blogs, total_count=len(blogs))


@router.post(
    "/blogs",
    response_model=BlogResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**AUTH_ERRORS, 400: {"description": "Invalid body", "model": ErrorResponse}},
    summary="Create a blog",
    description=(
        "Creates an unpublished draft owned by the caller from a JSON body. "
        "Images are attached in a second call to `PUT /blogs/{blog_id}/image`."
    ),
)
async def create_blog(
    body: BlogCreate,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> BlogResponse:
    return await ctx.blogs.create_blog(db, principal, body)


@router.put(
    "/blogs/{blog_id}",
    response_model=BlogResponse,
    responses={**OWNER_ERRORS, 400: {"description": "Invalid body", "model": ErrorResponse}},
    summary="Update a blog",
    description="Replaces title, content, tags, categories and SEO fields. Author only.",
)
async def update_blog(
    blog_id: uuid.UUID,
    body: BlogUpdate,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> BlogResponse:
    return await ctx.blogs.update_blog(db, blog_id, principal, body)


@router.put(
    "/blogs/{blog_id}/publish",
    response_model=BlogResponse,
    responses={**OWNER_ERRORS, 409: {"description": "Already published", "model": ErrorResponse}},
    summary="Publish a blog",
    description="Moves a draft to published. There is no unpublish.",
)
async def publish_blog(
    blog_id: uuid.UUID,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> BlogResponse:
    return await ctx.blogs.publish_blog(db, blog_id, principal)


@router.put(
    "/blogs/{blog_id}/image",
    response_model=BlogResponse,
    responses={**OWNER_ERRORS, 400: {"description": "Invalid image", "model": ErrorResponse}},
    summary="Attach an image",
    description="Multipart upload (field `image`). PNG, JPEG or GIF up to MAX_IMAGE_SIZE.",
)
async def upload_blog_image(
    blog_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    image: UploadFile = File(..., description="Image file"),
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> BlogResponse:
    content = await image.read()
    response, previous = await ctx.blogs.attach_image(
        db, blog_id, principal, image.filename, content, image.size
    )
    if previous:
        background_tasks.add_task(ctx.files.delete_file, previous)
    return response


@router.delete(
    "/blogs/{blog_id}",
    response_model=MessageResponse,
    responses=OWNER_ERRORS,
    summary="Delete a blog",
    description="Deletes the blog together with its comments, replies and image. Author only.",
)
async def delete_blog(
    blog_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> MessageResponse:
    image = await ctx.blogs.delete_blog(db, blog_id, principal)
    if image:
        # Background tasks run after the transaction has committed
        background_tasks.add_task(ctx.files.delete_file, image)
    return MessageResponse(message="Blog deleted successfully")


@router.post(
    "/blogs/{blog_id}/like",
    response_model=BlogResponse,
    responses={
        **AUTH_ERRORS,
        400: {"description": "Already liked", "model": ErrorResponse},
        404: {"description": "Blog not found", "model": ErrorResponse},
    },
    summary="Like a blog",
)
async def like_blog(
    blog_id: uuid.UUID,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> BlogResponse:
    return await ctx.blogs.like_blog(db, blog_id, principal)


@router.post(
    "/blogs/{blog_id}/unlike",
    response_model=BlogResponse,
    responses={**AUTH_ERRORS, 404: {"description": "Blog not found", "model": ErrorResponse}},
    summary="Unlike a blog",
    description="Removes the caller's like. Succeeds even if there was none.",
)
async def unlike_blog(
    blog_id: uuid.UUID,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> BlogResponse:
    return await ctx.blogs.unlike_blog(db, blog_id, principal)
