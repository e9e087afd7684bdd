"""
Blog API — Comment Route Handlers
===================================

What:  Comment listing, posting, replying and deletion.

Auth per route:
    GET  /blogs/{id}/comments      public (blog visibility applies)
    POST /blogs/{id}/comments      token unless ALLOW_ANONYMOUS_COMMENTS
    GET  /comments/{id}/replies    public (blog visibility applies)
    POST /comments/{id}/replies    token
    DELETE /comments/{id}          admin or author, per COMMENT_DELETE_CAPABILITY
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.context import AppContext, get_context
from blogapi.database import get_db_session
from blogapi.schemas.comment import CommentCreate, CommentListResponse, CommentResponse
from blogapi.schemas.common import ErrorResponse, MessageResponse
from blogapi.security.principal import Principal, optional_principal, require_principal

router = APIRouter(tags=["Comments"])


@router.get(
    "/blogs/{blog_id}/comments",
    response_model=CommentListResponse,
    responses={404: {"description": "Blog not found", "model": ErrorResponse}},
    summary="List a blog's comments",
    description="Top-level comments, oldest first, each with its reply IDs.",
)
async def list_comments(
    blog_id: uuid.UUID,
    principal: Optional[Principal] = Depends(optional_principal),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> CommentListResponse:
    comments = await ctx.comments.list_blog_comments(db, blog_id, principal)
    return CommentListResponse(comments=comments)


@router.post(
    "/blogs/{blog_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"description": "Token required", "model": ErrorResponse},
        404: {"description": "Blog not found", "model": ErrorResponse},
    },
    summary="Comment on a blog",
)
async def create_comment(
    blog_id: uuid.UUID,
    body: CommentCreate,
    principal: Optional[Principal] = Depends(optional_principal),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> CommentResponse:
    return await ctx.comments.create_comment(db, blog_id, principal, body)


@router.get(
    "/comments/{comment_id}/replies",
    response_model=CommentListResponse,
    responses={404: {"description": "Comment not found", "model": ErrorResponse}},
    summary="List replies to a comment",
)
async def list_replies(
    comment_id: uuid.UUID,
    principal: Optional[Principal] = Depends(optional_principal),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> CommentListResponse:
    replies = await ctx.comments.list_replies(db, comment_id, principal)
    return CommentListResponse(comments=replies)


@router.post(
    "/comments/{comment_id}/replies",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Target is itself a reply", "model": ErrorResponse},
        401: {"description": "Token required", "model": ErrorResponse},
        404: {"description": "Comment not found", "model": ErrorResponse},
    },
    summary="Reply to a comment",
)
async def create_reply(
    comment_id: uuid.UUID,
    body: CommentCreate,
    principal: Principal = Depends(require_principal),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> CommentResponse:
    return await ctx.comments.create_reply(db, comment_id, principal, body)


@router.delete(
    "/comments/{comment_id}",
    response_model=MessageResponse,
    responses={
        401: {"description": "Token required", "model": ErrorResponse},
        403: {"description": "Not allowed to delete", "model": ErrorResponse},
        404: {"description": "Comment not found", "model": ErrorResponse},
    },
    summary="Delete a comment",
    description="Deletes the comment and all of its replies.",
)
async def delete_comment(
    comment_id: uuid.UUID,
    principal: Optional[Principal] = Depends(optional_principal),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> MessageResponse:
    removed = await ctx.comments.delete_comment(db, comment_id, principal)
    noun = "comment" if removed == 1 else "comments"
    return MessageResponse(message=f"Deleted {removed} {noun}")
