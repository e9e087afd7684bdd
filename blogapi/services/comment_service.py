"""
Blog API — Comment Thread Service
===================================

What:  Lists, creates and deletes comments and replies.
Why:   Keeps the two link tables (blog_comments, comment_replies) consistent
       with the comments table.
Who:   Called by the comments router; `purge_comment_threads()` is also used
       by BlogService when a blog is deleted.

Threading Rules:
    - A top-level comment is linked from exactly one blog (blog_comments)
    - A reply is linked from exactly one parent comment (comment_replies)
    - Replies to replies are rejected (two levels only)
    - Ordering on create: the comment row is flushed first, the link row is
      inserted second, both inside the request transaction

Cascading Delete:
    Deleting a comment walks its reply tree, then removes every collected ID
    from blog_comments and comment_replies before deleting the rows. All of
    it runs in the request transaction, so either the whole thread goes or
    nothing does.
"""

import logging
import uuid
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, insert, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.config import Settings
from blogapi.exceptions import (
    AuthenticationError,
    BlogApiError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from blogapi.models import Comment, blog_comments, comment_replies
from blogapi.schemas.comment import CommentCreate, CommentResponse
from blogapi.security.policy import Capability, enforce
from blogapi.security.principal import Principal

logger = logging.getLogger(__name__)


async def purge_comment_threads(db: AsyncSession, root_ids: Iterable[uuid.UUID]) -> int:
    """
    Delete the given comments and every reply beneath them.

    Removes the IDs from both link tables first so no container is left
    pointing at a missing comment. Returns the number of comments removed.
    """
    collected = set(root_ids)
    frontier = list(collected)
    while frontier:
        result = await db.execute(
            select(comment_replies.c.reply_id).where(comment_replies.c.parent_id.in_(frontier))
        )
        children = [rid for rid in result.scalars().all() if rid not in collected]
        collected.update(children)
        frontier = children

    if not collected:
        return 0

    await db.execute(delete(blog_comments).where(blog_comments.c.comment_id.in_(collected)))
    await db.execute(
        delete(comment_replies).where(
            or_(
                comment_replies.c.reply_id.in_(collected),
                comment_replies.c.parent_id.in_(collected),
            )
        )
    )
    await db.execute(
        delete(Comment)
        .where(Comment.id.in_(collected))
        .execution_options(synchronize_session=False)
    )
    return len(collected)


class CommentService:
    """
    Business logic for the comment/reply tree.

    Visibility follows the container blog: a comment on a blog the caller
    cannot see is reported as not found, same as the blog itself.
    """

    def __init__(self, settings: Settings, blogs):
        self.settings = settings
        # BlogService; used for the container visibility check
        self.blogs = blogs

    # ── Loading ───────────────────────────────────────────────────────────
    async def _load(self, db: AsyncSession, comment_id: uuid.UUID) -> Comment:
        comment = await db.get(Comment, comment_id)
        if comment is None:
            raise NotFoundError(resource="comment", resource_id=str(comment_id))
        return comment

    async def _parent_of(self, db: AsyncSession, comment_id: uuid.UUID) -> Optional[uuid.UUID]:
        result = await db.execute(
            select(comment_replies.c.parent_id).where(comment_replies.c.reply_id == comment_id)
        )
        return result.scalar_one_or_none()

    async def _container_blog_id(self, db: AsyncSession, comment_id: uuid.UUID) -> Optional[uuid.UUID]:
        """The blog a comment ultimately hangs off (through its parent for replies)."""
        parent_id = await self._parent_of(db, comment_id)
        top_level_id = parent_id or comment_id
        result = await db.execute(
            select(blog_comments.c.blog_id).where(blog_comments.c.comment_id == top_level_id)
        )
        return result.scalar_one_or_none()

    async def _ensure_visible(
        self, db: AsyncSession, comment: Comment, principal: Optional[Principal]
    ) -> None:
        blog_id = await self._container_blog_id(db, comment.id)
        if blog_id is None:
            # Orphans are never served
            raise NotFoundError(resource="comment", resource_id=str(comment.id))
        await self.blogs.get_visible_blog(db, blog_id, principal)

    async def _reply_ids(
        self, db: AsyncSession, parent_ids: List[uuid.UUID]
    ) -> Dict[uuid.UUID, List[uuid.UUID]]:
        replies: Dict[uuid.UUID, List[uuid.UUID]] = {pid: [] for pid in parent_ids}
        if not parent_ids:
            return replies
        result = await db.execute(
            select(comment_replies.c.parent_id, comment_replies.c.reply_id)
            .join(Comment, Comment.id == comment_replies.c.reply_id)
            .where(comment_replies.c.parent_id.in_(parent_ids))
            .order_by(Comment.created_at, Comment.id)
        )
        for parent_id, reply_id in result.all():
            replies[parent_id].append(reply_id)
        return replies

    async def to_responses(self, db: AsyncSession, comments: List[Comment]) -> List[CommentResponse]:
        replies = await self._reply_ids(db, [c.id for c in comments])
        return [
            CommentResponse(
                id=c.id,
                text=c.text,
                author_id=c.author_id,
                replies=replies.get(c.id, []),
                created_at=c.created_at,
                updated_at=c.updated_at,
            )
            for c in comments
        ]

    # ── Listing ───────────────────────────────────────────────────────────
    async def list_blog_comments(
        self, db: AsyncSession, blog_id: uuid.UUID, principal: Optional[Principal]
    ) -> List[CommentResponse]:
        """Top-level comments of a blog, oldest first."""
        await self.blogs.get_visible_blog(db, blog_id, principal)
        try:
            result = await db.execute(
                select(Comment)
                .join(blog_comments, blog_comments.c.comment_id == Comment.id)
                .where(blog_comments.c.blog_id == blog_id)
                .order_by(Comment.created_at, Comment.id)
            )
            return await self.to_responses(db, list(result.scalars().all()))
        except SQLAlchemyError as e:
            logger.error("Failed to list comments for blog %s: %s", blog_id, e, exc_info=True)
            raise DatabaseError(context={"operation": "list_blog_comments", "blog_id": str(blog_id)})

    async def list_replies(
        self, db: AsyncSession, comment_id: uuid.UUID, principal: Optional[Principal]
    ) -> List[CommentResponse]:
        """Replies to one comment, oldest first."""
        comment = await self._load(db, comment_id)
        await self._ensure_visible(db, comment, principal)
        try:
            result = await db.execute(
                select(Comment)
                .join(comment_replies, comment_replies.c.reply_id == Comment.id)
                .where(comment_replies.c.parent_id == comment_id)
                .order_by(Comment.created_at, Comment.id)
            )
            return await self.to_responses(db, list(result.scalars().all()))
        except SQLAlchemyError as e:
            logger.error("Failed to list replies for comment %s: %s", comment_id, e, exc_info=True)
            raise DatabaseError(context={"operation": "list_replies", "comment_id": str(comment_id)})

    # ── Creation ──────────────────────────────────────────────────────────
    async def create_comment(
        self,
        db: AsyncSession,
        blog_id: uuid.UUID,
        principal: Optional[Principal],
        data: CommentCreate,
    ) -> CommentResponse:
        """
        Attach a new top-level comment to a blog.

        Anonymous posting is allowed only with ALLOW_ANONYMOUS_COMMENTS=true;
        the comment then has no author.
        """
        if principal is None and not self.settings.allow_anonymous_comments:
            raise AuthenticationError("missing")

        await self.blogs.get_visible_blog(db, blog_id, principal)

        try:
            comment = Comment(text=data.text, author_id=principal.user_id if principal else None)
            db.add(comment)
            # The row must exist before any container references it
            await db.flush()
            await db.execute(insert(blog_comments).values(blog_id=blog_id, comment_id=comment.id))
        except BlogApiError:
            raise
        except SQLAlchemyError as e:
            logger.error("Failed to create comment on blog %s: %s", blog_id, e, exc_info=True)
            raise DatabaseError(
                context={"operation": "create_comment", "blog_id": str(blog_id)},
            )

        logger.info("Comment %s added to blog %s", comment.id, blog_id)
        return (await self.to_responses(db, [comment]))[0]

    async def create_reply(
        self,
        db: AsyncSession,
        parent_id: uuid.UUID,
        principal: Principal,
        data: CommentCreate,
    ) -> CommentResponse:
        """Attach a reply to a top-level comment. Replies to replies are rejected."""
        parent = await self._load(db, parent_id)
        # Hidden threads are 404 before anything about their shape leaks
        await self._ensure_visible(db, parent, principal)
        if await self._parent_of(db, parent.id) is not None:
            raise ValidationError(
                message="Cannot reply to a reply; replies are limited to one level",
                field="comment_id",
                context={"parent_id": str(parent_id)},
            )

        try:
            reply = Comment(text=data.text, author_id=principal.user_id)
            db.add(reply)
            await db.flush()
            await db.execute(insert(comment_replies).values(parent_id=parent.id, reply_id=reply.id))
        except SQLAlchemyError as e:
            logger.error("Failed to create reply to comment %s: %s", parent_id, e, exc_info=True)
            raise DatabaseError(
                context={"operation": "create_reply", "parent_id": str(parent_id)},
            )

        logger.info("Reply %s added to comment %s", reply.id, parent_id)
        return (await self.to_responses(db, [reply]))[0]

    # ── Deletion ──────────────────────────────────────────────────────────
    async def delete_comment(
        self, db: AsyncSession, comment_id: uuid.UUID, principal: Optional[Principal]
    ) -> int:
        """
        Delete a comment and its replies.

        Capability is chosen by COMMENT_DELETE_CAPABILITY:
            admin → AdminOnly (moderation)
            owner → OwnerOnly against the comment's author
        Returns the number of comments removed.
        """
        comment = await self._load(db, comment_id)

        if self.settings.comment_delete_capability == "admin":
            enforce(principal, Capability.ADMIN_ONLY, action="delete", resource="comment")
        else:
            enforce(
                principal,
                Capability.OWNER_ONLY,
                comment.author_id,
                action="delete",
                resource="comment",
            )

        try:
            removed = await purge_comment_threads(db, [comment.id])
        except SQLAlchemyError as e:
            logger.error("Failed to delete comment %s: %s", comment_id, e, exc_info=True)
            raise DatabaseError(
                message="Failed to delete the comment. Please try again later.",
                context={"operation": "delete_comment", "comment_id": str(comment_id)},
            )

        logger.info("Comment %s deleted (%d comments removed)", comment_id, removed)
        return removed
