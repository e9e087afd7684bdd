"""
Blog API — Blog Lifecycle Service
===================================

What:  Create, read, update, publish, delete, like and search blogs.
Why:   Encapsulates the publication state machine and ownership rules,
       independent of HTTP concerns.
How:   Each operation loads the blog, runs the policy check, then mutates.
       Sessions are flushed here and committed by the request dependency.
Who:   Called by the blogs router; CommentService uses `get_visible_blog()`.

State Machine:
    Draft (is_published = false) ──publish──▶ Published (is_published = true)
    There is no way back; Blog's validator refuses true → false.

Read-one and the view counter:
    UPDATE blogs SET views = views + 1 WHERE id = :id AND is_published
    The increment happens inside the database, so concurrent readers never
    lose updates. A fetch that ends in 404 never reaches a matching row.

Visibility of drafts (UNPUBLISHED_BLOG_VISIBILITY):
    hidden  → drafts are 404 for everyone except their author
    visible → drafts are returned to anyone, without a view increment
"""

import logging
import math
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.config import Settings
from blogapi.exceptions import (
    AlreadyLikedError,
    BlogApiError,
    ConflictError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from blogapi.models import (
    Blog,
    Category,
    Comment,
    blog_categories,
    blog_comments,
    blog_likes,
    blog_tags,
)
from blogapi.schemas.blog import BlogCreate, BlogResponse, BlogSearchResponse, BlogUpdate
from blogapi.security.policy import Capability, enforce
from blogapi.security.principal import Principal
from blogapi.services.comment_service import purge_comment_threads
from blogapi.services.file_service import FileService

logger = logging.getLogger(__name__)

RELATED_LIMIT = 5


@dataclass
class BlogReferences:
    """The link-table contents of one blog, in display order."""
    tags: List[str]
    categories: List[uuid.UUID]
    comments: List[uuid.UUID]
    likes: List[uuid.UUID]


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class BlogService:
    """
    Business logic for blogs.

    Error Handling Strategy:
        Application errors (NotFound, Forbidden, ...) propagate unchanged.
        SQLAlchemy failures are wrapped in DatabaseError with the operation
        and IDs in the context, so a failed multi-row mutation can be traced.
    """

    def __init__(self, settings: Settings, file_service: FileService):
        self.settings = settings
        self.files = file_service

    # ══════════════════════════════════════════════════════════════════════
    # Loading & Serialization
    # ══════════════════════════════════════════════════════════════════════

    async def _load(self, db: AsyncSession, blog_id: uuid.UUID) -> Blog:
        blog = await db.get(Blog, blog_id)
        if blog is None:
            raise NotFoundError(resource="blog", resource_id=str(blog_id))
        return blog

    def is_visible(self, blog: Blog, principal: Optional[Principal]) -> bool:
        if blog.is_published:
            return True
        if principal is not None and principal.user_id == blog.author_id:
            return True
        return self.settings.unpublished_blog_visibility == "visible"

    async def get_visible_blog(
        self, db: AsyncSession, blog_id: uuid.UUID, principal: Optional[Principal]
    ) -> Blog:
        """Load a blog the caller may see, without touching the view counter."""
        blog = await self._load(db, blog_id)
        if not self.is_visible(blog, principal):
            raise NotFoundError(resource="blog", resource_id=str(blog_id))
        return blog

    async def load_references(
        self, db: AsyncSession, blog_ids: Sequence[uuid.UUID]
    ) -> Dict[uuid.UUID, BlogReferences]:
        """Resolve the four reference sets for many blogs in four queries."""
        refs = {bid: BlogReferences([], [], [], []) for bid in blog_ids}
        if not refs:
            return refs
        ids = list(refs)

        rows = await db.execute(
            select(blog_tags.c.blog_id, blog_tags.c.tag)
            .where(blog_tags.c.blog_id.in_(ids))
            .order_by(blog_tags.c.blog_id, blog_tags.c.position)
        )
        for blog_id, tag in rows.all():
            refs[blog_id].tags.append(tag)

        rows = await db.execute(
            select(blog_categories.c.blog_id, blog_categories.c.category_id)
            .where(blog_categories.c.blog_id.in_(ids))
            .order_by(blog_categories.c.blog_id, blog_categories.c.position)
        )
        for blog_id, category_id in rows.all():
            refs[blog_id].categories.append(category_id)

        rows = await db.execute(
            select(blog_comments.c.blog_id, blog_comments.c.comment_id)
            .join(Comment, Comment.id == blog_comments.c.comment_id)
            .where(blog_comments.c.blog_id.in_(ids))
            .order_by(Comment.created_at, Comment.id)
        )
        for blog_id, comment_id in rows.all():
            refs[blog_id].comments.append(comment_id)

        rows = await db.execute(
            select(blog_likes.c.blog_id, blog_likes.c.user_id)
            .where(blog_likes.c.blog_id.in_(ids))
            .order_by(blog_likes.c.user_id)
        )
        for blog_id, user_id in rows.all():
            refs[blog_id].likes.append(user_id)

        return refs

    @staticmethod
    def _build_response(blog: Blog, refs: BlogReferences) -> BlogResponse:
        return BlogResponse(
            id=blog.id,
            title=blog.title,
            content=blog.content,
            author_id=blog.author_id,
            image=blog.image,
            image_url=f"/api/files/{blog.image}" if blog.image else None,
            views=blog.views,
            is_published=blog.is_published,
            seo_title=blog.seo_title,
            seo_description=blog.seo_description,
            seo_keywords=list(blog.seo_keywords or []),
            tags=refs.tags,
            categories=refs.categories,
            comments=refs.comments,
            likes=refs.likes,
            likes_count=len(refs.likes),
            created_at=blog.created_at,
            updated_at=blog.updated_at,
        )

    async def to_responses(self, db: AsyncSession, blogs: Sequence[Blog]) -> List[BlogResponse]:
        refs = await self.load_references(db, [b.id for b in blogs])
        return [self._build_response(b, refs[b.id]) for b in blogs]

    async def to_response(self, db: AsyncSession, blog: Blog) -> BlogResponse:
        return (await self.to_responses(db, [blog]))[0]

    # ══════════════════════════════════════════════════════════════════════
    # Reference Set Writes
    # ══════════════════════════════════════════════════════════════════════

    async def _check_categories(self, db: AsyncSession, category_ids: List[uuid.UUID]) -> None:
        if not category_ids:
            return
        result = await db.execute(select(Category.id).where(Category.id.in_(category_ids)))
        found = set(result.scalars().all())
        missing = [str(cid) for cid in category_ids if cid not in found]
        if missing:
            raise ValidationError(
                message=f"Unknown category ID(s): {', '.join(missing)}",
                field="categories",
                context={"missing": missing},
            )

    async def _replace_links(
        self,
        db: AsyncSession,
        blog_id: uuid.UUID,
        tags: List[str],
        category_ids: List[uuid.UUID],
    ) -> None:
        await db.execute(delete(blog_tags).where(blog_tags.c.blog_id == blog_id))
        await db.execute(delete(blog_categories).where(blog_categories.c.blog_id == blog_id))
        if tags:
            await db.execute(
                insert(blog_tags),
                [{"blog_id": blog_id, "tag": tag, "position": i} for i, tag in enumerate(tags)],
            )
        if category_ids:
            await db.execute(
                insert(blog_categories),
                [
                    {"blog_id": blog_id, "category_id": cid, "position": i}
                    for i, cid in enumerate(category_ids)
                ],
            )

    # ══════════════════════════════════════════════════════════════════════
    # Queries
    # ══════════════════════════════════════════════════════════════════════

    async def get_blog(
        self, db: AsyncSession, blog_id: uuid.UUID, principal: Optional[Principal]
    ) -> BlogResponse:
        """
        Fetch one blog, counting a view when it is published.

        Query plan:
            1. UPDATE ... SET views = views + 1 WHERE id AND is_published
            2. rowcount 1 → re-select the row (populate_existing refreshes
               any copy already in the identity map)
               rowcount 0 → missing or draft; apply the visibility policy
        """
        try:
            result = await db.execute(
                update(Blog)
                .where(Blog.id == blog_id, Blog.is_published.is_(True))
                # updated_at pinned: a read is not a modification
                .values(views=Blog.views + 1, updated_at=Blog.updated_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount:
                loaded = await db.execute(
                    select(Blog)
                    .where(Blog.id == blog_id)
                    .execution_options(populate_existing=True)
                )
                blog = loaded.scalar_one()
            else:
                blog = await self.get_visible_blog(db, blog_id, principal)
            return await self.to_response(db, blog)
        except BlogApiError:
            raise
        except SQLAlchemyError as e:
            logger.error("Failed to fetch blog %s: %s", blog_id, e, exc_info=True)
            raise DatabaseError(context={"operation": "get_blog", "blog_id": str(blog_id)})

    async def list_published(self, db: AsyncSession) -> List[BlogResponse]:
        """All published blogs, newest first."""
        try:
            result = await db.execute(
                select(Blog)
                .where(Blog.is_published.is_(True))
                .order_by(Blog.created_at.desc(), Blog.id)
            )
            return await self.to_responses(db, list(result.scalars().all()))
        except SQLAlchemyError as e:
            logger.error("Failed to list published blogs: %s", e, exc_info=True)
            raise DatabaseError(context={"operation": "list_published"})

    async def list_mine(self, db: AsyncSession, principal: Principal) -> List[BlogResponse]:
        """Every blog the principal wrote, drafts included, newest first."""
        try:
            result = await db.execute(
                select(Blog)
                .where(Blog.author_id == principal.user_id)
                .order_by(Blog.created_at.desc(), Blog.id)
            )
            return await self.to_responses(db, list(result.scalars().all()))
        except SQLAlchemyError as e:
            logger.error("Failed to list blogs of %s: %s", principal.user_id, e, exc_info=True)
            raise DatabaseError(context={"operation": "list_mine", "user_id": str(principal.user_id)})

    async def search(
        self,
        db: AsyncSession,
        q: Optional[str] = None,
        tags: Optional[List[str]] = None,
        categories: Optional[List[uuid.UUID]] = None,
        page: int = 1,
        limit: int = 10,
    ) -> BlogSearchResponse:
        """
        Search published blogs.

        Filters combine with AND; within `tags` and `categories` any match
        counts. `q` matches title or content, case-insensitively.
        """
        conditions = [Blog.is_published.is_(True)]
        if q:
            pattern = _like_pattern(q)
            conditions.append(
                or_(Blog.title.ilike(pattern, escape="\\"), Blog.content.ilike(pattern, escape="\\"))
            )
        if tags:
            conditions.append(
                Blog.id.in_(select(blog_tags.c.blog_id).where(blog_tags.c.tag.in_(tags)))
            )
        if categories:
            conditions.append(
                Blog.id.in_(
                    select(blog_categories.c.blog_id).where(
                        blog_categories.c.category_id.in_(categories)
                    )
                )
            )

        try:
            total = (
                await db.execute(select(func.count()).select_from(Blog).where(*conditions))
            ).scalar_one()
            result = await db.execute(
                select(Blog)
                .where(*conditions)
                .order_by(Blog.created_at.desc(), Blog.id)
                .offset((page - 1) * limit)
                .limit(limit)
            )
            blogs = await self.to_responses(db, list(result.scalars().all()))
        except SQLAlchemyError as e:
            logger.error("Blog search failed: %s", e, exc_info=True)
            raise DatabaseError(context={"operation": "search", "q": q})

        return BlogSearchResponse(
            blogs=blogs,
            total_count=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if total else 0,
        )

    async def related(
        self, db: AsyncSession, blog_id: uuid.UUID, principal: Optional[Principal]
    ) -> List[BlogResponse]:
        """Up to five other published blogs sharing a tag or a category."""
        await self.get_visible_blog(db, blog_id, principal)

        own_tags = select(blog_tags.c.tag).where(blog_tags.c.blog_id == blog_id)
        own_categories = select(blog_categories.c.category_id).where(
            blog_categories.c.blog_id == blog_id
        )
        try:
            result = await db.execute(
                select(Blog)
                .where(
                    Blog.is_published.is_(True),
                    Blog.id != blog_id,
                    or_(
                        Blog.id.in_(
                            select(blog_tags.c.blog_id).where(blog_tags.c.tag.in_(own_tags))
                        ),
                        Blog.id.in_(
                            select(blog_categories.c.blog_id).where(
                                blog_categories.c.category_id.in_(own_categories)
                            )
                        ),
                    ),
                )
                .order_by(Blog.created_at.desc(), Blog.id)
                .limit(RELATED_LIMIT)
            )
            return await self.to_responses(db, list(result.scalars().all()))
        except SQLAlchemyError as e:
            logger.error("Related lookup for blog %s failed: %s", blog_id, e, exc_info=True)
            raise DatabaseError(context={"operation": "related", "blog_id": str(blog_id)})

    # ══════════════════════════════════════════════════════════════════════
    # Mutations
    # ══════════════════════════════════════════════════════════════════════

    async def create_blog(
        self, db: AsyncSession, principal: Principal, data: BlogCreate
    ) -> BlogResponse:
        """New draft owned by the principal: views 0, unpublished, no comments or likes."""
        await self._check_categories(db, data.categories)
        try:
            blog = Blog(
                title=data.title,
                content=data.content,
                author_id=principal.user_id,
                views=0,
                is_published=False,
                seo_title=data.seo_title,
                seo_description=data.seo_description,
                seo_keywords=data.seo_keywords,
            )
            db.add(blog)
            await db.flush()
            await self._replace_links(db, blog.id, data.tags, data.categories)
        except SQLAlchemyError as e:
            logger.error("Failed to create blog for %s: %s", principal.user_id, e, exc_info=True)
            raise DatabaseError(
                context={"operation": "create_blog", "user_id": str(principal.user_id)},
            )

        logger.info("Blog %s created by %s", blog.id, principal.user_id)
        return await self.to_response(db, blog)

    async def update_blog(
        self, db: AsyncSession, blog_id: uuid.UUID, principal: Principal, data: BlogUpdate
    ) -> BlogResponse:
        """
        Replace the editable fields of a blog (OwnerOnly).

        Never touches author_id, views, likes, comments or is_published.
        """
        blog = await self._load(db, blog_id)
        enforce(principal, Capability.OWNER_ONLY, blog.author_id, action="update", resource="blog")
        await self._check_categories(db, data.categories)

        try:
            blog.title = data.title
            blog.content = data.content
            blog.seo_title = data.seo_title
            blog.seo_description = data.seo_description
            blog.seo_keywords = data.seo_keywords
            await self._replace_links(db, blog.id, data.tags, data.categories)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to update blog %s: %s", blog_id, e, exc_info=True)
            raise DatabaseError(context={"operation": "update_blog", "blog_id": str(blog_id)})

        logger.info("Blog %s updated", blog_id)
        return await self.to_response(db, blog)

    async def publish_blog(
        self, db: AsyncSession, blog_id: uuid.UUID, principal: Principal
    ) -> BlogResponse:
        """
        Draft → Published (OwnerOnly).

        Already published:
            REPUBLISH_BEHAVIOR=idempotent → returned unchanged
            REPUBLISH_BEHAVIOR=reject     → ConflictError
        """
        blog = await self._load(db, blog_id)
        enforce(principal, Capability.OWNER_ONLY, blog.author_id, action="publish", resource="blog")

        if blog.is_published:
            if self.settings.republish_behavior == "reject":
                raise ConflictError(
                    message="This blog is already published",
                    context={"blog_id": str(blog_id)},
                )
            return await self.to_response(db, blog)

        try:
            blog.is_published = True
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to publish blog %s: %s", blog_id, e, exc_info=True)
            raise DatabaseError(context={"operation": "publish_blog", "blog_id": str(blog_id)})

        logger.info("Blog %s published", blog_id)
        return await self.to_response(db, blog)

    async def attach_image(
        self,
        db: AsyncSession,
        blog_id: uuid.UUID,
        principal: Principal,
        filename: Optional[str],
        content: bytes,
        content_length: Optional[int] = None,
    ) -> Tuple[BlogResponse, Optional[str]]:
        """
        Store an image and point the blog at it (OwnerOnly).

        Returns the response and the previous image path; the caller removes
        the old file once the transaction has committed.
        """
        blog = await self._load(db, blog_id)
        enforce(principal, Capability.OWNER_ONLY, blog.author_id, action="update", resource="blog")

        new_path = await self.files.validate_and_store(filename, content, content_length)
        previous = blog.image
        try:
            blog.image = new_path
            await db.flush()
        except SQLAlchemyError as e:
            await self.files.delete_file(new_path)
            logger.error("Failed to attach image to blog %s: %s", blog_id, e, exc_info=True)
            raise DatabaseError(context={"operation": "attach_image", "blog_id": str(blog_id)})

        logger.info("Blog %s image set to %s", blog_id, new_path)
        return await self.to_response(db, blog), previous

    async def delete_blog(
        self, db: AsyncSession, blog_id: uuid.UUID, principal: Principal
    ) -> Optional[str]:
        """
        Delete a blog and everything hanging off it (OwnerOnly).

        Order inside the transaction:
            1. Purge the comment tree (top-level comments and their replies)
            2. Remove tag, category and like rows
            3. Delete the blog row
        Returns the image path for removal after commit.
        """
        blog = await self._load(db, blog_id)
        enforce(principal, Capability.OWNER_ONLY, blog.author_id, action="delete", resource="blog")
        image = blog.image

        try:
            result = await db.execute(
                select(blog_comments.c.comment_id).where(blog_comments.c.blog_id == blog_id)
            )
            removed = await purge_comment_threads(db, result.scalars().all())
            await db.execute(delete(blog_tags).where(blog_tags.c.blog_id == blog_id))
            await db.execute(delete(blog_categories).where(blog_categories.c.blog_id == blog_id))
            await db.execute(delete(blog_likes).where(blog_likes.c.blog_id == blog_id))
            await db.delete(blog)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to delete blog %s: %s", blog_id, e, exc_info=True)
            raise DatabaseError(
                message="Failed to delete the blog. Please try again later.",
                context={"operation": "delete_blog", "blog_id": str(blog_id)},
            )

        logger.info("Blog %s deleted with %d comments", blog_id, removed)
        return image

    async def like_blog(
        self, db: AsyncSession, blog_id: uuid.UUID, principal: Principal
    ) -> BlogResponse:
        """Add the principal to the like set; AlreadyLikedError if present."""
        blog = await self.get_visible_blog(db, blog_id, principal)

        existing = await db.execute(
            select(blog_likes.c.user_id).where(
                blog_likes.c.blog_id == blog_id, blog_likes.c.user_id == principal.user_id
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise AlreadyLikedError(blog_id=str(blog_id))

        try:
            await db.execute(
                insert(blog_likes).values(blog_id=blog_id, user_id=principal.user_id)
            )
        except IntegrityError:
            # Concurrent like won the race; the composite key kept the set clean
            raise AlreadyLikedError(blog_id=str(blog_id))
        except SQLAlchemyError as e:
            logger.error("Failed to like blog %s: %s", blog_id, e, exc_info=True)
            raise DatabaseError(context={"operation": "like_blog", "blog_id": str(blog_id)})

        return await self.to_response(db, blog)

    async def unlike_blog(
        self, db: AsyncSession, blog_id: uuid.UUID, principal: Principal
    ) -> BlogResponse:
        """Remove the principal from the like set. Unliking twice is fine."""
        blog = await self.get_visible_blog(db, blog_id, principal)
        try:
            await db.execute(
                delete(blog_likes).where(
                    blog_likes.c.blog_id == blog_id, blog_likes.c.user_id == principal.user_id
                )
            )
        except SQLAlchemyError as e:
            logger.error("Failed to unlike blog %s: %s", blog_id, e, exc_info=True)
            raise DatabaseError(context={"operation": "unlike_blog", "blog_id": str(blog_id)})
        return await self.to_response(db, blog)
