"""
Blog API — Blog SQLAlchemy Model
==================================

What:  ORM model for the `blogs` table plus the link tables holding a blog's
       reference sets (comments, categories, tags, likes).
Who:   Used by BlogService and CommentService.

Table Design Rationale:
    - author_id: Set once at creation; the validator below refuses reassignment
    - views: Incremented only with an SQL expression (views = views + 1) so
      concurrent readers never lose updates
    - is_published: Draft → Published only; the validator refuses the reverse
    - Reference sets live in link tables instead of array columns:
        blog_comments(blog_id, comment_id)   comment_id UNIQUE → one container
        blog_categories(blog_id, category_id, position)
        blog_tags(blog_id, tag, position)
        blog_likes(blog_id, user_id)         composite PK → set semantics

Query Patterns:
    - Published feed: WHERE is_published ORDER BY created_at DESC
      → idx_blogs_published_created
    - "My blogs": WHERE author_id = :uid → idx_blogs_author_id
    - Comment cleanup: DELETE FROM blog_comments WHERE comment_id IN (...)
      → unique index on comment_id (no scan over every blog)
"""

import uuid
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
    false,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from blogapi.database import Base
from blogapi.models.common import TimestampMixin, UUIDPrimaryKeyMixin


class Blog(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    A blog post.

    Lifecycle:
        1. Created by an authenticated user (draft, views = 0)
        2. Updated by its author any number of times
        3. Published by its author (one-way)
        4. Deleted by its author, together with its whole comment tree
    """

    __tablename__ = "blogs"

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )

    # Relative path from STORAGE_ROOT; NULL until an image is attached
    image: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, default=None)

    views: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    is_published: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    # ── SEO Metadata ──────────────────────────────────────────────────────
    seo_title: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    seo_description: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    seo_keywords: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (
        Index("idx_blogs_published_created", "is_published", "created_at"),
        Index("idx_blogs_author_id", "author_id"),
    )

    @validates("author_id")
    def _author_is_immutable(self, key, value):
        if self.author_id is not None and value != self.author_id:
            raise ValueError("Blog author cannot be reassigned")
        return value

    @validates("is_published")
    def _publish_is_one_way(self, key, value):
        if self.is_published and not value:
            raise ValueError("A published blog cannot be unpublished")
        return value

    def __repr__(self) -> str:
        return (
            f"<Blog(id={self.id}, title='{self.title}', "
            f"published={self.is_published}, views={self.views})>"
        )


# ── Reference Sets ────────────────────────────────────────────────────────

blog_comments = Table(
    "blog_comments",
    Base.metadata,
    Column("blog_id", Uuid, ForeignKey("blogs.id", ondelete="CASCADE"), primary_key=True),
    Column("comment_id", Uuid, ForeignKey("comments.id", ondelete="CASCADE"), primary_key=True),
    # A top-level comment is attached to exactly one blog
    UniqueConstraint("comment_id", name="uq_blog_comments_comment_id"),
)

blog_categories = Table(
    "blog_categories",
    Base.metadata,
    Column("blog_id", Uuid, ForeignKey("blogs.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Uuid, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
    # Order the author listed them in
    Column("position", Integer, nullable=False, default=0, server_default=text("0")),
    Index("idx_blog_categories_category_id", "category_id"),
)

blog_tags = Table(
    "blog_tags",
    Base.metadata,
    Column("blog_id", Uuid, ForeignKey("blogs.id", ondelete="CASCADE"), primary_key=True),
    Column("tag", String(50), primary_key=True),
    Column("position", Integer, nullable=False, default=0, server_default=text("0")),
    Index("idx_blog_tags_tag", "tag"),
)

blog_likes = Table(
    "blog_likes",
    Base.metadata,
    Column("blog_id", Uuid, ForeignKey("blogs.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)
