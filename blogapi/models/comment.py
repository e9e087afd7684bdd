"""
Blog API — Comment SQLAlchemy Model
=====================================

What:  ORM model for the `comments` table and the `comment_replies` link table.
Who:   Used by CommentService.

Threading Model (two levels):
    Blog ──blog_comments──▶ Comment ──comment_replies──▶ Comment (reply)

    A comment row does not know its container. The container owns the
    reference: exactly one row in blog_comments (top-level) OR exactly one row
    in comment_replies (reply). reply_id is UNIQUE, so a reply has one parent.

    Deleting a comment must remove its ID from both link tables; both
    reference columns are indexed so cleanup never scans every container.
"""

import uuid
from typing import Optional

from sqlalchemy import Column, ForeignKey, Index, Table, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from blogapi.database import Base
from blogapi.models.common import TimestampMixin, UUIDPrimaryKeyMixin


class Comment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "comments"

    text: Mapped[str] = mapped_column(Text, nullable=False)

    # NULL only for anonymous top-level comments (ALLOW_ANONYMOUS_COMMENTS=true)
    author_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True, index=True
    )

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, author_id={self.author_id})>"


comment_replies = Table(
    "comment_replies",
    Base.metadata,
    Column("parent_id", Uuid, ForeignKey("comments.id", ondelete="CASCADE"), primary_key=True),
    Column("reply_id", Uuid, ForeignKey("comments.id", ondelete="CASCADE"), primary_key=True),
    UniqueConstraint("reply_id", name="uq_comment_replies_reply_id"),
    Index("idx_comment_replies_parent_id", "parent_id"),
)
