"""Initial schema: users, categories, blogs, comments and link tables

Revision ID: 001
Revises: None
Create Date: 2026-10-17 00:00:00.000000+00:00

What:  Creates every table and index the application uses.
Rollback: downgrade() drops them all (destructive).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("family_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_author", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("description", sa.String(200), nullable=False),
        sa.Column("author_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_categories_name"),
    )

    op.create_table(
        "blogs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("author_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("image", sa.String(255), nullable=True),
        sa.Column("views", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("seo_title", sa.String(60), nullable=True),
        sa.Column("seo_description", sa.String(160), nullable=True),
        sa.Column("seo_keywords", sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_blogs_published_created", "blogs", ["is_published", "created_at"])
    op.create_index("idx_blogs_author_id", "blogs", ["author_id"])

    op.create_table(
        "comments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("author_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_comments_author_id", "comments", ["author_id"])

    # ── Link tables ───────────────────────────────────────────────────────
    op.create_table(
        "blog_comments",
        sa.Column("blog_id", sa.Uuid(), sa.ForeignKey("blogs.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("comment_id", sa.Uuid(), sa.ForeignKey("comments.id", ondelete="CASCADE"), primary_key=True),
        sa.UniqueConstraint("comment_id", name="uq_blog_comments_comment_id"),
    )
    op.create_table(
        "comment_replies",
        sa.Column("parent_id", sa.Uuid(), sa.ForeignKey("comments.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("reply_id", sa.Uuid(), sa.ForeignKey("comments.id", ondelete="CASCADE"), primary_key=True),
        sa.UniqueConstraint("reply_id", name="uq_comment_replies_reply_id"),
    )
    op.create_index("idx_comment_replies_parent_id", "comment_replies", ["parent_id"])

    op.create_table(
        "blog_categories",
        sa.Column("blog_id", sa.Uuid(), sa.ForeignKey("blogs.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("category_id", sa.Uuid(), sa.ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index("idx_blog_categories_category_id", "blog_categories", ["category_id"])

    op.create_table(
        "blog_tags",
        sa.Column("blog_id", sa.Uuid(), sa.ForeignKey("blogs.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("tag", sa.String(50), primary_key=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index("idx_blog_tags_tag", "blog_tags", ["tag"])

    op.create_table(
        "blog_likes",
        sa.Column("blog_id", sa.Uuid(), sa.ForeignKey("blogs.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    )


def downgrade() -> None:
    op.drop_table("blog_likes")
    op.drop_index("idx_blog_tags_tag", table_name="blog_tags")
    op.drop_table("blog_tags")
    op.drop_index("idx_blog_categories_category_id", table_name="blog_categories")
    op.drop_table("blog_categories")
    op.drop_index("idx_comment_replies_parent_id", table_name="comment_replies")
    op.drop_table("comment_replies")
    op.drop_table("blog_comments")
    op.drop_index("ix_comments_author_id", table_name="comments")
    op.drop_table("comments")
    op.drop_index("idx_blogs_author_id", table_name="blogs")
    op.drop_index("idx_blogs_published_created", table_name="blogs")
    op.drop_table("blogs")
    op.drop_table("categories")
    op.drop_table("users")
