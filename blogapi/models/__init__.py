"""
Blog API — ORM Models
======================

Importing this package registers every table with Base.metadata
(used by Alembic autogenerate and `create_schema()`).

Reference sets are link tables, not ORM relationships: a Blog's comments,
categories, tags and likes, and a Comment's replies, are resolved by the
services with explicit queries. No object graph ever holds a back-pointer.
"""

from blogapi.models.blog import Blog, blog_categories, blog_comments, blog_likes, blog_tags
from blogapi.models.category import Category
from blogapi.models.comment import Comment, comment_replies
from blogapi.models.user import User

__all__ = [
    "Blog",
    "Category",
    "Comment",
    "User",
    "blog_categories",
    "blog_comments",
    "blog_likes",
    "blog_tags",
    "comment_replies",
]
