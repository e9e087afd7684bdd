"""
Blog API — Blog Schemas
=========================

What:  Request bodies for create/update and the blog read model.
Why:   The read model flattens the link tables (comments, categories, tags,
       likes) into ID lists so clients see one self-contained document.

Field Rules:
    title     1..100 chars after trimming
    content   at least 10 chars after trimming
    tags      trimmed, empty entries dropped, duplicates removed (first wins)
    SEO       seo_title ≤ 60, seo_description ≤ 160
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


def _dedupe(values: List[str]) -> List[str]:
    seen = set()
    result = []
    for v in values:
        if v not in seen:
            seen.add(v)
            result.append(v)
    return result


class BlogWrite(BaseModel):
    """Shared body for POST /blogs and PUT /blogs/{id} (full replacement)."""
    title: str = Field(min_length=1, max_length=100)
    content: str = Field(min_length=10)
    tags: List[str] = Field(default_factory=list, max_length=50)
    categories: List[uuid.UUID] = Field(default_factory=list, max_length=50)
    seo_title: Optional[str] = Field(default=None, max_length=60)
    seo_description: Optional[str] = Field(default=None, max_length=160)
    seo_keywords: List[str] = Field(default_factory=list, max_length=50)

    model_config = {"extra": "forbid"}

    @field_validator("title", "content", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags", "seo_keywords")
    @classmethod
    def normalize_words(cls, v: List[str]) -> List[str]:
        cleaned = [item.strip() for item in v if item and item.strip()]
        for item in cleaned:
            if len(item) > 50:
                raise ValueError("Each entry must be at most 50 characters")
        return _dedupe(cleaned)

    @field_validator("categories")
    @classmethod
    def dedupe_categories(cls, v: List[uuid.UUID]) -> List[uuid.UUID]:
        return _dedupe(v)


class BlogCreate(BlogWrite):
    pass


class BlogUpdate(BlogWrite):
    pass


class BlogResponse(BaseModel):
    """
    What:  Full representation of a blog and its reference sets.
    Who:   Returned by every blog endpoint.

    `likes_count` is derived from `likes`; `image_url` is the path under
    /api/files when an image is attached.
    """
    id: uuid.UUID
    title: str
    content: str
    author_id: uuid.UUID
    image: Optional[str] = None
    image_url: Optional[str] = None
    views: int
    is_published: bool
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    seo_keywords: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    categories: List[uuid.UUID] = Field(default_factory=list)
    comments: List[uuid.UUID] = Field(default_factory=list)
    likes: List[uuid.UUID] = Field(default_factory=list)
    likes_count: int = 0
    created_at: datetime
    updated_at: datetime


class BlogListResponse(BaseModel):
    blogs: List[BlogResponse]
    total_count: int


class BlogSearchResponse(BaseModel):
    blogs: List[BlogResponse]
    total_count: int
    page: int
    limit: int
    total_pages: int
