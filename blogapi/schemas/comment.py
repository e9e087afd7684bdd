"""
Blog API — Comment Schemas
============================

What:  Body for posting a comment or reply, and the comment read model.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class CommentCreate(BaseModel):
    text: str = Field(min_length=5, max_length=5000)

    model_config = {"extra": "forbid"}

    @field_validator("text", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class CommentResponse(BaseModel):
    """
    A comment with its reply IDs, oldest reply first.

    `author_id` is null only for comments posted anonymously.
    """
    id: uuid.UUID
    text: str
    author_id: Optional[uuid.UUID] = None
    replies: List[uuid.UUID] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class CommentListResponse(BaseModel):
    comments: List[CommentResponse]
