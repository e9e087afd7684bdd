"""
Blog API — Category SQLAlchemy Model
======================================

What:  ORM model for the `categories` table.
Who:   Managed by admins through CategoryService; referenced by blogs via
       blog_categories.
"""

import uuid
from typing import Optional

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from blogapi.database import Base
from blogapi.models.common import TimestampMixin, UUIDPrimaryKeyMixin


class Category(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False)

    # The admin who created it; informational only
    author_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name='{self.name}')>"
