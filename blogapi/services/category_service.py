"""
Blog API — Category Service
=============================

What:  List, read, create, update and delete categories.
Who:   Called by the categories router. Reads are public; every mutation is
       AdminOnly.

Deleting a category also removes its blog_categories rows, so no blog is
left referencing a category that no longer exists.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.exceptions import ConflictError, DatabaseError, NotFoundError
from blogapi.models import Category, blog_categories
from blogapi.schemas.category import CategoryCreate, CategoryUpdate
from blogapi.security.policy import Capability, enforce
from blogapi.security.principal import Principal

logger = logging.getLogger(__name__)


class CategoryService:

    async def _load(self, db: AsyncSession, category_id: uuid.UUID) -> Category:
        category = await db.get(Category, category_id)
        if category is None:
            raise NotFoundError(resource="category", resource_id=str(category_id))
        return category

    async def _ensure_name_free(
        self, db: AsyncSession, name: str, exclude_id: Optional[uuid.UUID] = None
    ) -> None:
        query = select(Category.id).where(func.lower(Category.name) == name.lower())
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        if (await db.execute(query)).first() is not None:
            raise ConflictError(
                message=f"A category named '{name}' already exists",
                context={"name": name},
            )

    async def list_categories(self, db: AsyncSession) -> List[Category]:
        try:
            result = await db.execute(select(Category).order_by(Category.name))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Failed to list categories: %s", e, exc_info=True)
            raise DatabaseError(context={"operation": "list_categories"})

    async def get_category(self, db: AsyncSession, category_id: uuid.UUID) -> Category:
        return await self._load(db, category_id)

    async def create_category(
        self, db: AsyncSession, principal: Optional[Principal], data: CategoryCreate
    ) -> Category:
        enforce(principal, Capability.ADMIN_ONLY, action="create", resource="category")
        await self._ensure_name_free(db, data.name)
        try:
            category = Category(
                name=data.name,
                description=data.description,
                author_id=principal.user_id,
            )
            db.add(category)
            await db.flush()
        except IntegrityError:
            raise ConflictError(
                message=f"A category named '{data.name}' already exists",
                context={"name": data.name},
            )
        except SQLAlchemyError as e:
            logger.error("Failed to create category %r: %s", data.name, e, exc_info=True)
            raise DatabaseError(context={"operation": "create_category"})

        logger.info("Category %s (%s) created", category.id, category.name)
        return category

    async def update_category(
        self,
        db: AsyncSession,
        category_id: uuid.UUID,
        principal: Optional[Principal],
        data: CategoryUpdate,
    ) -> Category:
        enforce(principal, Capability.ADMIN_ONLY, action="update", resource="category")
        category = await self._load(db, category_id)

        if data.name is not None and data.name != category.name:
            await self._ensure_name_free(db, data.name, exclude_id=category.id)
            category.name = data.name
        if data.description is not None:
            category.description = data.description

        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError(
                message=f"A category named '{data.name}' already exists",
                context={"name": data.name},
            )
        except SQLAlchemyError as e:
            logger.error("Failed to update category %s: %s", category_id, e, exc_info=True)
            raise DatabaseError(
                context={"operation": "update_category", "category_id": str(category_id)}
            )
        return category

    async def delete_category(
        self, db: AsyncSession, category_id: uuid.UUID, principal: Optional[Principal]
    ) -> None:
        enforce(principal, Capability.ADMIN_ONLY, action="delete", resource="category")
        category = await self._load(db, category_id)
        try:
            await db.execute(
                delete(blog_categories).where(blog_categories.c.category_id == category_id)
            )
            await db.delete(category)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to delete category %s: %s", category_id, e, exc_info=True)
            raise DatabaseError(
                context={"operation": "delete_category", "category_id": str(category_id)}
            )
        logger.info("Category %s deleted", category_id)
