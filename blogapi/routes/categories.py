"""
Blog API — Category Route Handlers
====================================

Reads are public. Create, update and delete require an admin token.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.context import AppContext, get_context
from blogapi.database import get_db_session
from blogapi.schemas.category import (
    CategoryCreate,
    CategoryListResponse,
    CategoryResponse,
    CategoryUpdate,
)
from blogapi.schemas.common import ErrorResponse, MessageResponse
from blogapi.security.principal import Principal, optional_principal

router = APIRouter(prefix="/categories", tags=["Categories"])

ADMIN_ERRORS = {
    401: {"description": "Token required", "model": ErrorResponse},
    403: {"description": "Admins only", "model": ErrorResponse},
}


@router.get("", response_model=CategoryListResponse, summary="List categories")
async def list_categories(
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> CategoryListResponse:
    categories = await ctx.categories.list_categories(db)
    return CategoryListResponse(
        categories=[CategoryResponse.model_validate(c) for c in categories]
    )


@router.get(
    "/{category_id}",
    response_model=CategoryResponse,
    responses={404: {"description": "Category not found", "model": ErrorResponse}},
    summary="Get a category",
)
async def get_category(
    category_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> CategoryResponse:
    return CategoryResponse.model_validate(await ctx.categories.get_category(db, category_id))


# Optional principal: an anonymous call reaches the policy, which reports
# "missing" before any admin check
@router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**ADMIN_ERRORS, 409: {"description": "Name taken", "model": ErrorResponse}},
    summary="Create a category",
)
async def create_category(
    body: CategoryCreate,
    principal: Optional[Principal] = Depends(optional_principal),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> CategoryResponse:
    category = await ctx.categories.create_category(db, principal, body)
    return CategoryResponse.model_validate(category)


@router.patch(
    "/{category_id}",
    response_model=CategoryResponse,
    responses={
        **ADMIN_ERRORS,
        404: {"description": "Category not found", "model": ErrorResponse},
        409: {"description": "Name taken", "model": ErrorResponse},
    },
    summary="Update a category",
)
async def update_category(
    category_id: uuid.UUID,
    body: CategoryUpdate,
    principal: Optional[Principal] = Depends(optional_principal),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> CategoryResponse:
    category = await ctx.categories.update_category(db, category_id, principal, body)
    return CategoryResponse.model_validate(category)


@router.delete(
    "/{category_id}",
    response_model=MessageResponse,
    responses={**ADMIN_ERRORS, 404: {"description": "Category not found", "model": ErrorResponse}},
    summary="Delete a category",
    description="Also removes the category from every blog that referenced it.",
)
async def delete_category(
    category_id: uuid.UUID,
    principal: Optional[Principal] = Depends(optional_principal),
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> MessageResponse:
    await ctx.categories.delete_category(db, category_id, principal)
    return MessageResponse(message="Category deleted successfully")
