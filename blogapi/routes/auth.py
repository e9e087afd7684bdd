"""
Blog API — Account Route Handlers
===================================

What:  POST /register and POST /login; the only unauthenticated writes.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from blogapi.context import AppContext, get_context
from blogapi.database import get_db_session
from blogapi.schemas.auth import LoginRequest, RegisterRequest, TokenResponse, UserPublic
from blogapi.schemas.common import ErrorResponse
from blogapi.services.auth_service import to_public

router = APIRouter(tags=["Auth"])


@router.post(
    "/register",
    response_model=UserPublic,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid body", "model": ErrorResponse},
        409: {"description": "Username or email taken", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> UserPublic:
    user = await ctx.auth.register(db, body)
    return to_public(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Log in",
    description="Exchanges email and password for a bearer token.",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session, scope="function"),
    ctx: AppContext = Depends(get_context),
) -> TokenResponse:
    return await ctx.auth.login(db, body)
