"""
Blog API — Application Context
================================

What:  The per-process object graph: settings, engine, session factory and
       every service, built once by `create_app()` and stored on app.state.
Why:   No module-level engine or service singletons. Tests build their own
       context with their own settings and database.
How:   Routes receive it through the `get_context` dependency.
"""

import logging
from dataclasses import dataclass

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from blogapi.config import Settings
from blogapi.database import build_engine, build_session_factory, dispose_engine
from blogapi.security.passwords import PasswordService
from blogapi.security.principal import TokenService
from blogapi.services.auth_service import AuthService
from blogapi.services.blog_service import BlogService
from blogapi.services.category_service import CategoryService
from blogapi.services.comment_service import CommentService
from blogapi.services.file_service import FileService

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    tokens: TokenService
    passwords: PasswordService
    files: FileService
    auth: AuthService
    blogs: BlogService
    comments: CommentService
    categories: CategoryService

    @classmethod
    def build(cls, settings: Settings) -> "AppContext":
        engine = build_engine(settings)
        tokens = TokenService(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            lifetime_seconds=settings.jwt_lifetime_seconds,
        )
        passwords = PasswordService()
        files = FileService(settings)
        blogs = BlogService(settings, files)
        return cls(
            settings=settings,
            engine=engine,
            session_factory=build_session_factory(engine),
            tokens=tokens,
            passwords=passwords,
            files=files,
            auth=AuthService(passwords, tokens),
            blogs=blogs,
            comments=CommentService(settings, blogs),
            categories=CategoryService(),
        )

    async def aclose(self) -> None:
        await dispose_engine(self.engine)


def get_context(request: Request) -> AppContext:
    """FastAPI dependency returning the AppContext of the running app."""
    return request.app.state.context
