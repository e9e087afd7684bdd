"""
Blog API — Database Engine & Session Management
=================================================

What:  Async SQLAlchemy engine construction, session dependency, schema and
       connectivity helpers.
Why:   Centralizes all database connection logic in one place.
How:   `build_engine()` creates the engine from Settings (no module-level
       engine); the AppContext owns it. `get_db_session()` hands each request
       its own session and transaction.

Transaction Strategy:
    One request = one transaction. The session dependency commits when the
    handler returns (before the response goes out) and rolls back on ANY
    exception. Multi-row mutations (comment creation, cascading deletes)
    therefore either land completely or not at all. Services only flush;
    they never commit.
"""

import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from blogapi.config import Settings
from blogapi.exceptions import DatabaseError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object between the models, Alembic and
    `create_schema()`.
    """
    pass


# ── Engine Configuration ──────────────────────────────────────────────────
def build_engine(settings: Settings) -> AsyncEngine:
    """
    Create the async engine for the configured database URL.

    PostgreSQL gets a sized connection pool. SQLite (tests, local runs) cannot
    use pool sizing; an in-memory SQLite database additionally needs a single
    shared connection or every session would see a different empty database.
    """
    url = settings.database_url
    echo = settings.log_level == "DEBUG"

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:"):
            kwargs["poolclass"] = StaticPool
        return create_async_engine(url, echo=echo, **kwargs)

    return create_async_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
        echo=echo,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: response models are built after the flush,
    # and touching expired attributes would trigger I/O outside the session
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Declare it with `Depends(get_db_session, scope="function")` so the exit
    code runs as soon as the route function returns, before the response is
    serialized and before any BackgroundTasks run.

    How it works:
        1. Creates a new session from the AppContext's factory
        2. Yields it to the route handler
        3. On success: commits the transaction; a failed commit becomes a
           DatabaseError (500) instead of a success response
        4. On error: rolls back and re-raises for the global error handler
        5. Always: closes the session (returns connection to pool)
    """
    session_factory = request.app.state.context.session_factory
    async with session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        else:
            try:
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("Commit failed on %s %s: %s", request.method, request.url.path, e)
                raise DatabaseError(context={"operation": "commit"}) from e
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def create_schema(engine: AsyncEngine) -> None:
    """Create every table known to Base.metadata (development and tests)."""
    # Models register themselves with Base on import
    import blogapi.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def verify_connection(engine: AsyncEngine, settings: Settings) -> None:
    """
    Check that the database answers `SELECT 1`, retrying with backoff.

    What:  Startup probe; the API should not report ready before the DB is.
    How:   Tenacity retries connection errors with exponential backoff + jitter.
    Raises DatabaseError once all attempts are exhausted.
    """
    try:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type((OSError, SQLAlchemyError)),
            stop=stop_after_attempt(settings.db_connect_max_attempts),
            wait=wait_exponential_jitter(
                initial=settings.db_connect_min_wait,
                max=settings.db_connect_max_wait,
                jitter=1,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
        ):
            with attempt:
                async with engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
    except RetryError as e:
        last = e.last_attempt.exception() if e.last_attempt else None
        logger.error("Database unreachable after %d attempts: %s",
                     settings.db_connect_max_attempts, last)
        raise DatabaseError(
            message="Database is unreachable",
            context={"attempts": settings.db_connect_max_attempts,
                     "error_type": type(last).__name__ if last else None},
        ) from last


async def dispose_engine(engine: AsyncEngine) -> None:
    """Gracefully close all pooled connections (application shutdown)."""
    await engine.dispose()
