"""
PlaceShare Backend: Database Session Management
==================================================

What:  Async SQLAlchemy engine, session factory, the FastAPI session
       dependency and the explicit transaction helper used by the services.
How:   One engine with a connection pool per process, one session per
       request. Writes that must land together go through
       `with_transaction`, which commits or rolls back as a unit.

Connection Pooling:
    pool_size=20, max_overflow=10 → at most 30 connections per worker.
    pool_pre_ping validates a connection before it is handed out.
    pool_recycle=3600 drops connections older than an hour.
"""

from typing import AsyncGenerator, Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from placeshare.config import settings

T = TypeVar("T")


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=settings.db_pool_pre_ping,
    pool_recycle=3600,
    # SQL echo only in DEBUG
    echo=settings.log_level == "DEBUG",
)

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False keeps loaded attributes readable after commit,
# services return ORM objects after their transaction has finished.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Every model registers with this metadata, which Alembic and the test
    suite use to build the schema.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits anything still pending
        4. On error: rolls back
        5. Always: closes the session (returns connection to pool)

    Services commit their own dual writes through `with_transaction`, so
    the commit here usually has nothing left to do.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Transactions ──────────────────────────────────────────────────────────
async def with_transaction(
    session: AsyncSession,
    fn: Callable[[AsyncSession], Awaitable[T]],
) -> T:
    """
    Run `fn` as one atomic unit of work on `session`.

    What:    Awaits `fn(session)`, then commits. If `fn` or the commit
             raises, the session is rolled back and the exception re-raised,
             so none of the writes made inside `fn` are persisted.
    Who:     PlaceService.create and PlaceService.delete, where a place row
             and its owner's list entry must change together.

    Example:
        async def _write(db):
            db.add(place)
            db.add(UserPlace(user_id=owner.id, place_id=place.id, position=0))
            await db.flush()
            return place

        place = await with_transaction(db, _write)
    """
    try:
        result = await fn(session)
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    return result


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Closes all pooled connections. Called during application shutdown."""
    await engine.dispose()
