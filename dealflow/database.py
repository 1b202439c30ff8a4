"""
Dealflow – Async SQLAlchemy engine, session, and declarative base.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from dealflow.config import settings


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    engine_kwargs = {
        "echo": echo,
        "future": True,
    }

    # If using PostgreSQL (Supabase), disable prepared statement caching
    # because PgBouncer (transaction mode) does not support it properly.
    if "postgresql" in url:
        engine_kwargs["connect_args"] = {"statement_cache_size": 0}

    return create_async_engine(url, **engine_kwargs)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# ── Engine ──
engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# ── Session factory ──
async_session = build_session_factory(engine)


# ── Declarative base ──
class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


async def create_tables(bind: AsyncEngine = engine) -> None:
    """Create every table registered on ``Base`` (no migrations)."""
    import dealflow.models  # noqa: F401  (register mappers)

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
