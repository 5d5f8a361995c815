"""
Database configuration and session management with SQLAlchemy.

The only table the core owns is the document counter table: one row per
(account, kind, calendar month) holding the last sequence value handed
out. Document records themselves are stored by the calling layer.

Design Decisions:
- Async engine for non-blocking operations
- Composite primary key gives the database a uniqueness guarantee
  on the counter scope
- Connection pooling only where the dialect supports it
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from facturier.config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class DocumentCounter(Base):
    """
    Last sequence value issued per (account, kind, month).

    Rows are only ever incremented, never decremented or deleted,
    so numbers of voided documents are not reused.
    """
    __tablename__ = "document_counters"

    account_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    kind: Mapped[str] = mapped_column(String(32), primary_key=True)  # invoice, quote, delivery_note
    period: Mapped[str] = mapped_column(String(6), primary_key=True)  # YYYYMM
    value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


# Engine and session factory (initialized lazily)
_engine: AsyncEngine | None = None
_session_factory = None


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with pool settings suited to the dialect."""
    url = make_url(database_url)
    options: dict = {"echo": echo}
    if url.get_backend_name() == "postgresql":
        options.update(pool_size=5, max_overflow=10, pool_timeout=30)

    engine = create_async_engine(url, **options)
    logger.info(f"Database engine created for {url.get_backend_name()}://{url.host or url.database}")
    return engine


def get_engine() -> AsyncEngine:
    """Get or create the async database engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = build_engine(settings.database_url, echo=settings.debug)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory for creating database sessions."""
    global _session_factory
    if _session_factory is None:
        engine = get_engine()
        _session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Get a database session.

    Usage:
        async with get_session() as session:
            await session.get(DocumentCounter, ("acc_1", "invoice", "202410"))
    """
    factory = get_session_factory()
    session = factory()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def init_db(engine: AsyncEngine | None = None) -> None:
    """
    Initialize database tables.

    Call this on application startup to ensure tables exist.
    In production, use Alembic migrations instead.
    """
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized")


async def close_db() -> None:
    """Close database connections on shutdown."""
    global _engine, _session_factory
    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None
    logger.info("Database connections closed")
