"""Database connection and session management.

The engine is created lazily so the app can start (and report a
configuration error) when DATABASE_URL is not set.
"""

import logging
import ssl

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import Settings, get_settings
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _connect_args(url: str, settings: Settings) -> dict:
    connect_args: dict = {}
    # Always use SSL for cloud databases
    if settings.environment == "production" or "supabase" in url or "pooler" in url:
        ssl_context = ssl.create_default_context()
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = ssl_context
        # Disable prepared statements for pgbouncer compatibility (Supabase uses pgbouncer)
        connect_args["prepared_statement_cache_size"] = 0
        connect_args["statement_cache_size"] = 0
        logger.info("Using SSL for database connection with pgbouncer compatibility")
    return connect_args


def create_engine_for(settings: Settings) -> AsyncEngine:
    """Build an async engine from settings."""
    url = settings.database_url_async
    if not url:
        raise ConfigurationError(
            "DATABASE_URL environment variable is not set. "
            "Please configure it in your .env file."
        )

    logger.info(f"Async Database URL (masked): {url[:30]}...")
    kwargs: dict = {
        "echo": settings.database_echo,
        "pool_pre_ping": True,
    }
    if url.startswith("postgresql"):
        kwargs.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_recycle=300,
            connect_args=_connect_args(url, settings),
        )
    return create_async_engine(url, **kwargs)


def get_engine() -> AsyncEngine:
    """Get or create the async engine (lazy initialization)."""
    global _engine
    if _engine is None:
        _engine = create_engine_for(get_settings())
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory (lazy initialization)."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,  # Don't expire objects after commit
            autoflush=False,
        )
    return _session_factory


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Initialize database (create tables if needed)."""
    from ..models import Base

    engine = engine or get_engine()
    async with engine.begin() as conn:
        # Supabase deployments create the tables from the setup SQL instead
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
