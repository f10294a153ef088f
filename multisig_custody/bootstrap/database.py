"""Database engine and session factory bootstrap.

The engine is created from ``MultisigSettings.database_url`` and returned to
the caller, who owns its lifetime (see ``MultisigContainer.close``).

Usage:
    engine, session_factory = create_session_factory(settings)
    async with session_factory() as session:
        ...
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from structlog import get_logger

from multisig_custody.config.multisig_config import MultisigSettings
from multisig_custody.infrastructure.adapters.persistence.tables import metadata

logger = get_logger()


def mask_database_url(url: str) -> str:
    """Hide the password part of a connection URL for logging."""
    if "@" not in url:
        return url
    before_at, after_at = url.split("@", 1)
    scheme, sep, credentials = before_at.partition("://")
    if not sep or ":" not in credentials:
        return url
    user = credentials.split(":", 1)[0]
    return f"{scheme}://{user}:***@{after_at}"


def create_session_factory(
    settings: MultisigSettings,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Create the async engine and its session factory.

    Raises:
        ValueError: If no database URL is configured.
    """
    url = settings.database_url
    if not url:
        raise ValueError(
            "DATABASE_URL environment variable not set. "
            "Required for the SQL repositories."
        )

    log = logger.bind(component="database_bootstrap")
    log.info("creating_database_engine", url=mask_database_url(url))

    if url.startswith("sqlite"):
        # One shared connection so an in-memory database survives across sessions
        engine = create_async_engine(
            url,
            echo=settings.sqlalchemy_echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_async_engine(
            url,
            echo=settings.sqlalchemy_echo,
            pool_pre_ping=True,
        )

    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    log.info("database_session_factory_created")
    return engine, session_factory


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("database_schema_ready")
