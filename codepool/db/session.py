"""Database session and engine."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.engine.url import URL

from codepool.config import Settings, settings
from codepool.db.models import Base
from codepool.errors import translate_storage_error


def build_database_url(cfg: Settings = settings) -> str | URL:
    """DATABASE_URL when set, otherwise assembled from the db_* fields."""
    if cfg.database_url:
        return cfg.database_url
    return URL.create(
        drivername="postgresql+asyncpg",
        username=cfg.db_user,
        password=cfg.db_password,
        host=cfg.db_host,
        port=cfg.db_port,
        database=cfg.db_name,
    )


DATABASE_URL = build_database_url()

engine = create_async_engine(
    DATABASE_URL,
    echo=settings.log_level.upper() == "DEBUG",
    pool_size=settings.db_pool_size,
    pool_timeout=settings.db_pool_timeout,
    pool_pre_ping=True,
)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def init_db():
    """Create tables if they don't exist (safe to call on every startup)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncIterator[AsyncSession]:
    """
    One unit of work: commit on success, roll back on any error.

    SQLAlchemy failures leave as Unavailable / Internal so callers never
    see driver exceptions.
    """
    factory = session_factory or async_session
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except (SQLAlchemyError, OSError) as e:
            await session.rollback()
            raise translate_storage_error(e) from e
        except BaseException:
            await session.rollback()
            raise
