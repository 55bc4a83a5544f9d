from functools import lru_cache
from pathlib import Path
from typing import AsyncGenerator

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Session

from src.config import get_settings

settings = get_settings()


class Base(DeclarativeBase):
    pass


engine = create_async_engine(settings.database_url, echo=settings.debug)
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        yield session


def _ensure_sqlite_directory(url: str) -> None:
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database not in (None, "", ":memory:"):
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)


async def init_db() -> None:
    # Import models so they register with Base.metadata
    import src.models  # noqa: F401

    _ensure_sqlite_directory(settings.database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized")


@lru_cache
def get_sync_engine() -> Engine:
    """同步版本的資料庫連線（給排程與服務層使用）"""
    _ensure_sqlite_directory(settings.sync_database_url)
    return create_engine(settings.sync_database_url)


def get_sync_session() -> Session:
    return Session(get_sync_engine())
