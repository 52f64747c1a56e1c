"""Async SQLAlchemy engine, session factory, and Base declaration."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import text

from cheapeats.config import settings


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""
    pass


def engine_options(database_url: str) -> dict[str, Any]:
    """Pool options for the given URL. SQLite drivers do not accept pool sizing."""
    if database_url.startswith("sqlite"):
        return {}
    return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}


engine = create_async_engine(
    settings.database_url,
    echo=(settings.app_env == "development"),
    **engine_options(settings.database_url),
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def check_db_connectivity() -> bool:
    """Return True if a simple SELECT 1 succeeds."""
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
