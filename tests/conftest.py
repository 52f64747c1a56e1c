"""
Root pytest configuration.

Points the application at a throwaway SQLite database before any cheapeats
module is imported (settings and the engine are built at import time), and
provides a runner for driving async store code from plain test functions.
Test doubles live in helpers.py.
"""

import asyncio
import os
import tempfile
from pathlib import Path

_TEST_DB_DIR = Path(tempfile.mkdtemp(prefix="cheapeats-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DB_DIR / 'app.db'}"
os.environ["GOOGLE_PLACES_API_KEY"] = "test-key"
os.environ["APP_ENV"] = "test"
os.environ["FETCH_DELAY_SECONDS"] = "0"

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from cheapeats.models import Base  # noqa: E402
from cheapeats.services.store import RestaurantStore  # noqa: E402


@pytest.fixture
def run_with_store(tmp_path):
    """
    Return a runner that executes `scenario(store)` against a fresh SQLite
    database and returns the scenario's result.
    """
    db_url = f"sqlite+aiosqlite:///{tmp_path / 'store.db'}"

    def _run(scenario):
        async def _main():
            engine = create_async_engine(db_url)
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            session_factory = async_sessionmaker(
                bind=engine, class_=AsyncSession, expire_on_commit=False
            )
            try:
                return await scenario(RestaurantStore(session_factory))
            finally:
                await engine.dispose()

        return asyncio.run(_main())

    return _run
