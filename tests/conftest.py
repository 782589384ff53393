import logging
import os
from datetime import datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# Set test environment variables before anything reads settings
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOG_TO_FILE"] = "false"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ROUTINE_GENERATOR_ENABLED"] = "false"

from twodo.core.database import build_engine, create_tables  # noqa: E402
from twodo.domain.interfaces import FixedClock  # noqa: E402
from twodo.services.routine_service import RoutineService  # noqa: E402

COUPLE_ID = "couple-a"
OTHER_COUPLE_ID = "couple-b"
USER_ID = "user-1"

# Sunday 10 March 2024, mid-morning UTC
NOW = datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _strip_file_handlers():
    """Remove file handlers from root logger so tests never write to logs/app.log."""
    root = logging.getLogger()
    saved = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
    for h in saved:
        root.removeHandler(h)
    yield
    for h in list(root.handlers):
        if isinstance(h, logging.FileHandler):
            root.removeHandler(h)
    for h in saved:
        root.addHandler(h)


@pytest.fixture
async def async_engine():
    """In-memory async SQLite engine with all tables and foreign keys on."""
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def async_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def service(async_session, clock):
    return RoutineService(async_session, clock=clock)
