"""Pytest configuration for tests."""

import os
from pathlib import Path

import pytest
import pytest_asyncio
from dotenv import load_dotenv

# Load .env.test file if it exists
env_test_path = Path(__file__).parent.parent / ".env.test"
if env_test_path.exists():
    load_dotenv(env_test_path)

# Set test environment variables before any imports (only if not already set)
os.environ.setdefault("DATABASE_URL", "postgresql://localhost:5432/offboarding_test")
os.environ.setdefault("DATABASE_SSL", "disable")
os.environ.setdefault("LOG_LEVEL", "INFO")
os.environ.setdefault("SESSION_PRUNE_INTERVAL", "900")


@pytest_asyncio.fixture
async def db():
    """Connected Database against DATABASE_URL; skips when Postgres is unreachable."""
    from offboard_api.core.config import settings
    from offboard_api.core.database import Database

    database = Database(
        settings.require_database_url(),
        min_size=1,
        max_size=5,
        ssl=settings.database_ssl,
    )
    try:
        await database.connect(max_retries=1)
        await database.ping()
    except Exception as e:
        await database.disconnect()
        pytest.skip(f"Postgres not reachable: {e}")

    yield database

    await database.disconnect()


@pytest_asyncio.fixture
async def clean_db(db):
    """Database with both tables present and empty."""
    from offboard_api.services.offboardings import OffboardingStore
    from offboard_api.services.sessions import initialize_session_table

    await initialize_session_table(db)
    await OffboardingStore(db).initialize_table()
    await db.execute("DELETE FROM scheduled_offboardings")
    await db.execute('DELETE FROM "public"."user_sessions"')

    yield db


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests (fast)")
    config.addinivalue_line(
        "markers", "integration: marks tests that need a real Postgres (DATABASE_URL)"
    )
