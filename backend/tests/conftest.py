"""Shared fixtures: settings, token service and an in-memory database."""

from datetime import datetime, timezone

import pytest

from jobboard.auth import TokenService
from jobboard.config import Settings
from jobboard.database import create_engine, create_session_factory, init_db

TEST_SECRET = "test-secret"
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at an in-memory database and a temp upload dir."""
    return Settings(
        database_url="sqlite://",
        jwt_secret=TEST_SECRET,
        bcrypt_rounds=4,
        cv_storage_dir=str(tmp_path / "uploads"),
        cv_public_base_url="http://testserver/uploads",
        log_level="WARNING",
    )


@pytest.fixture
def token_service():
    """Token service with the clock frozen at NOW."""
    return TokenService(secret=TEST_SECRET, clock=lambda: NOW)


@pytest.fixture
async def db_session():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine("sqlite://")
    await init_db(engine)
    session_factory = create_session_factory(engine)
    async with session_factory() as session:
        yield session
    await engine.dispose()
