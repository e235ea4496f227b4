"""Shared fixtures."""

import tempfile
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr

from localauth.config import Settings
from localauth.infrastructure.database import Database
from localauth.main import create_app


@pytest.fixture
async def database() -> AsyncGenerator[Database]:
    """Create a temporary test database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        db = Database(db_path)
        await db.connect()
        yield db
        await db.disconnect()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings for an app backed by a throwaway database."""
    return Settings(
        database_path=str(tmp_path / "app.db"),
        session_secret_key=SecretStr("test-session-secret"),
        mailgun_api_key=None,
        mailgun_domain=None,
        otel_enabled=False,
    )


@pytest.fixture
def client(settings: Settings) -> Generator[TestClient]:
    """Test client for the full application, with lifespan running."""
    with TestClient(create_app(settings)) as test_client:
        yield test_client
