"""
Pytest configuration for the Price Archive API.

Provides fixtures for:
- Test settings pointing at an in-memory SQLite database
- A shared Database client with the prices table created
- A FastAPI TestClient wired to that database
- Building ZIP archives of CSV files in memory
"""

from __future__ import annotations

import io
import zipfile
from typing import Callable, Dict, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from api.main import create_app
from core.config import Settings
from db.models import PriceRecord
from db.session import Database, init_db

SQLALCHEMY_DATABASE_URL = "sqlite://"


@pytest.fixture
def test_settings() -> Settings:
    """Settings with test-specific overrides."""
    return Settings(
        database_url=SQLALCHEMY_DATABASE_URL,
        log_level="DEBUG",
        environment="test",
    )


@pytest.fixture
def database(test_settings: Settings) -> Generator[Database, None, None]:
    """In-memory database with the prices table created."""
    database = Database(test_settings.database_url)
    init_db(database)
    try:
        yield database
    finally:
        database.close()


@pytest.fixture
def session(database: Database) -> Generator[Session, None, None]:
    with database.session() as session:
        yield session


@pytest.fixture
def client(test_settings: Settings, database: Database) -> Generator[TestClient, None, None]:
    app = create_app(settings=test_settings, database=database)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def make_archive() -> Callable[[Dict[str, str]], bytes]:
    """Return a helper building a ZIP archive from ``{entry_name: csv_text}``."""

    def _make_archive(entries: Dict[str, str]) -> bytes:
        output = io.BytesIO()
        with zipfile.ZipFile(output, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for name, content in entries.items():
                archive.writestr(name, content)
        return output.getvalue()

    return _make_archive


@pytest.fixture
def count_prices(database: Database) -> Callable[[], int]:
    """Return a helper counting stored rows through a fresh session."""

    def _count_prices() -> int:
        with database.session() as session:
            return session.scalar(select(func.count()).select_from(PriceRecord))

    return _count_prices
