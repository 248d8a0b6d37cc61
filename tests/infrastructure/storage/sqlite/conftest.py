"""Pytest fixtures for SQLite storage tests."""

from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import patch

import pytest

from src.infrastructure.storage.sqlite.catalog_store import SQLiteCatalogStore
from src.infrastructure.storage.sqlite.connection import ConnectionPool
from src.infrastructure.storage.sqlite.migrations import initialize_database


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Create a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture
async def initialized_db(temp_db_path: Path) -> Path:
    """Temporary database with all migrations applied."""
    results = await initialize_database(temp_db_path, create_backup_before=False)
    assert all(r.success for r in results)
    return temp_db_path


@pytest.fixture
async def store(initialized_db: Path) -> AsyncGenerator[SQLiteCatalogStore, None]:
    """Catalog store bound to the temporary database."""
    pool = ConnectionPool(db_path=initialized_db, pool_size=2)
    await pool.initialize()

    with patch(
        "src.infrastructure.storage.sqlite.catalog_store.get_connection",
        side_effect=lambda: pool.acquire(),
    ), patch(
        "src.infrastructure.storage.sqlite.catalog_store.get_transaction",
        side_effect=lambda: pool.transaction(),
    ):
        yield SQLiteCatalogStore()

    await pool.close()
