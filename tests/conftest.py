"""
Pytest configuration and shared fixtures for Travel Planner API tests

APPROACH:
- Unit tests run against a fake DatabaseConnection whose session() and
  transaction() hand out an AsyncMock connection.
- Integration tests use DatabaseConnection directly against the test database
  and a suffixed set of tables (category_test, ...), redirected through
  TableConfig. They are skipped when the database is unreachable.
"""

import asyncio
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import asyncpg
import pytest

# Root modules (config, database, ...) are imported directly
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config import DatabaseConfig, TableConfig
from database import DatabaseConnection
from repositories import RepositoryContainer


SCHEMA_FILE = project_root / "schema.sql"

TABLES = [
    "users", "category", "event", "location", "highlight",
    "trip", "trip_participant", "trip_itinerary", "trip_invite", "translation",
]

TEST_TABLES = TableConfig(suffix="_test")


def pytest_configure(config):
    """Load .env.test unless the caller picked an environment"""
    os.environ.setdefault('APP_ENV', 'test')


# =============================================================================
# Unit test helpers
# =============================================================================

def make_fake_db(conn) -> MagicMock:
    """A DatabaseConnection stand-in whose scopes all yield `conn`"""
    db = MagicMock(spec=DatabaseConnection)

    @asynccontextmanager
    async def scope():
        yield conn

    db.session = scope
    db.transaction = scope
    db.fetchval = conn.fetchval
    return db


@pytest.fixture
def mock_conn():
    """AsyncMock asyncpg connection"""
    conn = AsyncMock()
    conn.execute.return_value = "UPDATE 1"
    conn.fetch.return_value = []
    conn.fetchval.return_value = 0
    return conn


@pytest.fixture
def fake_db(mock_conn):
    return make_fake_db(mock_conn)


# =============================================================================
# Integration fixtures
# =============================================================================

async def _prepare_tables(db: DatabaseConnection):
    """Apply the schema, then create and empty the suffixed test tables"""
    async with db.transaction() as conn:
        await conn.execute(SCHEMA_FILE.read_text(encoding="utf-8"))
        for table in TABLES:
            physical = TEST_TABLES.physical(table)
            await conn.execute(f"CREATE TABLE IF NOT EXISTS {physical} (LIKE {table} INCLUDING ALL)")
            await conn.execute(f"TRUNCATE {physical}")


@pytest.fixture(scope="function")
async def db():
    """
    DatabaseConnection on the test database with empty test tables.
    Skips the test when the database cannot be reached.
    """
    config = DatabaseConfig.from_environment('test')
    connection = DatabaseConnection(config)
    try:
        await connection.connect()
    except (OSError, asyncio.TimeoutError, asyncpg.PostgresError) as e:
        pytest.skip(f"Test database unavailable: {e}")

    try:
        await _prepare_tables(connection)
        yield connection
    finally:
        await connection.disconnect()


@pytest.fixture(scope="function")
async def repos(db):
    """RepositoryContainer on the suffixed test tables"""
    return RepositoryContainer(db, TEST_TABLES)
