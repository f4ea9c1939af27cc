# This project was developed with assistance from AI tools.
"""Integration test fixtures -- real PostgreSQL, no mocks for the database.

A session-scoped container provides PostgreSQL with the schema applied by
``alembic upgrade head``. Function-scoped fixtures give each test an isolated
DB session with savepoint rollback so tests don't leak state. The sheet,
storage and mail collaborators stay in-memory.
"""

import os

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from testcontainers.postgres import PostgresContainer

# ---------------------------------------------------------------------------
# Mark all tests in this directory as integration
# ---------------------------------------------------------------------------
pytestmark = pytest.mark.integration

_DB_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "..", "db")


# ---------------------------------------------------------------------------
# Session-scoped: container + engine + migrations
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def pg_container():
    """Start postgres:16 via testcontainers."""
    with PostgresContainer(
        image="postgres:16",
        username="test",
        password="test",
        dbname="test",
    ) as pg:
        yield pg


@pytest.fixture(scope="session")
def db_url(pg_container):
    """Async DB URL for asyncpg."""
    host = pg_container.get_container_host_ip()
    port = pg_container.get_exposed_port(5432)
    return f"postgresql+asyncpg://test:test@{host}:{port}/test"


@pytest.fixture(scope="session")
def sync_db_url(pg_container):
    """Sync DB URL for Alembic (psycopg2)."""
    host = pg_container.get_container_host_ip()
    port = pg_container.get_exposed_port(5432)
    return f"postgresql+psycopg2://test:test@{host}:{port}/test"


@pytest.fixture(scope="session")
def _run_migrations(sync_db_url):
    """alembic upgrade head against the container."""
    from alembic import command
    from alembic.config import Config

    alembic_cfg = Config(os.path.join(_DB_DIR, "alembic.ini"))
    alembic_cfg.set_main_option("script_location", os.path.join(_DB_DIR, "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", sync_db_url)
    command.upgrade(alembic_cfg, "head")


@pytest.fixture(scope="session")
def async_engine(db_url, _run_migrations):
    """Create an async engine pointing at the test container."""
    engine = create_async_engine(db_url, echo=False, poolclass=NullPool)
    yield engine


# ---------------------------------------------------------------------------
# Function-scoped: per-test session with savepoint rollback
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_session(async_engine):
    """Per-test DB session with savepoint rollback.

    ``session.commit()`` inside the code under test only releases the
    savepoint; the outer transaction is rolled back afterwards.
    """
    conn = await async_engine.connect()
    txn = await conn.begin()
    session = AsyncSession(bind=conn, join_transaction_mode="create_savepoint")
    yield session
    await session.close()
    await txn.rollback()
    await conn.close()


@pytest.fixture
def session_factory(async_engine):
    """Independent sessions that really commit (for concurrency tests).

    Pair with ``truncate_cases`` so committed rows are removed.
    """
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def truncate_cases(async_engine):
    """Yield-based: truncates the case tables after the test completes."""
    yield
    async with async_engine.begin() as conn:
        await conn.execute(text("TRUNCATE TABLE case_progress_events, cases"))


@pytest.fixture
def client_factory(db_session, make_sheet, mock_storage, unconfigured_double_opt_in):
    """Factory returning (async httpx client, sheet) wired to the test DB."""
    from db import get_db

    from src.main import app
    from src.services.sheet_mirror import SheetMirror, get_sheet_mirror
    from src.services.storage import get_storage_service
    from src.services.double_opt_in import get_double_opt_in_service

    def _make(sheet=None):
        sheet = sheet or make_sheet()

        async def _get_db():
            yield db_session

        app.dependency_overrides[get_db] = _get_db
        app.dependency_overrides[get_sheet_mirror] = lambda: SheetMirror(sheet)
        app.dependency_overrides[get_storage_service] = lambda: mock_storage
        app.dependency_overrides[get_double_opt_in_service] = lambda: unconfigured_double_opt_in
        transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
        return httpx.AsyncClient(transport=transport, base_url="http://test"), sheet

    yield _make

    app.dependency_overrides.clear()
