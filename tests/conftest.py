"""Common test fixtures."""

import os
from pathlib import Path
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from sqlalchemy import event, insert
from sqlalchemy.engine import create_mock_engine
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool
from testcontainers.postgres import PostgresContainer

from search_models import POSTS, PRODUCTS, USERS, Base, Post, Product, User
from searchable.adapter import SQLAlchemyConnectionInfo
from searchable.config import ConfigManager, SearchableConfig
from searchable.dialect import CapabilityCache
from searchable.service import SearchService


# =============================================================================
# Database Backend Selection (env var approach)
# =============================================================================
# By default only SQLite runs.
# Set SEARCHABLE_TEST_POSTGRES=1 to also run the tests marked postgres
# (uses testcontainers).


@pytest.fixture(scope="session")
def db_backend():
    """Determine database backend from environment variable.

    Default: sqlite
    Set SEARCHABLE_TEST_POSTGRES=1 to use postgres
    """
    if os.environ.get("SEARCHABLE_TEST_POSTGRES", "").lower() in ("1", "true", "yes"):
        return "postgres"
    return "sqlite"


@pytest.fixture(scope="session")
def postgres_container(db_backend):
    """Session-scoped Postgres container, only started in postgres mode.

    The stock image ships the fuzzystrmatch extension but does not install it.
    """
    if db_backend != "postgres":
        yield None
        return

    with PostgresContainer("postgres:16") as postgres:
        yield postgres


@pytest.fixture
def config_home(tmp_path, monkeypatch) -> Path:
    # Patch HOME environment variable for the duration of the test
    monkeypatch.setenv("HOME", str(tmp_path))
    # On Windows, also set USERPROFILE
    if os.name == "nt":
        monkeypatch.setenv("USERPROFILE", str(tmp_path))
    monkeypatch.delenv("SEARCHABLE_CONFIG_DIR", raising=False)
    return tmp_path


@pytest.fixture(scope="function")
def app_config(config_home) -> SearchableConfig:
    """Create test app configuration."""
    return SearchableConfig(fuzzy_max_distance=3)


@pytest.fixture
def config_manager(app_config: SearchableConfig, config_home: Path) -> ConfigManager:
    # Invalidate config cache to ensure clean state for each test
    from searchable import config as config_module

    config_module._CONFIG_CACHE = None

    config_manager = ConfigManager()
    config_manager.config_dir = config_home / ".searchable"
    config_manager.config_file = config_manager.config_dir / "config.json"
    config_manager.config_dir.mkdir(parents=True, exist_ok=True)

    config_manager.save_config(app_config)
    yield config_manager

    config_module._CONFIG_CACHE = None


@pytest.fixture
def capability_cache() -> CapabilityCache:
    """A fresh capability cache, so probes never leak between tests."""
    return CapabilityCache()


# =============================================================================
# Offline dialects (compile only, no database)
# =============================================================================


def _noop_executor(sql, *multiparams, **params):
    return None


def offline_connection(url: str) -> SQLAlchemyConnectionInfo:
    """ConnectionInfo for a dialect without a live database."""
    return SQLAlchemyConnectionInfo(create_mock_engine(url, _noop_executor))


@pytest.fixture
def sqlite_info() -> SQLAlchemyConnectionInfo:
    return offline_connection("sqlite://")


@pytest.fixture
def postgres_info() -> SQLAlchemyConnectionInfo:
    return offline_connection("postgresql://")


@pytest.fixture
def mysql_info() -> SQLAlchemyConnectionInfo:
    return offline_connection("mysql://")


def compile_sql(
    statement, connection: SQLAlchemyConnectionInfo, literal_binds: bool = False
) -> str:
    """Compile a statement for the connection's dialect."""
    compile_kwargs = {"literal_binds": True} if literal_binds else {}
    return str(statement.compile(dialect=connection.dialect, compile_kwargs=compile_kwargs))


@pytest.fixture
def compile_for():
    return compile_sql


# =============================================================================
# SQLite database
# =============================================================================


def soundex(value: Optional[str]) -> Optional[str]:
    """American Soundex, registered on SQLite which has no built-in version."""
    if value is None:
        return None
    letters = [c for c in value.upper() if c.isalpha()]
    if not letters:
        return ""

    codes = {}
    for digit, group in (
        ("1", "BFPV"),
        ("2", "CGJKQSXZ"),
        ("3", "DT"),
        ("4", "L"),
        ("5", "MN"),
        ("6", "R"),
    ):
        for letter in group:
            codes[letter] = digit

    result = letters[0]
    previous = codes.get(letters[0], "")
    for letter in letters[1:]:
        if letter in "HW":
            continue
        code = codes.get(letter, "")
        if code and code != previous:
            result += code
        previous = code
        if len(result) == 4:
            break
    return result.ljust(4, "0")


def register_sqlite_functions(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _register(dbapi_connection, connection_record):
        dbapi_connection.create_function("soundex", 1, soundex)


@pytest_asyncio.fixture(scope="function")
async def engine_factory(
    app_config,
) -> AsyncGenerator[tuple[AsyncEngine, async_sessionmaker[AsyncSession]], None]:
    """In-memory SQLite engine with the test schema and rows.

    StaticPool keeps one connection, so every session sees the same database.
    """
    engine = create_async_engine("sqlite+aiosqlite://", echo=False, poolclass=StaticPool)
    session_maker = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    register_sqlite_functions(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.execute(insert(User), USERS)
        await conn.execute(insert(Post), POSTS)
        await conn.execute(insert(Product), PRODUCTS)

    # Yield after setup is complete
    yield engine, session_maker

    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(engine_factory) -> async_sessionmaker[AsyncSession]:
    """Get session maker for tests."""
    _, session_maker = engine_factory
    return session_maker


@pytest_asyncio.fixture
async def search_service(
    engine_factory, app_config: SearchableConfig, capability_cache: CapabilityCache
) -> SearchService:
    """SearchService bound to the SQLite test engine."""
    engine, _ = engine_factory
    return SearchService(
        engine.sync_engine, app_config=app_config, capability_cache=capability_cache
    )


# =============================================================================
# Postgres database
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def postgres_engine_factory(
    db_backend, postgres_container
) -> AsyncGenerator[tuple[AsyncEngine, async_sessionmaker[AsyncSession]], None]:
    """Postgres engine with the test schema and rows (postgres mode only)."""
    if db_backend != "postgres":
        pytest.skip("Postgres tests require SEARCHABLE_TEST_POSTGRES=1")

    sync_url = postgres_container.get_connection_url()
    async_url = sync_url.replace("postgresql+psycopg2", "postgresql+asyncpg")

    engine = create_async_engine(
        async_url,
        echo=False,
        poolclass=NullPool,  # NullPool for better test isolation
    )
    session_maker = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    # Drop and recreate all tables for test isolation
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
        await conn.execute(insert(User), USERS)
        await conn.execute(insert(Post), POSTS)
        await conn.execute(insert(Product), PRODUCTS)

    yield engine, session_maker

    await engine.dispose()
