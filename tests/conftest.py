import os
import sys
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

sys.path.append(str(Path(__file__).parents[1] / "src"))

# Settings are read at import time; point the app at SQLite before importing it.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./txnflow_test.db")
os.environ.setdefault("APP_ENV", "test")

from txnflow.db.session import get_db
from txnflow.main import app
from txnflow.models.base import Base
from txnflow.services.background import RecurringDetectionQueue
from txnflow.services.pipeline import TransactionPipeline

USER_ID = "user-123"
OTHER_USER_ID = "user-456"


def _enable_sqlite_savepoints(engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT works with pysqlite."""

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest.fixture
async def engine(tmp_path: Path):
    """Async engine on a fresh SQLite file with all tables created."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'txnflow.db'}",
        echo=False,
        connect_args={"timeout": 15},
    )
    _enable_sqlite_savepoints(test_engine)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Provide test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def recurring_queue(session_factory):
    """A started recurring detection worker bound to the test database."""
    queue = RecurringDetectionQueue(session_factory)
    queue.start()
    yield queue
    await queue.stop()


@pytest.fixture
def pipeline(db_session: AsyncSession) -> TransactionPipeline:
    """Pipeline without background recurring detection."""
    return TransactionPipeline(db_session)


@pytest.fixture
async def client(session_factory):
    """Provide test client with database override (one session per request)."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.recurring_queue = None

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    app.state.recurring_queue = None


@pytest.fixture
def user_headers() -> dict[str, str]:
    return {"X-User-Id": USER_ID}
