"""Shared test fixtures: in-memory SQLite DB, test client, fake forecast readers."""

import uuid
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from forma.dependencies import get_db
from forma.main import app
from forma.models.base import Base
from forma.models.transaction import TransactionStatus
from forma.services.forecast_cache import InMemoryForecastCache
from forma.services.forecast_service import ForecastService
from forma.services.forecast_types import TransactionRecord, UserSettings
from forma.services.readers import BalanceReader, SettingsReader, TransactionReader

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed "today" for engine tests
TODAY = date(2026, 3, 10)

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)


# Enable foreign key enforcement in SQLite (off by default).
@event.listens_for(test_engine.sync_engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
test_session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """Yield a test DB session."""
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncClient:
    """Yield an httpx AsyncClient wired to the test DB and a fresh forecast cache."""

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.state.forecast_cache = InMemoryForecastCache()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


# --- In-memory readers for engine tests ---

class FakeTransactionReader(TransactionReader):

    def __init__(self, completed=None, planned=None):
        self.completed: list[TransactionRecord] = list(completed or [])
        self.planned: list[TransactionRecord] = list(planned or [])
        self.calls = 0
        self.error: Exception | None = None

    async def list_completed_transactions(self, account_id, since_date):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [
            t for t in self.completed
            if t.account_id == account_id and t.effective_date >= since_date
        ]

    async def list_planned_transactions(self, account_id, until_date):
        return [
            t for t in self.planned
            if t.account_id == account_id and t.effective_date <= until_date
        ]


class FakeSettingsReader(SettingsReader):

    def __init__(self, settings: UserSettings | None = None):
        self.settings = settings
        self.error: Exception | None = None

    async def get_user_settings(self, workspace_id):
        if self.error is not None:
            raise self.error
        return self.settings


class FakeBalanceReader(BalanceReader):

    def __init__(self, balances: dict | None = None):
        self.balances = dict(balances or {})
        self.error: Exception | None = None

    async def get_current_balance(self, account_id):
        if self.error is not None:
            raise self.error
        return self.balances.get(account_id)


def make_txn(
    account_id: uuid.UUID,
    amount: str,
    day: date,
    status: TransactionStatus = TransactionStatus.completed,
    txn_id: uuid.UUID | None = None,
) -> TransactionRecord:
    return TransactionRecord(
        id=txn_id or uuid.uuid4(),
        account_id=account_id,
        amount=Decimal(amount),
        status=status,
        transaction_date=day,
        planned_date=day if status == TransactionStatus.planned else None,
    )


@pytest.fixture
def txn_factory():
    return make_txn


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def forecast_env():
    """Readers + service wired together with a fixed clock.

    Returns a namespace-like dict: workspace_id, account_id, readers, service.
    """
    workspace_id = uuid.uuid4()
    account_id = uuid.uuid4()
    transactions = FakeTransactionReader()
    settings = FakeSettingsReader(UserSettings(minimum_safe_balance=Decimal("200"), safety_buffer_days=7))
    balances = FakeBalanceReader({account_id: Decimal("1000")})
    service = ForecastService(
        transactions, settings, balances,
        cache=InMemoryForecastCache(),
        clock=lambda: TODAY,
    )
    return {
        "workspace_id": workspace_id,
        "account_id": account_id,
        "transactions": transactions,
        "settings": settings,
        "balances": balances,
        "service": service,
    }
