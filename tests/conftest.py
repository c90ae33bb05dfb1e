"""Pytest fixtures for testing"""

import pytest
import pytest_asyncio
from datetime import datetime
from typing import AsyncIterator

import httpx
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from finance_ledger.api.main import create_app
from finance_ledger.domain.models import (
    Frequency,
    InstallmentPurchase,
    Subscription,
    Transaction,
    TransactionType,
)
from finance_ledger.infrastructure.database.bootstrap import ensure_collections
from finance_ledger.infrastructure.database.models import TRANSACTIONS_ORDERED_INDEX
from finance_ledger.infrastructure.database.session import (
    build_engine,
    build_session_factory,
    get_session_factory,
)
from finance_ledger.services.installments import InstallmentService
from finance_ledger.services.subscriptions import SubscriptionService
from finance_ledger.services.transactions import TransactionService

OWNER = "user_ana"
OTHER_OWNER = "user_bruno"
FIXED_NOW = datetime(2024, 3, 10, 12, 30, 0)


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    """Temporary SQLite database with the ledger schema"""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await ensure_collections(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


async def drop_ordered_index(engine: AsyncEngine) -> None:
    """Simulate a deployment without the (owner_id, date) composite index"""
    async with engine.begin() as conn:
        await conn.execute(text(f"DROP INDEX {TRANSACTIONS_ORDERED_INDEX}"))


@pytest.fixture
def transaction_service(session_factory) -> TransactionService:
    return TransactionService(session_factory, clock=fixed_clock, enforce_indexes=True)


@pytest.fixture
def subscription_service(session_factory) -> SubscriptionService:
    return SubscriptionService(session_factory, clock=fixed_clock)


@pytest.fixture
def installment_service(session_factory) -> InstallmentService:
    return InstallmentService(session_factory, clock=fixed_clock)


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncIterator[httpx.AsyncClient]:
    """API client bound to the test database"""
    app = create_app()
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def make_transaction(
    date: datetime,
    amount: float = 50.0,
    type: TransactionType = TransactionType.EXPENSE,
    category: str = "food",
    description: str = "Groceries",
) -> Transaction:
    return Transaction(
        amount=amount,
        type=type,
        category=category,
        description=description,
        date=date,
    )


@pytest.fixture
def netflix() -> Subscription:
    """Monthly streaming subscription"""
    return Subscription(
        amount=19.90,
        type=TransactionType.EXPENSE,
        category="subscription",
        description="Netflix",
        date=datetime(2024, 3, 1),
        is_recurring=True,
        frequency=Frequency.MONTHLY,
        next_payment_date=datetime(2024, 4, 10),
        auto_renew=True,
    )


@pytest.fixture
def laptop_purchase() -> InstallmentPurchase:
    """1200 over 12 monthly installments starting 2024-01-05"""
    return InstallmentPurchase(
        description="Laptop",
        total_amount=1200.0,
        installment_amount=100.0,
        total_installments=12,
        start_date=datetime(2024, 1, 5),
        next_due_date=datetime(2024, 2, 5),
        category="shopping",
    )
