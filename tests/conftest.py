"""
Shared fixtures.

Every test runs in a fixed UTC+8 timezone with a fixed clock
(2024-05-15 10:30 local), against in-memory storage.
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from expense_tracker.aggregation import AggregationEngine
from expense_tracker.audit import AuditLogger
from expense_tracker.config import AdvisorSettings
from expense_tracker.ledger.store import LedgerStore
from expense_tracker.models.ledger import TransactionType
from expense_tracker.models.money import Money
from expense_tracker.services.storage import InMemoryAuditStorage, InMemoryLedgerStorage

TZ = timezone(timedelta(hours=8))
NOW = datetime(2024, 5, 15, 10, 30, tzinfo=TZ)


@pytest.fixture
def tz():
    return TZ


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def storage():
    return InMemoryLedgerStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest_asyncio.fixture
async def empty_store(storage, audit_logger):
    store = LedgerStore(storage, TZ, audit_logger, clock=lambda: NOW)
    await store.open()
    return store


@pytest_asyncio.fixture
async def store(empty_store):
    """Book 1; accounts 现金 (0.00) and 银行卡 (1,000.00); categories 餐饮 and 工资."""
    await empty_store.add_book("日常账本")
    await empty_store.add_account("现金")
    await empty_store.add_account("银行卡", Money(100000))
    await empty_store.add_category("餐饮", TransactionType.EXPENSE)
    await empty_store.add_category("工资", TransactionType.INCOME)
    return empty_store


@pytest.fixture
def engine(store):
    return AggregationEngine(store)


@pytest.fixture
def advisor_settings():
    return AdvisorSettings(
        provider="http",
        api_url="https://advisor.test/v1/chat/completions",
        api_key="test-key",
        model_name="test-model",
        timeout_seconds=5,
    )
