"""Tests for application wiring and lifecycle."""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from expense_tracker.advisory import CompletionTransport, HttpCompletionTransport
from expense_tracker.config import Settings
from expense_tracker.models.advisory import CompletionResult
from expense_tracker.models.ledger import TransactionType
from expense_tracker.models.money import Money
from expense_tracker.orchestrator import create_app_components
from expense_tracker.services.storage import InMemoryAuditStorage, InMemoryLedgerStorage

SHANGHAI = ZoneInfo("Asia/Shanghai")


class RecordingTransport(CompletionTransport):
    def __init__(self):
        self.closed = False

    async def complete(self, prompt):
        return CompletionResult.success("本月收支平衡\n\n报告")

    async def aclose(self):
        self.closed = True


@pytest.fixture
def settings(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LEDGER_TIMEZONE", "Asia/Shanghai")
    monkeypatch.setenv("LEDGER_STORAGE_BACKEND", "memory")
    monkeypatch.setenv("LEDGER_SEED_DEFAULTS", "true")
    monkeypatch.setenv("ADVISOR_PROVIDER", "http")
    return Settings()


class TestExpenseTrackerApp:
    """Tests for create_app_components and the app lifecycle."""

    @pytest.mark.asyncio
    async def test_start_seeds_and_loads(self, settings):
        """Test first run: defaults are created and the home view is loaded."""
        transport = RecordingTransport()
        app = create_app_components(
            settings,
            storage=InMemoryLedgerStorage(),
            transport=transport,
            clock=lambda: datetime(2024, 5, 15, 12, 0, tzinfo=SHANGHAI),
        )
        await app.start()

        assert len(app.home.books.value) == 1
        assert len(app.home.accounts.value) == 4
        assert app.home.is_loading.value is False
        assert app.home.today_stats.value.date == "2024-05-15"

        await app.shutdown()
        assert transport.closed

    @pytest.mark.asyncio
    async def test_end_to_end(self, settings):
        """Test a transaction, a budget, a day view and an analysis."""
        audit_storage = InMemoryAuditStorage()
        app = create_app_components(
            settings,
            storage=InMemoryLedgerStorage(),
            audit_storage=audit_storage,
            transport=RecordingTransport(),
            clock=lambda: datetime(2024, 5, 15, 12, 0, tzinfo=SHANGHAI),
        )
        await app.start()

        category = next(c for c in app.home.categories.value if c.type is TransactionType.EXPENSE)
        account = app.home.accounts.value[0]
        await app.home.add_transaction(1, category.id, account.id, Money(4500), TransactionType.EXPENSE)
        await app.home.set_budget("100")
        day = app.open_day(datetime(2024, 5, 15).date())

        assert app.home.budget_usage.value.usage_ratio == 0.45
        assert day.total_expense.value == Money(4500)

        result = await app.advisory.refresh()
        assert result.advisory.insight == "本月收支平衡"
        assert audit_storage.events

        await app.shutdown()
        await app.store.add_transaction(1, category.id, account.id, Money(1), TransactionType.EXPENSE)
        assert day.total_expense.value == Money(4500)

    def test_default_transport_follows_provider(self, settings):
        """Test transport selection from ADVISOR_PROVIDER."""
        app = create_app_components(settings, storage=InMemoryLedgerStorage())
        assert isinstance(app.advisory_client.transport, HttpCompletionTransport)

    @pytest.mark.asyncio
    async def test_display_locale_reaches_projections(self, settings, monkeypatch):
        """Test that LEDGER_LOCALE drives money formatting in the views."""
        monkeypatch.setenv("LEDGER_LOCALE", "en_US")
        app = create_app_components(
            settings,
            storage=InMemoryLedgerStorage(),
            transport=RecordingTransport(),
            clock=lambda: datetime(2024, 5, 15, 12, 0, tzinfo=SHANGHAI),
        )
        await app.start()
        day = app.open_day(datetime(2024, 5, 15).date())

        assert app.home.format_money(Money(123456)) == "$1,234.56"
        assert day.format_money(Money(-1234)) == "-$12.34"

        await app.shutdown()
