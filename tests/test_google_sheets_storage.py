"""Tests for the Google Sheets backends against fake worksheets."""

from uuid import uuid4

import pytest

from expense_tracker.config import GoogleSheetsSettings
from expense_tracker.ledger.store import LedgerStore
from expense_tracker.models.audit import AuditEventBuilder
from expense_tracker.models.ledger import TransactionType
from expense_tracker.models.money import Money
from expense_tracker.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsLedgerStorage,
)


class FakeWorksheet:
    """In-memory stand-in for gspread.Worksheet (1-based rows and columns)."""

    def __init__(self, columns):
        self.rows = [list(columns)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def update_cell(self, row, col, value):
        cells = self.rows[row - 1]
        while len(cells) < col:
            cells.append("")
        cells[col - 1] = str(value)

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    def __init__(self, settings):
        self.settings = settings
        self.sheets = {}

    def get_worksheet(self, title, columns, rows=1000):
        if title not in self.sheets:
            self.sheets[title] = FakeWorksheet(columns)
        return self.sheets[title]


@pytest.fixture
def sheets_client(tmp_path):
    credentials = tmp_path / "credentials.json"
    credentials.write_text("{}")
    settings = GoogleSheetsSettings(
        _env_file=None,
        credentials_path=str(credentials),
        spreadsheet_id="sheet-id",
    )
    return FakeSheetsClient(settings)


class TestGoogleSheetsLedgerStorage:
    """Tests for GoogleSheetsLedgerStorage."""

    @pytest.mark.asyncio
    async def test_store_round_trip(self, sheets_client, tz, now):
        """Test that a reopened store sees the same ledger."""
        storage = GoogleSheetsLedgerStorage(sheets_client)
        store = LedgerStore(storage, tz, clock=lambda: now)
        await store.open()
        await store.add_book("日常账本")
        await store.add_account("现金", Money(5000))
        await store.add_category("餐饮", TransactionType.EXPENSE)
        await store.add_transaction(1, 1, 1, Money(1250), TransactionType.EXPENSE, "午饭")
        await store.upsert_budget(2024, 5, Money(300000))
        await store.upsert_budget(2024, 5, Money(200000))

        reopened = LedgerStore(GoogleSheetsLedgerStorage(sheets_client), tz, clock=lambda: now)
        await reopened.open()

        assert reopened.get_account_by_id(1).balance == Money(3750)
        transaction = reopened.get_transaction_by_id(1)
        assert transaction.remark == "午饭"
        assert transaction.type is TransactionType.EXPENSE
        assert reopened.get_budget(2024, 5).amount == Money(200000)
        assert len(sheets_client.sheets["Budgets"].rows) == 2  # header + one row

    @pytest.mark.asyncio
    async def test_account_update_rewrites_row(self, sheets_client, tz, now):
        """Test upsert by key instead of appending duplicates."""
        store = LedgerStore(GoogleSheetsLedgerStorage(sheets_client), tz, clock=lambda: now)
        await store.open()
        await store.add_book("日常账本")
        await store.add_account("现金")
        await store.add_category("餐饮", TransactionType.EXPENSE)
        await store.add_transaction(1, 1, 1, Money(100), TransactionType.EXPENSE)

        rows = sheets_client.sheets["Accounts"].rows
        assert rows[1:] == [["1", "现金", "-100"]]

    @pytest.mark.asyncio
    async def test_delete_removes_row(self, sheets_client, tz, now):
        """Test transaction deletion."""
        store = LedgerStore(GoogleSheetsLedgerStorage(sheets_client), tz, clock=lambda: now)
        await store.open()
        await store.add_book("日常账本")
        await store.add_account("现金")
        await store.add_category("餐饮", TransactionType.EXPENSE)
        tx_id = await store.add_transaction(1, 1, 1, Money(100), TransactionType.EXPENSE)

        await store.delete_transaction(tx_id)

        assert sheets_client.sheets["Transactions"].rows[1:] == []
        assert sheets_client.sheets["Accounts"].rows[1] == ["1", "现金", "0"]
        assert sheets_client.sheets["Sequences"].rows[1:] == [["transactions", "1"]]

        assert await store.add_transaction(1, 1, 1, Money(50), TransactionType.EXPENSE) == 2
        assert sheets_client.sheets["Sequences"].rows[1:] == [["transactions", "2"]]

    @pytest.mark.asyncio
    async def test_bad_rows_are_skipped(self, sheets_client):
        """Test that a malformed row does not break loading."""
        storage = GoogleSheetsLedgerStorage(sheets_client)
        await storage.load_accounts()
        sheet = sheets_client.sheets["Accounts"]
        sheet.append_row(["1", "现金", "100"])
        sheet.append_row(["two", "银行卡", "oops"])
        sheet.append_row(["", "", ""])

        accounts = await storage.load_accounts()
        assert [a.name for a in accounts] == ["现金"]


class TestGoogleSheetsAuditStorage:
    """Tests for GoogleSheetsAuditStorage."""

    @pytest.mark.asyncio
    async def test_append_and_query(self, sheets_client):
        """Test event persistence and correlation lookup."""
        storage = GoogleSheetsAuditStorage(sheets_client)
        correlation_id = uuid4()
        await storage.append_event(AuditEventBuilder.analysis_requested(3, correlation_id))
        await storage.append_event(AuditEventBuilder.budget_set(2024, 5, 100))
        await storage.append_event(AuditEventBuilder.analysis_completed(10, 200, correlation_id))

        events = await storage.get_events_by_correlation_id(correlation_id)
        assert [e.details for e in events] == [
            {"transaction_count": 3},
            {"insight_length": 10, "report_length": 200},
        ]
        recent = await storage.get_recent_events(limit=1)
        assert len(recent) == 1
