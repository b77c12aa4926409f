"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the durable storage backend because:
1. Non-technical users can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (the ledger store compensates failed multi-row writes)
- Limited query capabilities (the ledger store filters in memory anyway)

Each entity kind gets its own worksheet with a header row. Column 1
holds the record key, so upserts find the row by scanning that column.
"""

import json
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from expense_tracker.config import GoogleSheetsSettings, get_settings
from expense_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from expense_tracker.models.ledger import (
    Account,
    Book,
    Budget,
    Category,
    Transaction,
    TransactionType,
)
from expense_tracker.models.money import Money
from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
    StorageConnectionError,
    StorageError,
)

logger = structlog.get_logger(__name__)


ACCOUNT_COLUMNS = ["id", "name", "balance_minor"]
CATEGORY_COLUMNS = ["id", "name", "type"]
BOOK_COLUMNS = ["id", "name"]
TRANSACTION_COLUMNS = [
    "id",
    "book_id",
    "category_id",
    "account_id",
    "amount_minor",
    "type",
    "remark",
    "record_time_ms",
]
BUDGET_COLUMNS = ["key", "year", "month", "amount_minor"]
SEQUENCE_COLUMNS = ["kind", "last_id"]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


# =============================================================================
# ROW CONVERSION
# =============================================================================

def account_to_row(account: Account) -> list:
    return [str(account.id), account.name, str(account.balance.minor_units)]


def row_to_account(row: list) -> Account:
    return Account(
        id=int(_safe_get(row, 0)),
        name=_safe_get(row, 1),
        balance=Money(int(_safe_get(row, 2, "0"))),
    )


def category_to_row(category: Category) -> list:
    return [str(category.id), category.name, str(int(category.type))]


def row_to_category(row: list) -> Category:
    return Category(
        id=int(_safe_get(row, 0)),
        name=_safe_get(row, 1),
        type=TransactionType(int(_safe_get(row, 2))),
    )


def book_to_row(book: Book) -> list:
    return [str(book.id), book.name]


def row_to_book(row: list) -> Book:
    return Book(id=int(_safe_get(row, 0)), name=_safe_get(row, 1))


def transaction_to_row(transaction: Transaction) -> list:
    return [
        str(transaction.id),
        str(transaction.book_id),
        str(transaction.category_id),
        str(transaction.account_id),
        str(transaction.amount.minor_units),
        str(int(transaction.type)),
        transaction.remark or "",
        str(transaction.record_time),
    ]


def row_to_transaction(row: list) -> Transaction:
    return Transaction(
        id=int(_safe_get(row, 0)),
        book_id=int(_safe_get(row, 1)),
        category_id=int(_safe_get(row, 2)),
        account_id=int(_safe_get(row, 3)),
        amount=Money(int(_safe_get(row, 4))),
        type=TransactionType(int(_safe_get(row, 5))),
        remark=_safe_get(row, 6) or None,
        record_time=int(_safe_get(row, 7)),
    )


def budget_to_row(budget: Budget) -> list:
    return [
        budget.key,
        str(budget.year),
        str(budget.month),
        str(budget.amount.minor_units),
    ]


def row_to_budget(row: list) -> Budget:
    return Budget(
        year=int(_safe_get(row, 1)),
        month=int(_safe_get(row, 2)),
        amount=Money(int(_safe_get(row, 3, "0"))),
    )


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    One worksheet per entity kind, one record per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self, kind: str) -> gspread.Worksheet:
        settings = self._client.settings
        layout = {
            "accounts": (settings.accounts_sheet_name, ACCOUNT_COLUMNS),
            "categories": (settings.categories_sheet_name, CATEGORY_COLUMNS),
            "books": (settings.books_sheet_name, BOOK_COLUMNS),
            "transactions": (settings.transactions_sheet_name, TRANSACTION_COLUMNS),
            "budgets": (settings.budgets_sheet_name, BUDGET_COLUMNS),
            "sequences": (settings.sequences_sheet_name, SEQUENCE_COLUMNS),
        }
        title, columns = layout[kind]
        return self._client.get_worksheet(title, columns)

    def _load(self, kind: str, parse: Callable[[list], object]) -> list:
        try:
            all_rows = self._sheet(kind).get_all_values()[1:]  # Skip header
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load {kind}: {e}")

        records = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                records.append(parse(row))
            except Exception as e:
                logger.warning("sheets_row_skipped", kind=kind, row=row, error=str(e))
        return records

    def _upsert(self, kind: str, key: str, row: list) -> None:
        try:
            sheet = self._sheet(kind)
            all_rows = sheet.get_all_values()

            for idx, existing in enumerate(all_rows[1:], start=2):  # Row 1 is header
                if existing and existing[0] == key:
                    for col_idx, value in enumerate(row, start=1):
                        sheet.update_cell(idx, col_idx, value)
                    return

            sheet.append_row(row, value_input_option="RAW")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save {kind} {key}: {e}")

    async def load_accounts(self) -> list[Account]:
        return sorted(self._load("accounts", row_to_account), key=lambda a: a.id)

    async def load_categories(self) -> list[Category]:
        return sorted(self._load("categories", row_to_category), key=lambda c: c.id)

    async def load_books(self) -> list[Book]:
        return sorted(self._load("books", row_to_book), key=lambda b: b.id)

    async def load_transactions(self) -> list[Transaction]:
        return sorted(self._load("transactions", row_to_transaction), key=lambda t: t.id)

    async def load_budgets(self) -> list[Budget]:
        return sorted(self._load("budgets", row_to_budget), key=lambda b: b.key)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_account(self, account: Account) -> None:
        self._upsert("accounts", str(account.id), account_to_row(account))

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_category(self, category: Category) -> None:
        self._upsert("categories", str(category.id), category_to_row(category))

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_book(self, book: Book) -> None:
        self._upsert("books", str(book.id), book_to_row(book))

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_transaction(self, transaction: Transaction) -> None:
        self._upsert("transactions", str(transaction.id), transaction_to_row(transaction))

    async def delete_transaction(self, transaction_id: int) -> bool:
        try:
            sheet = self._sheet("transactions")
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(transaction_id):
                    sheet.delete_rows(idx)
                    return True

            return False
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete transaction {transaction_id}: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_budget(self, budget: Budget) -> None:
        self._upsert("budgets", budget.key, budget_to_row(budget))

    async def load_sequences(self) -> dict[str, int]:
        rows = self._load("sequences", lambda row: (row[0], int(_safe_get(row, 1, "0"))))
        return dict(rows)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_sequence(self, kind: str, last_id: int) -> None:
        self._upsert("sequences", kind, [kind, str(last_id)])


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=_safe_get(row, 5) or None,
            correlation_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_message=_safe_get(row, 9) or None,
            is_user_action=_safe_get(row, 10).lower() == "true",
        )

    def _all_events(self) -> list[AuditEvent]:
        events = []
        for row in self._sheet().get_all_values()[1:]:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except Exception as e:
                    logger.warning("audit_row_skipped", row=row, error=str(e))
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._sheet().append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning("audit_sheet_write_failed", error=str(e))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [
                e for e in self._all_events()
                if e.correlation_id == correlation_id
            ]
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._all_events()
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
