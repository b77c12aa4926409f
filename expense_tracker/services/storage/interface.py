"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep ledger logic decoupled from storage implementation

The ledger store keeps the canonical state in memory and writes through
to one of these backends. Records are keyed by entity id (budgets by
their "YYYY-MM" key) and every save is an upsert.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.ledger import (
    Account,
    Book,
    Budget,
    Category,
    Transaction,
)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger persistence.

    Any storage implementation (Google Sheets, SQLite, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def load_accounts(self) -> list[Account]:
        """Load every account, ordered by id."""
        pass

    @abstractmethod
    async def load_categories(self) -> list[Category]:
        """Load every category, ordered by id."""
        pass

    @abstractmethod
    async def load_books(self) -> list[Book]:
        """Load every book, ordered by id."""
        pass

    @abstractmethod
    async def load_transactions(self) -> list[Transaction]:
        """Load every transaction, ordered by id."""
        pass

    @abstractmethod
    async def load_budgets(self) -> list[Budget]:
        """Load every budget row, ordered by key."""
        pass

    @abstractmethod
    async def save_account(self, account: Account) -> None:
        """
        Insert or replace an account.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def save_category(self, category: Category) -> None:
        """Insert or replace a category."""
        pass

    @abstractmethod
    async def save_book(self, book: Book) -> None:
        """Insert or replace a book."""
        pass

    @abstractmethod
    async def save_transaction(self, transaction: Transaction) -> None:
        """Insert or replace a transaction."""
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: int) -> bool:
        """
        Delete a transaction by ID.

        Returns:
            True if a record was deleted, False if none existed
        """
        pass

    @abstractmethod
    async def save_budget(self, budget: Budget) -> None:
        """Insert or replace the budget row for (year, month)."""
        pass

    @abstractmethod
    async def load_sequences(self) -> dict[str, int]:
        """Highest id ever issued, per entity kind."""
        pass

    @abstractmethod
    async def save_sequence(self, kind: str, last_id: int) -> None:
        """
        Record the highest id issued for an entity kind.

        Ids are never reissued, even after the newest record is deleted.
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a correlation ID in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""

    @property
    def user_message(self) -> str:
        return f"Could not save your data, please try again. ({self})"


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
