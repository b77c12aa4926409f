"""
In-Memory Storage Implementation

Used by the test suite and for ephemeral runs (LEDGER_STORAGE_BACKEND=memory).
Records live in dicts keyed by id, returned in key order like a
key-ordered record store would return them.
"""

from uuid import UUID

from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.ledger import (
    Account,
    Book,
    Budget,
    Category,
    Transaction,
)
from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Dict-backed ledger storage."""

    def __init__(self):
        self.accounts: dict[int, Account] = {}
        self.categories: dict[int, Category] = {}
        self.books: dict[int, Book] = {}
        self.transactions: dict[int, Transaction] = {}
        self.budgets: dict[str, Budget] = {}
        self.sequences: dict[str, int] = {}

    async def load_accounts(self) -> list[Account]:
        return [self.accounts[k] for k in sorted(self.accounts)]

    async def load_categories(self) -> list[Category]:
        return [self.categories[k] for k in sorted(self.categories)]

    async def load_books(self) -> list[Book]:
        return [self.books[k] for k in sorted(self.books)]

    async def load_transactions(self) -> list[Transaction]:
        return [self.transactions[k] for k in sorted(self.transactions)]

    async def load_budgets(self) -> list[Budget]:
        return [self.budgets[k] for k in sorted(self.budgets)]

    async def save_account(self, account: Account) -> None:
        self.accounts[account.id] = account

    async def save_category(self, category: Category) -> None:
        self.categories[category.id] = category

    async def save_book(self, book: Book) -> None:
        self.books[book.id] = book

    async def save_transaction(self, transaction: Transaction) -> None:
        self.transactions[transaction.id] = transaction

    async def delete_transaction(self, transaction_id: int) -> bool:
        return self.transactions.pop(transaction_id, None) is not None

    async def save_budget(self, budget: Budget) -> None:
        self.budgets[budget.key] = budget

    async def load_sequences(self) -> dict[str, int]:
        return dict(self.sequences)

    async def save_sequence(self, kind: str, last_id: int) -> None:
        self.sequences[kind] = last_id


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed, append-only audit storage."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self.events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
