"""
Ledger Store

The single owner of accounts, categories, books, transactions and budgets.

DESIGN DECISION: Canonical state lives in memory and is written through to
a storage backend. A mutation runs in three steps:
1. Validate against the current state (nothing is touched on failure)
2. Write to the backend (earlier writes are compensated if a later one fails)
3. Commit in memory, bump the version and notify listeners

Step 3 contains no await, so a reader never sees a transaction without
its balance effect. Mutations are serialised by one asyncio.Lock; reads
are synchronous.
"""

import asyncio
from datetime import date, datetime, tzinfo
from typing import Callable, Iterable, Optional

import structlog

from expense_tracker.audit import AuditLogger
from expense_tracker.ledger import seed
from expense_tracker.ledger.errors import NotFoundError, ValidationError
from expense_tracker.ledger.periods import (
    Instant,
    as_epoch_ms,
    day_bounds,
    month_bounds,
    to_epoch_ms,
)
from expense_tracker.models.ledger import (
    Account,
    Book,
    Budget,
    Category,
    MonthlyStats,
    Transaction,
    TransactionType,
    budget_key,
)
from expense_tracker.models.money import Money, sum_money
from expense_tracker.services.storage import LedgerStorageInterface, StorageError
from expense_tracker.validation import (
    TransactionValidator,
    validate_budget,
    validate_name,
)

logger = structlog.get_logger(__name__)

Listener = Callable[[], None]


def _next_id(ids: Iterable[int]) -> int:
    return max(ids, default=0) + 1


def _newest_first(transaction: Transaction) -> tuple[int, int]:
    return (-transaction.record_time, -transaction.id)


class LedgerStore:
    """
    Owns all ledger entities and applies every mutation.

    Usage:
        store = LedgerStore(InMemoryLedgerStorage(), tz)
        await store.open()
        tx_id = await store.add_transaction(1, 3, 1, Money(1250), TransactionType.EXPENSE)
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        tz: tzinfo,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._storage = storage
        self._tz = tz
        self._audit_logger = audit_logger
        self._clock = clock or (lambda: datetime.now(tz))

        self._accounts: dict[int, Account] = {}
        self._categories: dict[int, Category] = {}
        self._books: dict[int, Book] = {}
        self._transactions: dict[int, Transaction] = {}
        self._budgets: dict[str, Budget] = {}
        self._last_transaction_id = 0

        self._lock = asyncio.Lock()
        self._version = 0
        self._listeners: list[Listener] = []

    @property
    def tz(self) -> tzinfo:
        return self._tz

    @property
    def version(self) -> int:
        """Incremented on every committed mutation."""
        return self._version

    def now(self) -> datetime:
        return self._clock()

    # =========================================================================
    # LIFECYCLE & LISTENERS
    # =========================================================================

    async def open(self) -> None:
        """Load every collection from the backend."""
        async with self._lock:
            accounts = await self._storage.load_accounts()
            categories = await self._storage.load_categories()
            books = await self._storage.load_books()
            transactions = await self._storage.load_transactions()
            budgets = await self._storage.load_budgets()
            sequences = await self._storage.load_sequences()

            self._accounts = {a.id: a for a in accounts}
            self._categories = {c.id: c for c in categories}
            self._books = {b.id: b for b in books}
            self._transactions = {t.id: t for t in transactions}
            self._budgets = {b.key: b for b in budgets}
            self._last_transaction_id = max(
                sequences.get("transactions", 0),
                max(self._transactions, default=0),
            )
            self._commit()

        logger.info(
            "ledger_opened",
            accounts=len(accounts),
            categories=len(categories),
            books=len(books),
            transactions=len(transactions),
            budgets=len(budgets),
        )

    def add_listener(self, listener: Listener) -> None:
        """Register a callback run synchronously after every mutation."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _commit(self) -> None:
        self._version += 1
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("ledger_listener_failed", version=self._version)

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def add_transaction(
        self,
        book_id: int,
        category_id: int,
        account_id: int,
        amount: Money,
        type: TransactionType,
        remark: Optional[str] = None,
        record_time: Optional[Instant] = None,
    ) -> int:
        """
        Record a transaction and apply it to the account balance.

        Returns:
            The new transaction id

        Raises:
            ValidationError: If the transaction was rejected (nothing changed)
            StorageError: If the backend write failed (nothing changed)
        """
        async with self._lock:
            validator = TransactionValidator(self._books, self._categories, self._accounts)
            issues = validator.validate_transaction(
                book_id, category_id, account_id, amount, type, remark
            )
            if issues:
                if self._audit_logger:
                    await self._audit_logger.log_transaction_rejected(
                        [issue.model_dump() for issue in issues]
                    )
                raise ValidationError(issues)

            if record_time is None:
                record_time = self._clock()
            transaction = Transaction(
                id=self._last_transaction_id + 1,
                book_id=book_id,
                category_id=category_id,
                account_id=account_id,
                amount=amount,
                type=TransactionType(type),
                remark=(remark.strip() or None) if remark else None,
                record_time=as_epoch_ms(record_time, self._tz),
            )
            account = self._accounts[account_id]
            updated_account = self._apply(account, transaction.signed_amount)

            # Ids are never reissued, even after the newest one is deleted
            await self._storage.save_sequence("transactions", transaction.id)
            await self._storage.save_transaction(transaction)
            try:
                await self._storage.save_account(updated_account)
            except Exception as e:
                await self._compensate(
                    "add_transaction",
                    self._storage.delete_transaction(transaction.id),
                )
                raise StorageError(f"Failed to update account {account_id}: {e}") from e

            self._transactions[transaction.id] = transaction
            self._accounts[account_id] = updated_account
            self._last_transaction_id = transaction.id
            self._commit()

        logger.info(
            "transaction_added",
            transaction_id=transaction.id,
            account_id=account_id,
            amount_minor=amount.minor_units,
            type=transaction.type.label,
        )
        if self._audit_logger:
            await self._audit_logger.log_transaction_added(
                transaction_id=transaction.id,
                account_id=account_id,
                amount_minor=amount.minor_units,
                type_label=transaction.type.label,
            )
        return transaction.id

    async def delete_transaction(self, transaction_id: int) -> None:
        """
        Remove a transaction and reverse its balance effect.

        If the owning account no longer exists the transaction is still
        removed.

        Raises:
            NotFoundError: If no transaction has this id (nothing changed)
            StorageError: If the backend write failed (nothing changed)
        """
        async with self._lock:
            transaction = self._transactions.get(transaction_id)
            if transaction is None:
                raise NotFoundError("transaction", transaction_id)

            account = self._accounts.get(transaction.account_id)
            updated_account = None
            if account is not None:
                updated_account = self._apply(account, -transaction.signed_amount)

            await self._storage.delete_transaction(transaction_id)
            if updated_account is not None:
                try:
                    await self._storage.save_account(updated_account)
                except Exception as e:
                    await self._compensate(
                        "delete_transaction",
                        self._storage.save_transaction(transaction),
                    )
                    raise StorageError(
                        f"Failed to update account {transaction.account_id}: {e}"
                    ) from e

            del self._transactions[transaction_id]
            if updated_account is not None:
                self._accounts[updated_account.id] = updated_account
            self._commit()

        logger.info(
            "transaction_deleted",
            transaction_id=transaction_id,
            account_id=transaction.account_id,
            account_missing=account is None,
        )
        if self._audit_logger:
            await self._audit_logger.log_transaction_deleted(
                transaction_id=transaction_id,
                account_id=transaction.account_id,
                amount_minor=transaction.amount.minor_units,
                type_label=transaction.type.label,
            )

    @staticmethod
    def _apply(account: Account, delta: Money) -> Account:
        try:
            balance = account.balance + delta
        except ValueError:
            raise ValidationError.single(
                "amount", "overflow", f"Balance of account {account.id} would overflow"
            )
        return account.model_copy(update={"balance": balance})

    async def _compensate(self, operation: str, undo) -> None:
        try:
            await undo
        except Exception as e:
            logger.error("ledger_compensation_failed", operation=operation, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_storage_error(operation, str(e))

    # =========================================================================
    # TRANSACTION QUERIES
    # =========================================================================

    def get_transactions_by_period(
        self,
        start: Instant,
        end: Instant,
    ) -> tuple[Transaction, ...]:
        """
        Transactions with start <= record_time <= end, newest first.

        Returns an empty tuple when nothing matches (including start > end).
        """
        start_ms = as_epoch_ms(start, self._tz)
        end_ms = as_epoch_ms(end, self._tz)
        if start_ms > end_ms:
            return ()
        matching = [
            t for t in self._transactions.values()
            if start_ms <= t.record_time <= end_ms
        ]
        return tuple(sorted(matching, key=_newest_first))

    def get_transactions_for_day(self, day: date) -> tuple[Transaction, ...]:
        return self.get_transactions_by_period(*day_bounds(day, self._tz))

    def get_all_transactions(self) -> tuple[Transaction, ...]:
        return tuple(sorted(self._transactions.values(), key=_newest_first))

    def get_transaction_by_id(self, transaction_id: int) -> Optional[Transaction]:
        return self._transactions.get(transaction_id)

    def get_monthly_stats(self, year: int, month: int) -> MonthlyStats:
        """Expense and income totals for a calendar month."""
        transactions = self.get_transactions_by_period(*month_bounds(year, month, self._tz))
        return MonthlyStats(
            year=year,
            month=month,
            expense=sum_money(t.amount for t in transactions if t.type is TransactionType.EXPENSE),
            income=sum_money(t.amount for t in transactions if t.type is TransactionType.INCOME),
        )

    # =========================================================================
    # REFERENCE DATA
    # =========================================================================

    def get_all_accounts(self) -> tuple[Account, ...]:
        return tuple(self._accounts[k] for k in sorted(self._accounts))

    def get_all_categories(self) -> tuple[Category, ...]:
        return tuple(self._categories[k] for k in sorted(self._categories))

    def get_all_books(self) -> tuple[Book, ...]:
        return tuple(self._books[k] for k in sorted(self._books))

    def get_account_by_id(self, account_id: int) -> Optional[Account]:
        return self._accounts.get(account_id)

    def get_category_by_id(self, category_id: int) -> Optional[Category]:
        return self._categories.get(category_id)

    async def add_account(self, name: str, balance: Optional[Money] = None) -> int:
        name = validate_name("name", name)
        async with self._lock:
            account = Account(
                id=_next_id(self._accounts),
                name=name,
                balance=balance if balance is not None else Money.zero(),
            )
            await self._storage.save_account(account)
            self._accounts[account.id] = account
            self._commit()
        return account.id

    async def add_category(self, name: str, type: TransactionType) -> int:
        name = validate_name("name", name)
        if type not in (TransactionType.EXPENSE, TransactionType.INCOME):
            raise ValidationError.single(
                "type", "invalid_value", f"Unknown transaction type: {type!r}"
            )
        async with self._lock:
            category = Category(id=_next_id(self._categories), name=name, type=TransactionType(type))
            await self._storage.save_category(category)
            self._categories[category.id] = category
            self._commit()
        return category.id

    async def add_book(self, name: str) -> int:
        name = validate_name("name", name)
        async with self._lock:
            book = Book(id=_next_id(self._books), name=name)
            await self._storage.save_book(book)
            self._books[book.id] = book
            self._commit()
        return book.id

    async def seed_defaults(self) -> bool:
        """
        Create default books, accounts and categories where none exist.

        Returns True if anything was created.
        """
        created_books = created_accounts = created_categories = 0
        if not self._books:
            for name in seed.DEFAULT_BOOKS:
                await self.add_book(name)
                created_books += 1
        if not self._accounts:
            for name in seed.DEFAULT_ACCOUNTS:
                await self.add_account(name)
                created_accounts += 1
        if not self._categories:
            for name, category_type in seed.DEFAULT_CATEGORIES:
                await self.add_category(name, category_type)
                created_categories += 1

        created = bool(created_books or created_accounts or created_categories)
        if created:
            logger.info(
                "ledger_seeded",
                books=created_books,
                accounts=created_accounts,
                categories=created_categories,
            )
            if self._audit_logger:
                await self._audit_logger.log_ledger_seeded(
                    created_books, created_accounts, created_categories
                )
        return created

    # =========================================================================
    # BUDGETS
    # =========================================================================

    async def upsert_budget(self, year: int, month: int, amount: Money) -> Budget:
        """
        Set the budget for (year, month), replacing any existing one.

        Raises:
            ValidationError: Negative amount or invalid month
        """
        validate_budget(year, month, amount)
        budget = Budget(year=year, month=month, amount=amount)
        async with self._lock:
            await self._storage.save_budget(budget)
            self._budgets[budget.key] = budget
            self._commit()

        logger.info("budget_set", key=budget.key, amount_minor=amount.minor_units)
        if self._audit_logger:
            await self._audit_logger.log_budget_set(year, month, amount.minor_units)
        return budget

    def get_budget(self, year: int, month: int) -> Optional[Budget]:
        return self._budgets.get(budget_key(year, month))

    def get_budgets(self) -> tuple[Budget, ...]:
        return tuple(self._budgets[k] for k in sorted(self._budgets))

    def current_month(self) -> tuple[int, int]:
        now = self._clock()
        if now.tzinfo is None:
            return now.year, now.month
        local = now.astimezone(self._tz)
        return local.year, local.month

    def today(self) -> date:
        now = self._clock()
        if now.tzinfo is None:
            return now.date()
        return now.astimezone(self._tz).date()

    def epoch_ms(self, moment: datetime) -> int:
        return to_epoch_ms(moment, self._tz)
