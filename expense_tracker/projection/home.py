"""
Home Projection

Publishes everything the home screen shows: reference data, the recent
transaction window, today's and this month's totals, and budget usage.

DESIGN DECISION: The projection listens to the ledger store. The store
calls the listener synchronously before a mutation returns, so every
dependent slot is already republished when add/delete/set_budget return.

Ledger failures never reach the caller as exceptions. They are published
to the `error` slot and stay there until clear_error() is called.
"""

from decimal import Decimal
from typing import Optional, Union

import structlog

from expense_tracker.aggregation import AggregationEngine
from expense_tracker.ledger.errors import LedgerError
from expense_tracker.ledger.periods import Instant
from expense_tracker.ledger.store import LedgerStore
from expense_tracker.models.ledger import TransactionType
from expense_tracker.models.money import Money
from expense_tracker.projection.observable import Observable, ObservableStore
from expense_tracker.services.storage import StorageError

logger = structlog.get_logger(__name__)

BudgetInput = Union[Money, str, int, Decimal]


class HomeProjection:
    """Reactive state for the home screen."""

    def __init__(
        self,
        store: LedgerStore,
        engine: AggregationEngine,
        recent_limit: Optional[int] = None,
        locale: str = "zh_CN",
    ):
        self._store = store
        self._engine = engine
        self._recent_limit = recent_limit
        self.locale = locale
        self.state = ObservableStore(
            accounts=(),
            categories=(),
            books=(),
            transactions=(),
            today_stats=None,
            monthly_stats=None,
            monthly_budget=Money.zero(),
            remaining_budget=Money.zero(),
            budget_usage=None,
            is_loading=False,
            error=None,
        )
        self._store.add_listener(self._on_ledger_changed)

    # Slot accessors

    @property
    def accounts(self) -> Observable:
        return self.state["accounts"]

    @property
    def categories(self) -> Observable:
        return self.state["categories"]

    @property
    def books(self) -> Observable:
        return self.state["books"]

    @property
    def transactions(self) -> Observable:
        return self.state["transactions"]

    @property
    def today_stats(self) -> Observable:
        return self.state["today_stats"]

    @property
    def monthly_stats(self) -> Observable:
        return self.state["monthly_stats"]

    @property
    def monthly_budget(self) -> Observable:
        return self.state["monthly_budget"]

    @property
    def remaining_budget(self) -> Observable:
        return self.state["remaining_budget"]

    @property
    def budget_usage(self) -> Observable:
        return self.state["budget_usage"]

    @property
    def is_loading(self) -> Observable:
        return self.state["is_loading"]

    @property
    def error(self) -> Observable:
        return self.state["error"]

    def format_money(self, amount: Money) -> str:
        """Render an amount in the configured display locale."""
        return amount.to_display(self.locale)

    # Loading

    def _snapshot(self) -> dict:
        transactions = self._store.get_all_transactions()
        if self._recent_limit is not None:
            transactions = transactions[:self._recent_limit]
        usage = self._engine.compute_current_budget_usage()
        return {
            "accounts": self._store.get_all_accounts(),
            "categories": self._store.get_all_categories(),
            "books": self._store.get_all_books(),
            "transactions": transactions,
            "today_stats": self._engine.compute_today_stats(),
            "monthly_stats": self._engine.compute_current_month_stats(),
            "monthly_budget": usage.budget,
            "remaining_budget": usage.remaining,
            "budget_usage": usage,
        }

    async def load(self) -> None:
        """Publish a full snapshot, flagging is_loading while it is built."""
        self.state.publish(is_loading=True)
        self.state.publish(**self._snapshot(), is_loading=False)

    def _on_ledger_changed(self) -> None:
        self.state.publish(**self._snapshot())

    def _fail(self, operation: str, error: Exception) -> None:
        message = getattr(error, "user_message", str(error))
        logger.warning("home_operation_failed", operation=operation, error=str(error))
        self.state.publish(error=message)

    # Operations

    async def add_transaction(
        self,
        book_id: int,
        category_id: int,
        account_id: int,
        amount: Money,
        type: TransactionType,
        remark: Optional[str] = None,
        record_time: Optional[Instant] = None,
    ) -> Optional[int]:
        """Record a transaction; returns its id, or None on failure."""
        try:
            return await self._store.add_transaction(
                book_id, category_id, account_id, amount, type, remark, record_time
            )
        except (LedgerError, StorageError) as e:
            self._fail("add_transaction", e)
            return None

    async def delete_transaction(self, transaction_id: int) -> bool:
        try:
            await self._store.delete_transaction(transaction_id)
            return True
        except (LedgerError, StorageError) as e:
            self._fail("delete_transaction", e)
            return False

    async def set_budget(self, amount: BudgetInput) -> bool:
        """
        Set this month's budget.

        Accepts Money or a major-unit value such as "3000" or "12.34".
        """
        try:
            if not isinstance(amount, Money):
                amount = Money.from_major(amount)
        except ValueError as e:
            self._fail("set_budget", e)
            return False

        year, month = self._store.current_month()
        try:
            await self._store.upsert_budget(year, month, amount)
            return True
        except (LedgerError, StorageError) as e:
            self._fail("set_budget", e)
            return False

    def clear_error(self) -> None:
        self.state.publish(error=None)

    def close(self) -> None:
        """Stop following the ledger store."""
        self._store.remove_listener(self._on_ledger_changed)
