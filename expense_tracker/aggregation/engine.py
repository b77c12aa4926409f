"""
Aggregation Engine

Derives day and month totals and budget usage from the ledger store.

DESIGN DECISION: Results are memoised by store version. Any committed
mutation bumps the version and the whole cache is dropped, so a read
right after a write always reflects it.

All sums stay in integer minor units. The only float produced here is
the budget usage ratio.
"""

from datetime import date, datetime
from typing import Callable, Hashable, Optional, TypeVar

from expense_tracker.ledger.periods import day_bounds
from expense_tracker.ledger.store import LedgerStore
from expense_tracker.models.ledger import (
    BudgetUsage,
    MonthlyStats,
    TodayStats,
    Transaction,
    TransactionType,
)
from expense_tracker.models.money import Money, sum_money

T = TypeVar("T")


def _totals(transactions: tuple[Transaction, ...]) -> tuple[Money, Money]:
    expense = sum_money(t.amount for t in transactions if t.type is TransactionType.EXPENSE)
    income = sum_money(t.amount for t in transactions if t.type is TransactionType.INCOME)
    return expense, income


def compute_budget_usage(monthly_budget: Money, monthly_expense: Money) -> BudgetUsage:
    """
    Remaining budget and the spent share of it.

    `remaining` may be negative and is reported as-is. The ratio is
    clamped to [0, 1]; with no budget (<= 0) it is None.
    """
    remaining = monthly_budget - monthly_expense
    usage_ratio = None
    if monthly_budget.is_positive:
        ratio = monthly_expense.minor_units / monthly_budget.minor_units
        usage_ratio = min(max(ratio, 0.0), 1.0)
    return BudgetUsage(
        budget=monthly_budget,
        expense=monthly_expense,
        remaining=remaining,
        usage_ratio=usage_ratio,
    )


class AggregationEngine:
    """
    Read-only statistics over a LedgerStore.

    `clock` defaults to the store's clock; "today" and "this month" are
    evaluated in the store's timezone.
    """

    def __init__(
        self,
        store: LedgerStore,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._store = store
        self._clock = clock or store.now
        self._cache: dict[Hashable, object] = {}
        self._cache_version = -1

    def _memo(self, key: Hashable, compute: Callable[[], T]) -> T:
        if self._cache_version != self._store.version:
            self._cache.clear()
            self._cache_version = self._store.version
        if key not in self._cache:
            self._cache[key] = compute()
        return self._cache[key]

    def _today(self) -> date:
        now = self._clock()
        if now.tzinfo is not None:
            now = now.astimezone(self._store.tz)
        return now.date()

    def compute_day_stats(self, day: date) -> TodayStats:
        """Expense and income for one local day."""
        def compute() -> TodayStats:
            transactions = self._store.get_transactions_by_period(
                *day_bounds(day, self._store.tz)
            )
            expense, income = _totals(transactions)
            return TodayStats(date=day.isoformat(), expense=expense, income=income)

        return self._memo(("day", day), compute)

    def compute_today_stats(self) -> TodayStats:
        return self.compute_day_stats(self._today())

    def compute_monthly_stats(self, year: int, month: int) -> MonthlyStats:
        return self._memo(
            ("month", year, month),
            lambda: self._store.get_monthly_stats(year, month),
        )

    def compute_current_month_stats(self) -> MonthlyStats:
        today = self._today()
        return self.compute_monthly_stats(today.year, today.month)

    def compute_monthly_budget_usage(
        self,
        monthly_budget: Money,
        monthly_expense: Money,
    ) -> BudgetUsage:
        return compute_budget_usage(monthly_budget, monthly_expense)

    def compute_current_budget_usage(self) -> BudgetUsage:
        """Budget usage for the current month; no budget row means no budget."""
        today = self._today()

        def compute() -> BudgetUsage:
            budget = self._store.get_budget(today.year, today.month)
            stats = self.compute_monthly_stats(today.year, today.month)
            amount = budget.amount if budget is not None else Money.zero()
            return compute_budget_usage(amount, stats.expense)

        return self._memo(("budget_usage", today.year, today.month), compute)
