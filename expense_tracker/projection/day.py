"""Single-day view: the transactions of one date and their totals."""

from datetime import date

from expense_tracker.aggregation import AggregationEngine
from expense_tracker.ledger.errors import LedgerError
from expense_tracker.ledger.store import LedgerStore
from expense_tracker.models.money import Money
from expense_tracker.projection.observable import Observable, ObservableStore
from expense_tracker.services.storage import StorageError


class DayProjection:
    """Reactive state for one date, refreshed on every ledger mutation."""

    def __init__(
        self,
        store: LedgerStore,
        engine: AggregationEngine,
        day: date,
        locale: str = "zh_CN",
    ):
        self._store = store
        self._engine = engine
        self.day = day
        self.locale = locale
        self.state = ObservableStore(
            transactions=(),
            categories=(),
            total_expense=Money.zero(),
            total_income=Money.zero(),
            error=None,
        )
        self._store.add_listener(self.refresh)
        self.refresh()

    @property
    def transactions(self) -> Observable:
        return self.state["transactions"]

    @property
    def categories(self) -> Observable:
        return self.state["categories"]

    @property
    def total_expense(self) -> Observable:
        return self.state["total_expense"]

    @property
    def total_income(self) -> Observable:
        return self.state["total_income"]

    @property
    def error(self) -> Observable:
        return self.state["error"]

    def format_money(self, amount: Money) -> str:
        return amount.to_display(self.locale)

    def refresh(self) -> None:
        stats = self._engine.compute_day_stats(self.day)
        self.state.publish(
            transactions=self._store.get_transactions_for_day(self.day),
            categories=self._store.get_all_categories(),
            total_expense=stats.expense,
            total_income=stats.income,
        )

    async def delete_transaction(self, transaction_id: int) -> bool:
        try:
            await self._store.delete_transaction(transaction_id)
            return True
        except (LedgerError, StorageError) as e:
            self.state.publish(error=e.user_message)
            return False

    def clear_error(self) -> None:
        self.state.publish(error=None)

    def close(self) -> None:
        self._store.remove_listener(self.refresh)
