"""Tests for the LedgerStore: mutations, queries and write-through."""

from datetime import datetime, timedelta

import pytest

from expense_tracker.ledger.errors import NotFoundError, ValidationError
from expense_tracker.ledger.periods import day_bounds, to_epoch_ms
from expense_tracker.ledger.store import LedgerStore
from expense_tracker.models.audit import AuditEventType
from expense_tracker.models.ledger import Account, Book, Transaction, TransactionType
from expense_tracker.models.money import Money
from expense_tracker.services.storage import InMemoryLedgerStorage, StorageError

EXPENSE = TransactionType.EXPENSE
INCOME = TransactionType.INCOME


class FailingAccountStorage(InMemoryLedgerStorage):
    """Fails every account write after `fail_after` successful ones."""

    def __init__(self, fail_after: int = 0):
        super().__init__()
        self.fail_after = fail_after

    async def save_account(self, account):
        if self.fail_after <= 0:
            raise StorageError("sheet unavailable")
        self.fail_after -= 1
        await super().save_account(account)


class TestAddTransaction:
    """Tests for add_transaction."""

    @pytest.mark.asyncio
    async def test_expense_debits_account(self, store):
        """Test that an expense lowers the balance, allowing overdraft."""
        tx_id = await store.add_transaction(1, 1, 1, Money(1250), EXPENSE, "午饭")
        assert tx_id == 1
        assert store.get_account_by_id(1).balance == Money(-1250)

    @pytest.mark.asyncio
    async def test_income_credits_account(self, store):
        """Test that income raises the balance."""
        await store.add_transaction(1, 2, 2, Money(500000), INCOME)
        assert store.get_account_by_id(2).balance == Money(600000)

    @pytest.mark.asyncio
    async def test_ids_are_sequential(self, store):
        """Test id assignment."""
        first = await store.add_transaction(1, 1, 1, Money(100), EXPENSE)
        second = await store.add_transaction(1, 1, 1, Money(200), EXPENSE)
        assert (first, second) == (1, 2)

    @pytest.mark.asyncio
    async def test_defaults_record_time_to_clock(self, store, now, tz):
        """Test that record_time comes from the injected clock."""
        tx_id = await store.add_transaction(1, 1, 1, Money(100), EXPENSE)
        assert store.get_transaction_by_id(tx_id).record_time == to_epoch_ms(now, tz)

    @pytest.mark.asyncio
    async def test_accepts_datetime_record_time(self, store, tz):
        """Test that datetimes are stored as epoch milliseconds."""
        moment = datetime(2024, 5, 1, 9, 0, tzinfo=tz)
        tx_id = await store.add_transaction(1, 1, 1, Money(100), EXPENSE, record_time=moment)
        assert store.get_transaction_by_id(tx_id).record_time == to_epoch_ms(moment, tz)

    @pytest.mark.asyncio
    async def test_remark_is_stripped(self, store):
        """Test that blank remarks are stored as None."""
        first = await store.add_transaction(1, 1, 1, Money(100), EXPENSE, "  咖啡 ")
        second = await store.add_transaction(1, 1, 1, Money(100), EXPENSE, "   ")
        assert store.get_transaction_by_id(first).remark == "咖啡"
        assert store.get_transaction_by_id(second).remark is None

    @pytest.mark.asyncio
    async def test_writes_through_to_storage(self, store, storage):
        """Test that the backend holds the transaction and the new balance."""
        tx_id = await store.add_transaction(1, 1, 1, Money(800), EXPENSE)
        assert storage.transactions[tx_id].amount == Money(800)
        assert storage.accounts[1].balance == Money(-800)

    @pytest.mark.asyncio
    async def test_audits_addition(self, store, audit_storage):
        """Test that an audit event is recorded."""
        await store.add_transaction(1, 1, 1, Money(800), EXPENSE)
        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.TRANSACTION_ADDED
        assert event.details["amount_minor"] == 800


class TestRejectedTransactions:
    """Tests for validation failures: nothing may change."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -100])
    async def test_non_positive_amount(self, store, amount):
        """Test that amount must be greater than zero."""
        version = store.version
        with pytest.raises(ValidationError) as exc_info:
            await store.add_transaction(1, 1, 1, Money(amount), EXPENSE)
        assert [i.field for i in exc_info.value.issues] == ["amount"]
        assert store.get_account_by_id(1).balance == Money(0)
        assert store.get_all_transactions() == ()
        assert store.version == version

    @pytest.mark.asyncio
    async def test_unknown_references(self, store):
        """Test that every unknown reference is reported at once."""
        with pytest.raises(ValidationError) as exc_info:
            await store.add_transaction(9, 9, 9, Money(100), EXPENSE)
        fields = {i.field for i in exc_info.value.issues}
        assert fields == {"book_id", "category_id", "account_id"}

    @pytest.mark.asyncio
    async def test_type_must_match_category(self, store):
        """Test that an expense cannot use an income category."""
        with pytest.raises(ValidationError) as exc_info:
            await store.add_transaction(1, 2, 1, Money(100), EXPENSE)
        assert exc_info.value.issues[0].issue_type == "type_mismatch"
        assert store.get_account_by_id(1).balance == Money(0)

    @pytest.mark.asyncio
    async def test_requires_a_book(self, empty_store):
        """Test that a book must exist before recording."""
        await empty_store.add_account("现金")
        await empty_store.add_category("餐饮", EXPENSE)
        with pytest.raises(ValidationError) as exc_info:
            await empty_store.add_transaction(1, 1, 1, Money(100), EXPENSE)
        assert exc_info.value.issues[0].issue_type == "missing"

    @pytest.mark.asyncio
    async def test_rejection_is_audited(self, store, audit_storage):
        """Test that rejected input leaves an audit trail."""
        with pytest.raises(ValidationError):
            await store.add_transaction(1, 1, 1, Money(0), EXPENSE)
        assert audit_storage.events[-1].event_type == AuditEventType.TRANSACTION_REJECTED


class TestDeleteTransaction:
    """Tests for delete_transaction."""

    @pytest.mark.asyncio
    async def test_restores_balance(self, store):
        """Test that delete reverses the balance effect."""
        before = store.get_account_by_id(2).balance
        tx_id = await store.add_transaction(1, 1, 2, Money(4321), EXPENSE)
        await store.delete_transaction(tx_id)
        assert store.get_account_by_id(2).balance == before
        assert store.get_transaction_by_id(tx_id) is None

    @pytest.mark.asyncio
    async def test_restores_income_balance(self, store):
        """Test reversal of an income."""
        tx_id = await store.add_transaction(1, 2, 1, Money(9900), INCOME)
        await store.delete_transaction(tx_id)
        assert store.get_account_by_id(1).balance == Money(0)

    @pytest.mark.asyncio
    async def test_unknown_id(self, store):
        """Test NotFoundError with no balance change."""
        await store.add_transaction(1, 1, 1, Money(100), EXPENSE)
        version = store.version
        with pytest.raises(NotFoundError):
            await store.delete_transaction(999)
        assert store.get_account_by_id(1).balance == Money(-100)
        assert store.version == version

    @pytest.mark.asyncio
    async def test_ids_are_not_reused_after_delete(self, store, storage, tz, now):
        """Test that deleting the newest transaction does not free its id."""
        await store.add_transaction(1, 1, 1, Money(100), EXPENSE)
        newest = await store.add_transaction(1, 1, 1, Money(200), EXPENSE)
        await store.delete_transaction(newest)

        assert await store.add_transaction(1, 1, 1, Money(300), EXPENSE) == newest + 1
        assert storage.sequences["transactions"] == newest + 1

        reopened = LedgerStore(storage, tz, clock=lambda: now)
        await reopened.open()
        await reopened.delete_transaction(newest + 1)
        assert await reopened.add_transaction(1, 1, 1, Money(400), EXPENSE) == newest + 2

    @pytest.mark.asyncio
    async def test_missing_account_still_deletes(self, tz, now):
        """Test that an orphaned transaction can be removed."""
        storage = InMemoryLedgerStorage()
        storage.transactions[1] = Transaction(
            id=1, book_id=1, category_id=1, account_id=42,
            amount=Money(100), type=EXPENSE, record_time=to_epoch_ms(now, tz),
        )
        store = LedgerStore(storage, tz, clock=lambda: now)
        await store.open()

        await store.delete_transaction(1)
        assert store.get_all_transactions() == ()
        assert storage.transactions == {}


class TestPeriodQueries:
    """Tests for get_transactions_by_period and friends."""

    @pytest.mark.asyncio
    async def test_bounds_are_inclusive(self, store, tz, now):
        """Test the first and last millisecond of a day."""
        start, end = day_bounds(now.date(), tz)
        await store.add_transaction(1, 1, 1, Money(1), EXPENSE, record_time=start - 1)
        first = await store.add_transaction(1, 1, 1, Money(2), EXPENSE, record_time=start)
        last = await store.add_transaction(1, 1, 1, Money(3), EXPENSE, record_time=end)
        await store.add_transaction(1, 1, 1, Money(4), EXPENSE, record_time=end + 1)

        result = store.get_transactions_by_period(start, end)
        assert [t.id for t in result] == [last, first]

    @pytest.mark.asyncio
    async def test_newest_first_with_id_tiebreak(self, store):
        """Test ordering by record_time then id, both descending."""
        a = await store.add_transaction(1, 1, 1, Money(1), EXPENSE, record_time=1000)
        b = await store.add_transaction(1, 1, 1, Money(1), EXPENSE, record_time=2000)
        c = await store.add_transaction(1, 1, 1, Money(1), EXPENSE, record_time=1000)
        assert [t.id for t in store.get_transactions_by_period(0, 5000)] == [b, c, a]
        assert [t.id for t in store.get_all_transactions()] == [b, c, a]

    @pytest.mark.asyncio
    async def test_empty_and_inverted_ranges(self, store):
        """Test that no match is an empty tuple, never an error."""
        await store.add_transaction(1, 1, 1, Money(1), EXPENSE, record_time=1000)
        assert store.get_transactions_by_period(2000, 3000) == ()
        assert store.get_transactions_by_period(3000, 0) == ()

    @pytest.mark.asyncio
    async def test_accepts_datetimes(self, store, now):
        """Test aware datetime bounds."""
        tx_id = await store.add_transaction(1, 1, 1, Money(1), EXPENSE)
        result = store.get_transactions_by_period(now - timedelta(minutes=1), now)
        assert [t.id for t in result] == [tx_id]

    @pytest.mark.asyncio
    async def test_transactions_for_day(self, store, now):
        """Test the single-day convenience query."""
        today = await store.add_transaction(1, 1, 1, Money(1), EXPENSE)
        await store.add_transaction(1, 1, 1, Money(1), EXPENSE, record_time=now - timedelta(days=1))
        assert [t.id for t in store.get_transactions_for_day(now.date())] == [today]

    @pytest.mark.asyncio
    async def test_monthly_stats(self, store, tz):
        """Test monthly expense and income sums."""
        await store.add_transaction(1, 1, 1, Money(1200), EXPENSE, record_time=datetime(2024, 5, 1, tzinfo=tz))
        await store.add_transaction(1, 1, 1, Money(300), EXPENSE, record_time=datetime(2024, 5, 31, 23, 59, tzinfo=tz))
        await store.add_transaction(1, 2, 2, Money(800000), INCOME, record_time=datetime(2024, 5, 10, tzinfo=tz))
        await store.add_transaction(1, 1, 1, Money(999), EXPENSE, record_time=datetime(2024, 4, 30, 23, 59, tzinfo=tz))

        stats = store.get_monthly_stats(2024, 5)
        assert stats.expense == Money(1500)
        assert stats.income == Money(800000)
        assert stats.label == "2024-05"


class TestReferenceData:
    """Tests for reference data creation and lookup."""

    @pytest.mark.asyncio
    async def test_lookups_return_none_when_absent(self, store):
        """Test absence is None, not an error."""
        assert store.get_category_by_id(99) is None
        assert store.get_account_by_id(99) is None
        assert store.get_transaction_by_id(99) is None

    @pytest.mark.asyncio
    async def test_lists_are_ordered_by_id(self, store):
        """Test reference data ordering."""
        assert [a.name for a in store.get_all_accounts()] == ["现金", "银行卡"]
        assert [c.type for c in store.get_all_categories()] == [EXPENSE, INCOME]
        assert [b.id for b in store.get_all_books()] == [1]

    @pytest.mark.asyncio
    async def test_reads_are_idempotent(self, store):
        """Test that repeated reads without a mutation agree and change nothing."""
        await store.add_transaction(1, 1, 1, Money(1250), EXPENSE)
        version = store.version

        assert store.get_all_categories() == store.get_all_categories()
        assert store.get_all_accounts() == store.get_all_accounts()
        assert store.get_all_transactions() == store.get_all_transactions()
        assert store.get_monthly_stats(2024, 5) == store.get_monthly_stats(2024, 5)
        assert store.get_account_by_id(1).balance == Money(-1250)
        assert store.version == version

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, store):
        """Test that names must be non-blank."""
        with pytest.raises(ValidationError):
            await store.add_account("   ")

    @pytest.mark.asyncio
    async def test_seed_defaults_only_fills_empty_collections(self, empty_store, audit_storage):
        """Test first-run seeding and that it runs once."""
        assert await empty_store.seed_defaults() is True
        assert len(empty_store.get_all_books()) == 1
        assert len(empty_store.get_all_accounts()) == 4
        assert {c.type for c in empty_store.get_all_categories()} == {EXPENSE, INCOME}
        assert audit_storage.events[-1].event_type == AuditEventType.LEDGER_SEEDED

        assert await empty_store.seed_defaults() is False
        assert len(empty_store.get_all_accounts()) == 4


class TestBudgets:
    """Tests for budget upsert."""

    @pytest.mark.asyncio
    async def test_upsert_replaces(self, store, storage):
        """Test exactly one row per month."""
        await store.upsert_budget(2024, 5, Money(300000))
        await store.upsert_budget(2024, 5, Money(250000))
        assert store.get_budget(2024, 5).amount == Money(250000)
        assert len(store.get_budgets()) == 1
        assert storage.budgets["2024-05"].amount == Money(250000)

    @pytest.mark.asyncio
    async def test_zero_budget_allowed(self, store):
        """Test that a zero budget is stored."""
        await store.upsert_budget(2024, 5, Money(0))
        assert store.get_budget(2024, 5).amount == Money(0)

    @pytest.mark.asyncio
    async def test_negative_budget_rejected(self, store):
        """Test that budgets cannot be negative."""
        with pytest.raises(ValidationError):
            await store.upsert_budget(2024, 5, Money(-1))
        assert store.get_budget(2024, 5) is None

    @pytest.mark.asyncio
    async def test_invalid_month_rejected(self, store):
        """Test month range."""
        with pytest.raises(ValidationError):
            await store.upsert_budget(2024, 13, Money(100))


class TestConsistency:
    """Tests for versioning, listeners, reloads and compensation."""

    @pytest.mark.asyncio
    async def test_listener_runs_before_mutation_returns(self, store):
        """Test that listeners see the committed state synchronously."""
        seen = []
        store.add_listener(lambda: seen.append(store.get_account_by_id(1).balance))

        await store.add_transaction(1, 1, 1, Money(700), EXPENSE)
        assert seen == [Money(-700)]

    @pytest.mark.asyncio
    async def test_version_increments_on_commit(self, store):
        """Test the mutation counter."""
        version = store.version
        tx_id = await store.add_transaction(1, 1, 1, Money(1), EXPENSE)
        await store.delete_transaction(tx_id)
        assert store.version == version + 2

    @pytest.mark.asyncio
    async def test_removed_listener_is_not_called(self, store):
        """Test remove_listener."""
        calls = []
        listener = lambda: calls.append(1)  # noqa: E731
        store.add_listener(listener)
        store.remove_listener(listener)
        await store.add_transaction(1, 1, 1, Money(1), EXPENSE)
        assert calls == []

    @pytest.mark.asyncio
    async def test_reopen_restores_state(self, store, storage, tz, now):
        """Test that a new store over the same backend sees everything."""
        await store.add_transaction(1, 1, 2, Money(2500), EXPENSE, "书")
        await store.upsert_budget(2024, 5, Money(100000))

        reopened = LedgerStore(storage, tz, clock=lambda: now)
        await reopened.open()
        assert reopened.get_account_by_id(2).balance == Money(97500)
        assert reopened.get_all_transactions()[0].remark == "书"
        assert reopened.get_budget(2024, 5).amount == Money(100000)

    @pytest.mark.asyncio
    async def test_failed_account_write_is_compensated(self, tz, now):
        """Test that a half-applied write is rolled back in the backend."""
        storage = FailingAccountStorage(fail_after=1)
        storage.books[1] = Book(id=1, name="账本")
        store = LedgerStore(storage, tz, clock=lambda: now)
        await store.open()
        await store.add_account("现金")
        await store.add_category("餐饮", EXPENSE)

        with pytest.raises(StorageError):
            await store.add_transaction(1, 1, 1, Money(100), EXPENSE)

        assert storage.transactions == {}
        assert store.get_all_transactions() == ()
        assert store.get_account_by_id(1).balance == Money(0)
        assert storage.accounts[1] == Account(id=1, name="现金")
