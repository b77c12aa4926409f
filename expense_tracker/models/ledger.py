"""
Core Data Models for the Ledger

These models define the strict schemas for all ledger data.
They are designed to:
1. Enforce type safety at runtime
2. Be immutable, so published snapshots cannot be changed by readers
3. Be serializable for storage and logging

DESIGN DECISION: Entities are frozen. The ledger store replaces an
entity (e.g. an account with a new balance) instead of mutating it.
"""

from datetime import datetime, tzinfo
from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from expense_tracker.models.money import Money


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(IntEnum):
    """
    Direction of a transaction.

    The integer values are the stored representation.
    """
    EXPENSE = 0
    INCOME = 1

    @property
    def label(self) -> str:
        return "expense" if self is TransactionType.EXPENSE else "income"


# =============================================================================
# REFERENCE DATA
# =============================================================================

class Account(BaseModel):
    """
    A place money lives (cash, bank card, e-wallet).

    Balance may go negative; overdrafts are allowed.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: int = Field(..., ge=1)
    name: str = Field(..., min_length=1, max_length=100)
    balance: Money = Field(default_factory=Money.zero)


class Category(BaseModel):
    """A spending or income category. Its type never changes."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: int = Field(..., ge=1)
    name: str = Field(..., min_length=1, max_length=100)
    type: TransactionType


class Book(BaseModel):
    """A ledger partition that transactions are recorded into."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: int = Field(..., ge=1)
    name: str = Field(..., min_length=1, max_length=100)


# =============================================================================
# TRANSACTIONS & BUDGETS
# =============================================================================

class Transaction(BaseModel):
    """
    A single recorded expense or income.

    `type` is copied from the category when the transaction is created.
    `record_time` is epoch milliseconds and decides which day/month
    bucket the transaction belongs to.
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1)
    book_id: int
    category_id: int
    account_id: int
    amount: Money
    type: TransactionType
    remark: Optional[str] = Field(default=None, max_length=500)
    record_time: int = Field(
        ...,
        description="Epoch milliseconds"
    )

    @model_validator(mode='after')
    def validate_amount(self) -> 'Transaction':
        if not self.amount.is_positive:
            raise ValueError("Transaction amount must be greater than zero")
        return self

    @property
    def signed_amount(self) -> Money:
        """Effect of this transaction on its account balance."""
        if self.type is TransactionType.EXPENSE:
            return -self.amount
        return self.amount

    def recorded_at(self, tz: tzinfo) -> datetime:
        return datetime.fromtimestamp(self.record_time / 1000, tz=tz)


class Budget(BaseModel):
    """The spending target for one calendar month."""
    model_config = ConfigDict(frozen=True)

    year: int = Field(..., ge=1970, le=9999)
    month: int = Field(..., ge=1, le=12)
    amount: Money

    @model_validator(mode='after')
    def validate_amount(self) -> 'Budget':
        if self.amount.is_negative:
            raise ValueError("Budget amount cannot be negative")
        return self

    @property
    def key(self) -> str:
        return budget_key(self.year, self.month)


def budget_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


# =============================================================================
# DERIVED STATISTICS (never persisted)
# =============================================================================

class TodayStats(BaseModel):
    """Expense and income totals for one day."""
    model_config = ConfigDict(frozen=True)

    date: str = Field(..., description="Day label, YYYY-MM-DD")
    expense: Money = Field(default_factory=Money.zero)
    income: Money = Field(default_factory=Money.zero)

    @property
    def balance(self) -> Money:
        return self.income - self.expense


class MonthlyStats(BaseModel):
    """Expense and income totals for one calendar month."""
    model_config = ConfigDict(frozen=True)

    year: int
    month: int
    expense: Money = Field(default_factory=Money.zero)
    income: Money = Field(default_factory=Money.zero)

    @property
    def label(self) -> str:
        return budget_key(self.year, self.month)

    @property
    def balance(self) -> Money:
        return self.income - self.expense


class BudgetUsage(BaseModel):
    """
    How much of a monthly budget has been spent.

    `usage_ratio` is None when no budget is set (budget <= 0). That is
    different from 0.0, which means a budget exists and nothing is spent.
    """
    model_config = ConfigDict(frozen=True)

    budget: Money
    expense: Money
    remaining: Money
    usage_ratio: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @property
    def has_budget(self) -> bool:
        return self.usage_ratio is not None

    @property
    def is_over_budget(self) -> bool:
        return self.has_budget and self.remaining.is_negative


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single reason a ledger mutation was rejected."""
    model_config = ConfigDict(frozen=True)

    field: str = Field(..., description="Field with the issue")
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'type_mismatch')"
    )
    message: str = Field(..., description="Human-readable description of the issue")
