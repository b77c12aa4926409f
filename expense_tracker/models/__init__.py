"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker core.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.money import Money, sum_money
from expense_tracker.models.ledger import (
    Account,
    Book,
    Budget,
    BudgetUsage,
    Category,
    MonthlyStats,
    TodayStats,
    Transaction,
    TransactionType,
    ValidationIssue,
    budget_key,
)
from expense_tracker.models.advisory import (
    AdvisoryError,
    AdvisoryErrorKind,
    AdvisoryStatus,
    AdvisoryText,
    AnalysisResult,
    CompletionResult,
    FinancialSnapshot,
    SnapshotAccount,
    SnapshotTransaction,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Money
    "Money",
    "sum_money",
    # Ledger models
    "Account",
    "Book",
    "Budget",
    "BudgetUsage",
    "Category",
    "MonthlyStats",
    "TodayStats",
    "Transaction",
    "TransactionType",
    "ValidationIssue",
    "budget_key",
    # Advisory models
    "AdvisoryError",
    "AdvisoryErrorKind",
    "AdvisoryStatus",
    "AdvisoryText",
    "AnalysisResult",
    "CompletionResult",
    "FinancialSnapshot",
    "SnapshotAccount",
    "SnapshotTransaction",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
