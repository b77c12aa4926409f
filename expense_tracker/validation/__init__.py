"""Ledger validation package."""

from expense_tracker.validation.validator import (
    TransactionValidator,
    validate_budget,
    validate_name,
)

__all__ = ["TransactionValidator", "validate_budget", "validate_name"]
