"""
Ledger Mutation Validation

DESIGN DECISION: Every mutation is checked in full before anything is
written. All issues are collected and reported together, so the caller
can show the user everything that is wrong at once.

Checks are split in two:
- Input checks (amount, type, remark) need nothing but the arguments
- Reference checks (book, category, account) need the current ledger state

IMPORTANT: Validation NEVER silently fixes issues.
"""

from typing import Mapping, Optional

from expense_tracker.ledger.errors import ValidationError
from expense_tracker.models.ledger import (
    Account,
    Book,
    Category,
    TransactionType,
    ValidationIssue,
)
from expense_tracker.models.money import Money

MAX_REMARK_LENGTH = 500
MAX_NAME_LENGTH = 100

_KNOWN_TYPES = (TransactionType.EXPENSE, TransactionType.INCOME)


class TransactionValidator:
    """Validates ledger mutations against the current reference data."""

    def __init__(
        self,
        books: Mapping[int, Book],
        categories: Mapping[int, Category],
        accounts: Mapping[int, Account],
    ):
        self._books = books
        self._categories = categories
        self._accounts = accounts

    def _validate_input(
        self,
        amount: Money,
        type: TransactionType,
        remark: Optional[str],
    ) -> list[ValidationIssue]:
        issues = []

        if not isinstance(amount, Money):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_type",
                message="Amount must be a Money value in minor units",
            ))
        elif not amount.is_positive:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
            ))

        if type not in _KNOWN_TYPES:
            issues.append(ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message=f"Unknown transaction type: {type!r}",
            ))

        if remark is not None and len(remark) > MAX_REMARK_LENGTH:
            issues.append(ValidationIssue(
                field="remark",
                issue_type="too_long",
                message=f"Remark must be at most {MAX_REMARK_LENGTH} characters",
            ))

        return issues

    def _validate_references(
        self,
        book_id: int,
        category_id: int,
        account_id: int,
        type: TransactionType,
    ) -> list[ValidationIssue]:
        issues = []

        if not self._books:
            issues.append(ValidationIssue(
                field="book_id",
                issue_type="missing",
                message="Create a book before recording transactions",
            ))
        elif book_id not in self._books:
            issues.append(ValidationIssue(
                field="book_id",
                issue_type="unknown_reference",
                message=f"Book {book_id} does not exist",
            ))

        category = self._categories.get(category_id)
        if category is None:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="unknown_reference",
                message=f"Category {category_id} does not exist",
            ))
        elif category.type != type:
            label = TransactionType(type).label if type in _KNOWN_TYPES else repr(type)
            issues.append(ValidationIssue(
                field="type",
                issue_type="type_mismatch",
                message=(
                    f"Transaction type {label} does not match "
                    f"category '{category.name}' ({category.type.label})"
                ),
            ))

        if account_id not in self._accounts:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="unknown_reference",
                message=f"Account {account_id} does not exist",
            ))

        return issues

    def validate_transaction(
        self,
        book_id: int,
        category_id: int,
        account_id: int,
        amount: Money,
        type: TransactionType,
        remark: Optional[str],
    ) -> list[ValidationIssue]:
        """Return every issue with a proposed transaction (empty if valid)."""
        issues = self._validate_input(amount, type, remark)
        issues.extend(self._validate_references(book_id, category_id, account_id, type))
        return issues


def validate_budget(year: int, month: int, amount: Money) -> None:
    """Raise ValidationError for a budget that cannot be stored."""
    issues = []
    if not isinstance(amount, Money):
        issues.append(ValidationIssue(
            field="amount",
            issue_type="invalid_type",
            message="Budget must be a Money value in minor units",
        ))
    elif amount.is_negative:
        issues.append(ValidationIssue(
            field="amount",
            issue_type="invalid_value",
            message="Budget cannot be negative",
        ))
    if not 1 <= month <= 12:
        issues.append(ValidationIssue(
            field="month",
            issue_type="invalid_value",
            message=f"Month must be between 1 and 12, got {month}",
        ))
    if not 1970 <= year <= 9999:
        issues.append(ValidationIssue(
            field="year",
            issue_type="invalid_value",
            message=f"Year out of range: {year}",
        ))
    if issues:
        raise ValidationError(issues)


def validate_name(field: str, name: str) -> str:
    """Strip and check a reference-data name."""
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError.single(field, "missing", f"{field.capitalize()} cannot be blank")
    if len(cleaned) > MAX_NAME_LENGTH:
        raise ValidationError.single(
            field, "too_long", f"{field.capitalize()} must be at most {MAX_NAME_LENGTH} characters"
        )
    return cleaned
