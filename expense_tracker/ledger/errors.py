"""Ledger exceptions."""

from typing import Union

from expense_tracker.models.ledger import ValidationIssue


class LedgerError(Exception):
    """Base exception for ledger operations."""

    @property
    def user_message(self) -> str:
        return str(self)


class ValidationError(LedgerError):
    """
    A mutation was rejected before anything was changed.

    Carries every issue found, not just the first.
    """

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = list(issues)
        summary = "; ".join(issue.message for issue in self.issues) or "Invalid input"
        super().__init__(summary)

    @classmethod
    def single(cls, field: str, issue_type: str, message: str) -> "ValidationError":
        return cls([ValidationIssue(field=field, issue_type=issue_type, message=message)])


class NotFoundError(LedgerError):
    """Referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: Union[int, str]):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} not found: {entity_id}")
