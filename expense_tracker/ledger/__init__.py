"""
Ledger package.

The store lives in expense_tracker.ledger.store; this package root only
exposes the errors and period helpers that validation also depends on.
"""

from expense_tracker.ledger.errors import LedgerError, NotFoundError, ValidationError
from expense_tracker.ledger.periods import (
    as_epoch_ms,
    day_bounds,
    from_epoch_ms,
    month_bounds,
    to_epoch_ms,
)

__all__ = [
    "LedgerError",
    "NotFoundError",
    "ValidationError",
    "as_epoch_ms",
    "day_bounds",
    "from_epoch_ms",
    "month_bounds",
    "to_epoch_ms",
]
