"""Reactive projections over the ledger store."""

from expense_tracker.projection.day import DayProjection
from expense_tracker.projection.home import HomeProjection
from expense_tracker.projection.observable import Observable, ObservableStore

__all__ = ["DayProjection", "HomeProjection", "Observable", "ObservableStore"]
