"""Derived day/month statistics and budget usage."""

from expense_tracker.aggregation.engine import AggregationEngine, compute_budget_usage

__all__ = ["AggregationEngine", "compute_budget_usage"]
