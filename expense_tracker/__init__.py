"""
Expense Tracker - Core Package

The ledger and aggregation engine behind a personal expense tracker,
plus the AI advisory integration that turns a month of records into
a short insight and a longer report.

DESIGN PRINCIPLES:
1. Money is integer minor units, always
2. A read right after a write reflects it
3. The ledger store is the only writer of ledger state
4. External failures become typed error values, never crashes
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
