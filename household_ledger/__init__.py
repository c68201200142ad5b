"""
Household Ledger - Source Package

Tracks a two-person household's income split, shared expenses, debts and
multi-currency savings snapshots, and derives who owes whom.

DESIGN PRINCIPLES:
1. Aggregations are plain functions over records read from the store
2. Conversions never crash a computation (missing rate = no conversion)
3. Storage and rate provider are injected, never global
4. Every user action is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Household Ledger Team"
