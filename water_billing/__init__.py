"""
Water Billing Ledger - Source Package

Billing and account tracking for a small water utility serving a
handful of properties.

DESIGN PRINCIPLES:
1. One JSON document holds all state
2. Bills, balances and invoices are recomputed, never stored as fact
3. Calculators are pure functions over immutable records
4. Storage backend is swappable
"""

__version__ = "1.0.0"
__author__ = "Water Billing Ledger Team"
