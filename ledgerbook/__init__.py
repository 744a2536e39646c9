"""
Ledger Book - Source Package

A small business ledger for shops that sell on credit: clients,
their debit/credit entries, running balances and statements.

DESIGN PRINCIPLES:
1. Balances are derived, never typed in
2. Fail early, fail visibly
3. Money is Decimal, never float
4. Every write must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Ledger Book Team"
