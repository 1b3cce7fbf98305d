"""
Expense Ledger - Source Package

Backend for a personal expense tracker: accounts, an income/expense
ledger and the running balance that ties them together.

DESIGN PRINCIPLES:
1. Every balance change is paired with exactly one ledger record
2. Amounts are stored positive, the type carries the sign
3. Fail early, fail visibly
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Ledger Team"
