"""Ledger package."""

from expense_ledger.ledger.engine import LedgerEngine

__all__ = ["LedgerEngine"]
