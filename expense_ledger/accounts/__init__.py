"""Accounts package: credential store and password reset flow."""

from expense_ledger.accounts.credentials import CredentialStore, generate_reset_code
from expense_ledger.accounts.reset_flow import ResetFlowCoordinator

__all__ = ["CredentialStore", "ResetFlowCoordinator", "generate_reset_code"]
