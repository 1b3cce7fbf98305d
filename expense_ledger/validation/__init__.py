"""Input validation package."""

from expense_ledger.validation.validator import (
    PASSWORD_POLICY_MESSAGE,
    RegistrationInput,
    normalize_email,
    parse_amount,
    parse_initial_balance,
    parse_transaction_type,
    require_fields,
    require_strings,
    validate_description,
    validate_email_address,
    validate_login,
    validate_object_id,
    validate_pagination,
    validate_password_policy,
    validate_registration,
)

__all__ = [
    "PASSWORD_POLICY_MESSAGE",
    "RegistrationInput",
    "normalize_email",
    "parse_amount",
    "parse_initial_balance",
    "parse_transaction_type",
    "require_fields",
    "require_strings",
    "validate_description",
    "validate_email_address",
    "validate_login",
    "validate_object_id",
    "validate_pagination",
    "validate_password_policy",
    "validate_registration",
]
