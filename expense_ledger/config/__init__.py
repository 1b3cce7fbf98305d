"""Configuration package."""

from expense_ledger.config.settings import (
    AppSettings,
    AuthSettings,
    MailSettings,
    MongoSettings,
    Settings,
    get_settings,
    require_valid_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "AuthSettings",
    "MailSettings",
    "MongoSettings",
    "Settings",
    "get_settings",
    "require_valid_settings",
    "validate_all_settings",
]
