"""Mail delivery package."""

from expense_ledger.services.mail.smtp_service import (
    MailMessage,
    MailServiceInterface,
    SmtpMailService,
    password_changed_message,
    reset_code_message,
    welcome_message,
)

__all__ = [
    "MailMessage",
    "MailServiceInterface",
    "SmtpMailService",
    "password_changed_message",
    "reset_code_message",
    "welcome_message",
]
