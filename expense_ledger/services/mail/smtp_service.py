"""
Mail Delivery Service

Sends the few emails the ledger needs: welcome, password reset code and
password-changed notice.

DESIGN DECISION: Every delivery failure leaves this module as a
DeliveryError. Callers decide whether a failed email fails their
operation (forgot-password) or is only logged (registration, reset).

smtplib is blocking, so each send runs in a worker thread.
"""

import asyncio
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage

import structlog

from expense_ledger.config import MailSettings
from expense_ledger.errors import DeliveryError


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class MailMessage:
    """An outgoing plain-text email."""
    recipient: str
    subject: str
    body: str
    purpose: str


def welcome_message(name: str, email: str) -> MailMessage:
    return MailMessage(
        recipient=email,
        subject="Welcome to Expense Ledger",
        body=(
            f"Hi {name},\n\n"
            "Your account has been created. You can now log in and start "
            "recording your income and expenses.\n"
        ),
        purpose="welcome",
    )


def reset_code_message(name: str, email: str, code: str, ttl_minutes: int) -> MailMessage:
    return MailMessage(
        recipient=email,
        subject="Your password reset code",
        body=(
            f"Hi {name},\n\n"
            f"Your password reset code is: {code}\n\n"
            f"The code expires in {ttl_minutes} minutes. If you did not ask "
            "for a reset, you can ignore this email.\n"
        ),
        purpose="reset_code",
    )


def password_changed_message(name: str, email: str) -> MailMessage:
    return MailMessage(
        recipient=email,
        subject="Your password was changed",
        body=(
            f"Hi {name},\n\n"
            "The password for your Expense Ledger account was just changed. "
            "If this wasn't you, request a new reset code right away.\n"
        ),
        purpose="password_changed",
    )


class MailServiceInterface(ABC):
    """Anything that can deliver a MailMessage."""

    @abstractmethod
    async def send(self, message: MailMessage) -> None:
        """
        Deliver a message.

        Raises:
            DeliveryError: If the message could not be handed off
        """
        pass


class SmtpMailService(MailServiceInterface):
    """SMTP implementation of mail delivery."""

    def __init__(self, settings: MailSettings):
        self._settings = settings

    def _build(self, message: MailMessage) -> EmailMessage:
        email = EmailMessage()
        email["From"] = self._settings.sender
        email["To"] = message.recipient
        email["Subject"] = message.subject
        email.set_content(message.body)
        return email

    def _send_blocking(self, email: EmailMessage) -> None:
        with smtplib.SMTP(
            self._settings.host,
            self._settings.port,
            timeout=self._settings.timeout_seconds,
        ) as smtp:
            if self._settings.use_tls:
                smtp.starttls()
            if self._settings.username:
                smtp.login(self._settings.username, self._settings.password or "")
            smtp.send_message(email)

    async def send(self, message: MailMessage) -> None:
        email = self._build(message)
        try:
            await asyncio.to_thread(self._send_blocking, email)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                "mail_delivery_failed",
                purpose=message.purpose,
                recipient=message.recipient,
                error=str(e),
            )
            raise DeliveryError(
                "Failed to send email",
                details={"purpose": message.purpose},
            ) from e
        logger.info("mail_sent", purpose=message.purpose, recipient=message.recipient)
