"""
Configuration Management for Expense Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here, but components never
call get_settings() themselves. The composition root reads settings once and
hands each component the slice it needs, so tests can build components with
explicit values.
"""

from functools import lru_cache
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MongoSettings(BaseSettings):
    """MongoDB document store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MONGO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection string"
    )
    database: str = Field(
        default="expense_ledger",
        description="Database name"
    )
    users_collection: str = Field(
        default="users",
        description="Collection holding user documents"
    )
    transactions_collection: str = Field(
        default="transactions",
        description="Collection holding transaction documents"
    )
    audit_collection: str = Field(
        default="audit_log",
        description="Collection holding audit events"
    )
    use_transactions: bool = Field(
        default=False,
        description="Wrap ledger write pairs in multi-document transactions (replica set only)"
    )
    server_selection_timeout_ms: int = Field(
        default=5000,
        ge=100,
        description="How long the driver waits for a reachable server"
    )


class AuthSettings(BaseSettings):
    """Session token and password hashing configuration."""

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    secret: str = Field(
        ...,
        min_length=1,
        description="Secret used to sign session tokens"
    )
    algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm"
    )
    token_ttl_hours: int = Field(
        default=24,
        ge=1,
        description="Session token lifetime in hours"
    )
    bcrypt_rounds: int = Field(
        default=12,
        ge=4,
        le=31,
        description="bcrypt cost factor for passwords and reset codes"
    )


class MailSettings(BaseSettings):
    """SMTP delivery configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    host: str = Field(
        default="localhost",
        description="SMTP server host"
    )
    port: int = Field(
        default=587,
        ge=1,
        le=65535,
        description="SMTP server port"
    )
    username: Optional[str] = Field(
        default=None,
        description="SMTP login user (login skipped when empty)"
    )
    password: Optional[str] = Field(
        default=None,
        description="SMTP login password"
    )
    sender: str = Field(
        default="no-reply@expense-ledger.local",
        description="From address on outgoing mail"
    )
    use_tls: bool = Field(
        default=True,
        description="Issue STARTTLS before sending"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Socket timeout for SMTP operations"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )

    # Server
    host: str = Field(
        default="0.0.0.0",
        description="Interface the HTTP server binds to"
    )
    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port the HTTP server listens on"
    )
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )

    storage_backend: Literal["mongo", "memory"] = Field(
        default="mongo",
        description="Where users and transactions are stored"
    )

    # Ledger behaviour
    reset_code_ttl_minutes: int = Field(
        default=60,
        ge=1,
        description="How long a password reset code stays valid"
    )
    dashboard_recent_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Number of transactions shown on the dashboard"
    )
    default_page_size: int = Field(
        default=10,
        ge=1,
        description="Page size when the client does not send one"
    )
    max_page_size: int = Field(
        default=100,
        ge=1,
        description="Largest page size a client may request"
    )

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


class Settings(BaseModel):
    """
    Root settings container.

    Aggregates all sub-settings. Each sub-settings object is only built when
    the root is created without it, so tests can pass explicit values.
    """

    app: AppSettings = Field(default_factory=AppSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    mongo: MongoSettings = Field(default_factory=MongoSettings)
    mail: MailSettings = Field(default_factory=MailSettings)


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, Union[bool, str]]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus {setting_name}_error
    holding the message for each section that failed.
    """
    results = {}

    for name, factory in (
        ("app", AppSettings),
        ("auth", AuthSettings),
        ("mongo", MongoSettings),
        ("mail", MailSettings),
    ):
        try:
            factory()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results


def require_valid_settings() -> None:
    """
    Fail fast at startup when any settings section cannot be loaded.

    Raises:
        SystemExit: Naming each invalid section and its error
    """
    status = validate_all_settings()
    invalid = [name for name, ok in status.items() if ok is False]
    if invalid:
        lines = [f"  {name}: {status[f'{name}_error']}" for name in invalid]
        raise SystemExit("Invalid configuration:\n" + "\n".join(lines))
