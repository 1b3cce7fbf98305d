"""Tests for settings loading and the startup check."""

import pytest

from expense_ledger.config import require_valid_settings, validate_all_settings


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run without a stray .env file and with a known JWT secret."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("JWT_SECRET", "test-secret")


class TestValidateAllSettings:
    """Tests for the per-section settings report."""

    def test_all_sections_valid(self):
        status = validate_all_settings()
        assert all(status[name] is True for name in ("app", "auth", "mongo", "mail"))

    def test_missing_jwt_secret(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET")

        status = validate_all_settings()

        assert status["auth"] is False
        assert "secret" in status["auth_error"]
        assert status["mongo"] is True

    def test_out_of_range_value(self, monkeypatch):
        monkeypatch.setenv("MAIL_PORT", "70000")
        assert validate_all_settings()["mail"] is False


class TestStartupCheck:
    """Tests for failing fast before the app is built."""

    def test_passes_with_valid_settings(self):
        require_valid_settings()

    def test_exits_naming_the_bad_section(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET")
        monkeypatch.setenv("JWT_BCRYPT_ROUNDS", "2")

        with pytest.raises(SystemExit) as exc_info:
            require_valid_settings()

        message = str(exc_info.value)
        assert message.startswith("Invalid configuration:")
        assert "auth:" in message
        assert "mongo:" not in message
