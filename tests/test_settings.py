"""Tests for environment-driven configuration."""

import pytest
from decimal import Decimal

from ledgerbook.config import AppSettings, GoogleSheetsSettings, get_settings, validate_all_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestAppSettings:
    """Tests for AppSettings."""

    def test_defaults(self, monkeypatch):
        """Test that the app runs in memory with no environment."""
        for name in ("STORAGE_BACKEND", "AUTO_RECALCULATE_BALANCES", "MAX_TRANSACTION_AMOUNT"):
            monkeypatch.delenv(name, raising=False)
        settings = AppSettings(_env_file=None)
        assert settings.storage_backend == "memory"
        assert settings.auto_recalculate_balances is True
        assert settings.max_transaction_amount == Decimal("10000000.00")

    def test_only_consumed_fields(self):
        """Test that every app setting is one the flows read."""
        assert set(AppSettings.model_fields) == {
            "storage_backend",
            "auto_recalculate_balances",
            "recent_transactions_limit",
            "max_transaction_amount",
        }

    def test_environment_overrides(self, monkeypatch):
        """Test values read from the environment."""
        monkeypatch.setenv("AUTO_RECALCULATE_BALANCES", "false")
        monkeypatch.setenv("RECENT_TRANSACTIONS_LIMIT", "25")
        settings = AppSettings(_env_file=None)
        assert settings.auto_recalculate_balances is False
        assert settings.recent_transactions_limit == 25

    def test_unknown_backend_rejected(self, monkeypatch):
        """Test that only known stores can be selected."""
        monkeypatch.setenv("STORAGE_BACKEND", "postgres")
        with pytest.raises(ValueError):
            AppSettings(_env_file=None)


class TestGoogleSheetsSettings:
    """Tests for GoogleSheetsSettings."""

    def test_missing_credentials_file_only_warns(self, monkeypatch):
        """Test that a missing file is a warning, not a failure."""
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", "/nowhere/credentials.json")
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "abc")
        with pytest.warns(UserWarning, match="credentials file not found"):
            settings = GoogleSheetsSettings()
        assert settings.clients_sheet_name == "Clients"


class TestValidateAllSettings:
    """Tests for startup checks."""

    def test_memory_backend_needs_no_google_config(self, monkeypatch):
        """Test that Sheets config is only checked when selected."""
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        results = validate_all_settings()
        assert results["app"] is True
        assert "google_sheets" not in results

    def test_sheets_backend_reports_missing_config(self, monkeypatch):
        """Test the failure report for an unconfigured Sheets backend."""
        monkeypatch.setenv("STORAGE_BACKEND", "google_sheets")
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        results = validate_all_settings()
        assert results["google_sheets"] is False
        assert "google_sheets_error" in results


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
