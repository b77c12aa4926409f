"""Tests for configuration loading."""

from datetime import date
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError
from tzlocal import reload_localzone

from expense_tracker.config import (
    AdvisorSettings,
    GoogleSheetsSettings,
    LedgerSettings,
    validate_all_settings,
)
from expense_tracker.ledger.periods import day_bounds, month_bounds


@pytest.fixture
def berlin_local_zone(monkeypatch):
    """Make Europe/Berlin the system zone with LEDGER_TIMEZONE unset."""
    monkeypatch.delenv("LEDGER_TIMEZONE", raising=False)
    monkeypatch.setenv("TZ", "Europe/Berlin")
    reload_localzone()
    yield
    monkeypatch.undo()
    reload_localzone()


class TestLedgerSettings:
    """Tests for LEDGER_ settings."""

    def test_defaults(self, monkeypatch):
        """Test default values."""
        for name in ("LEDGER_TIMEZONE", "LEDGER_LOCALE", "LEDGER_STORAGE_BACKEND"):
            monkeypatch.delenv(name, raising=False)
        settings = LedgerSettings(_env_file=None)
        assert settings.locale == "zh_CN"
        assert settings.storage_backend == "memory"
        assert settings.seed_defaults is True
        assert settings.tzinfo is not None

    def test_timezone_from_environment(self, monkeypatch):
        """Test IANA timezone loading."""
        monkeypatch.setenv("LEDGER_TIMEZONE", "Asia/Shanghai")
        settings = LedgerSettings(_env_file=None)
        assert settings.tzinfo == ZoneInfo("Asia/Shanghai")

    def test_system_zone_follows_dst(self, berlin_local_zone):
        """Test that the unset timezone resolves to the DST-aware local zone."""
        tz = LedgerSettings(_env_file=None).tzinfo
        # 2026-12-01 is CET (+01:00), 2026-07-01 is CEST (+02:00)
        assert day_bounds(date(2026, 12, 1), tz) == (1796079600000, 1796165999999)
        assert day_bounds(date(2026, 7, 1), tz) == (1782856800000, 1782943199999)
        assert month_bounds(2026, 3, tz) == month_bounds(2026, 3, ZoneInfo("Europe/Berlin"))

    def test_unknown_timezone_rejected(self):
        """Test that a bad timezone fails at startup."""
        with pytest.raises(ValidationError):
            LedgerSettings(_env_file=None, timezone="Mars/Olympus_Mons")

    def test_unknown_backend_rejected(self):
        """Test storage backend choices."""
        with pytest.raises(ValidationError):
            LedgerSettings(_env_file=None, storage_backend="postgres")


class TestAdvisorSettings:
    """Tests for ADVISOR_ settings."""

    def test_defaults(self, monkeypatch):
        """Test the advisory defaults."""
        for name in ("ADVISOR_PROVIDER", "ADVISOR_TIMEOUT_SECONDS", "ADVISOR_MAX_SNAPSHOT_TRANSACTIONS"):
            monkeypatch.delenv(name, raising=False)
        settings = AdvisorSettings(_env_file=None)
        assert settings.provider == "http"
        assert settings.timeout_seconds == 30
        assert settings.max_snapshot_transactions == 20

    def test_provider_choices(self):
        """Test that only known providers load."""
        assert AdvisorSettings(_env_file=None, provider="gemini").provider == "gemini"
        with pytest.raises(ValidationError):
            AdvisorSettings(_env_file=None, provider="carrier-pigeon")

    def test_model_defaults_per_provider(self, monkeypatch):
        """Test that each provider gets a model it accepts."""
        monkeypatch.delenv("ADVISOR_MODEL_NAME", raising=False)
        assert AdvisorSettings(_env_file=None).model == "deepseek-chat"
        assert AdvisorSettings(_env_file=None, provider="gemini").model == "gemini-1.5-flash"
        assert AdvisorSettings(_env_file=None, provider="gemini", model_name="gemini-pro").model == "gemini-pro"


class TestGoogleSheetsSettings:
    """Tests for GOOGLE_SHEETS_ settings."""

    def test_sheet_name_defaults(self, tmp_path):
        """Test worksheet names."""
        credentials = tmp_path / "credentials.json"
        credentials.write_text("{}")
        settings = GoogleSheetsSettings(
            _env_file=None,
            credentials_path=str(credentials),
            spreadsheet_id="sheet-id",
        )
        assert settings.transactions_sheet_name == "Transactions"
        assert settings.audit_sheet_name == "AuditLog"

    def test_validate_all_settings_reports_missing_section(self, monkeypatch, tmp_path):
        """Test the startup check."""
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        monkeypatch.chdir(tmp_path)
        results = validate_all_settings()
        assert results["ledger"] is True
        assert results["advisor"] is True
        assert results["google_sheets"] is False
        assert "google_sheets_error" in results
