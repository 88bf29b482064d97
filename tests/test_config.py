from pathlib import Path

import pytest

from bizdir.config import Settings, get_settings, reset_settings


class TestSettings:
    """Test Settings class field defaults and computed properties."""

    def test_default_transport(self):
        s = Settings(_env_file=None)
        assert s.mcp_transport == "stdio"
        assert s.mcp_host == "0.0.0.0"
        assert s.mcp_port == 8000

    def test_transport_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MCP_TRANSPORT", "streamable-http")
        monkeypatch.setenv("MCP_PORT", "9100")
        s = Settings(_env_file=None)
        assert s.mcp_transport == "streamable-http"
        assert s.mcp_port == 9100

    def test_default_locale(self):
        s = Settings(_env_file=None)
        assert s.default_locale == "en"

    def test_default_locale_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DEFAULT_LOCALE", "ar")
        s = Settings(_env_file=None)
        assert s.default_locale == "ar"

    def test_explorer_cache_defaults(self):
        s = Settings(_env_file=None)
        assert s.explorer_cache_ttl_ms == 60_000
        assert s.explorer_cache_max_entries == 120

    def test_explorer_cache_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("EXPLORER_CACHE_TTL_MS", "5000")
        monkeypatch.setenv("EXPLORER_CACHE_MAX_ENTRIES", "8")
        s = Settings(_env_file=None)
        assert s.explorer_cache_ttl_ms == 5000
        assert s.explorer_cache_max_entries == 8

    def test_default_data_dir(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("DATA_DIR", raising=False)
        s = Settings(_env_file=None)
        expected = Path(__file__).resolve().parent.parent / "data"
        assert s.data_dir == expected

    def test_custom_data_dir(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DATA_DIR", "/tmp/custom")
        s = Settings(_env_file=None)
        assert s.data_dir == Path("/tmp/custom")

    def test_default_log_level(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        s = Settings(_env_file=None)
        assert s.log_level == "INFO"

    def test_custom_log_level(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        s = Settings(_env_file=None)
        assert s.log_level == "DEBUG"

    def test_db_path_computed(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DATA_DIR", "/srv/data")
        s = Settings(_env_file=None)
        assert s.db_path == Path("/srv/data/directory.db")


class TestGetSettings:
    """Test the lazy singleton get_settings / reset_settings."""

    def test_get_settings_returns_settings(self):
        assert isinstance(get_settings(), Settings)

    def test_get_settings_is_singleton(self):
        s1 = get_settings()
        s2 = get_settings()
        assert s1 is s2

    def test_reset_settings_clears_cache(self):
        s1 = get_settings()
        reset_settings()
        s2 = get_settings()
        assert s1 is not s2
