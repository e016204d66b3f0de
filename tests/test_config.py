"""Tests for key configuration: environment, .env files, insecure default, strict mode."""

import pytest

from vaultkeep.core import config as config_mod
from vaultkeep.core.config import DEFAULT_ENCRYPTION_KEY, VaultSettings, get_settings
from vaultkeep.vault import ConfigurationError


class TestFromEnv:
    def test_reads_primary_variable(self):
        settings = VaultSettings.from_env({"VAULTKEEP_ENCRYPTION_KEY": "k1"})
        assert settings.encryption_key == "k1"
        assert settings.key_source == "VAULTKEEP_ENCRYPTION_KEY"
        assert settings.using_default_key is False

    def test_accepts_legacy_client_variable(self):
        settings = VaultSettings.from_env({"VITE_ENCRYPTION_KEY": "k2"})
        assert settings.encryption_key == "k2"
        assert settings.key_source == "VITE_ENCRYPTION_KEY"

    def test_primary_variable_wins(self):
        settings = VaultSettings.from_env({
            "VAULTKEEP_ENCRYPTION_KEY": "primary",
            "VITE_ENCRYPTION_KEY": "legacy",
        })
        assert settings.encryption_key == "primary"

    def test_empty_value_counts_as_missing(self):
        settings = VaultSettings.from_env({"VAULTKEEP_ENCRYPTION_KEY": ""})
        assert settings.using_default_key is True

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("VAULTKEEP_ENCRYPTION_KEY", "from-process")
        assert VaultSettings.from_env(use_dotenv=False).encryption_key == "from-process"

    def test_settings_are_immutable(self):
        settings = VaultSettings.from_env({"VAULTKEEP_ENCRYPTION_KEY": "k1"})
        with pytest.raises(Exception):
            settings.encryption_key = "other"


class TestInsecureDefault:
    def test_missing_key_falls_back_to_placeholder(self):
        settings = VaultSettings.from_env({})
        assert settings.encryption_key == DEFAULT_ENCRYPTION_KEY
        assert settings.key_source == "default"
        assert settings.using_default_key is True

    def test_missing_key_logs_warning(self, caplog):
        with caplog.at_level("WARNING", logger="vaultkeep.core.config"):
            VaultSettings.from_env({})
        assert "VAULTKEEP_ENCRYPTION_KEY is not set" in caplog.text

    def test_missing_key_is_audited(self, audit_events):
        VaultSettings.from_env({})
        events = [e for e in audit_events() if e.get("event_type") == "config.insecure_default_key"]
        assert len(events) == 1
        assert events[0]["severity"] == "alert"

    @pytest.mark.parametrize("flag", ["1", "true", "YES", "on"])
    def test_strict_mode_raises(self, flag):
        with pytest.raises(ConfigurationError):
            VaultSettings.from_env({"VAULTKEEP_REQUIRE_KEY": flag})

    def test_strict_mode_satisfied_by_key(self):
        settings = VaultSettings.from_env({
            "VAULTKEEP_REQUIRE_KEY": "1",
            "VAULTKEEP_ENCRYPTION_KEY": "k1",
        })
        assert settings.encryption_key == "k1"

    def test_strict_mode_off_values(self):
        settings = VaultSettings.from_env({"VAULTKEEP_REQUIRE_KEY": "0"})
        assert settings.using_default_key is True


class TestDotenv:
    def test_loads_key_from_dotenv_file(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("VAULTKEEP_ENCRYPTION_KEY=from-dotenv\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        # Register the variable so monkeypatch removes what load_dotenv adds
        monkeypatch.setenv("VAULTKEEP_ENCRYPTION_KEY", "placeholder")
        monkeypatch.delenv("VAULTKEEP_ENCRYPTION_KEY")

        assert VaultSettings.from_env().encryption_key == "from-dotenv"

    def test_environment_overrides_dotenv(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("VAULTKEEP_ENCRYPTION_KEY=from-dotenv\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("VAULTKEEP_ENCRYPTION_KEY", "from-process")

        assert VaultSettings.from_env().encryption_key == "from-process"


class TestGlobalSettings:
    def test_loaded_once(self, monkeypatch):
        monkeypatch.setenv("VAULTKEEP_ENCRYPTION_KEY", "first")
        first = get_settings()
        monkeypatch.setenv("VAULTKEEP_ENCRYPTION_KEY", "second")
        assert get_settings() is first
        assert get_settings().encryption_key == "first"

    def test_reset_rereads_environment(self, monkeypatch):
        monkeypatch.setenv("VAULTKEEP_ENCRYPTION_KEY", "first")
        get_settings()
        monkeypatch.setenv("VAULTKEEP_ENCRYPTION_KEY", "second")
        config_mod.reset_settings()
        assert get_settings().encryption_key == "second"
