"""Unit tests for Config and related Pydantic models (createkit.config).

Tests cover:
- ProviderSettings key predicate (configurable pattern)
- AIConfig defaults and provider_settings
- Config defaults, update (deep merge, validation), save/load, from_env
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from createkit.config import AIConfig, BackupConfig, Config, ProviderSettings


# ---------------------------------------------------------------------------
# ProviderSettings
# ---------------------------------------------------------------------------


class TestProviderSettings:
    @pytest.mark.unit
    def test_missing_key_is_invalid(self):
        settings = ProviderSettings(base_url="https://x", model="m")
        assert settings.key_is_valid() is False

    @pytest.mark.unit
    def test_default_pattern_accepts_any_key(self):
        settings = ProviderSettings(base_url="https://x", model="m", api_key="anything")
        assert settings.key_is_valid() is True

    @pytest.mark.unit
    def test_custom_pattern(self):
        settings = ProviderSettings(base_url="https://x", model="m", api_key="key-123", key_pattern=r"^key-\d+$")
        assert settings.key_is_valid() is True
        settings.api_key = "sk-123"
        assert settings.key_is_valid() is False

    @pytest.mark.unit
    def test_invalid_pattern_rejected(self):
        with pytest.raises(ValidationError):
            ProviderSettings(base_url="https://x", model="m", key_pattern="[unclosed")


# ---------------------------------------------------------------------------
# AIConfig
# ---------------------------------------------------------------------------


class TestAIConfig:
    @pytest.mark.unit
    def test_defaults(self):
        cfg = AIConfig()
        assert cfg.enabled is True
        assert cfg.provider == "auto"
        assert cfg.timeout == 30.0
        assert cfg.openai.key_pattern == r"^sk-"
        assert cfg.anthropic.key_pattern == r"^sk-ant-"

    @pytest.mark.unit
    def test_provider_settings(self):
        cfg = AIConfig()
        assert cfg.provider_settings("openai") is cfg.openai
        assert cfg.provider_settings("anthropic") is cfg.anthropic
        with pytest.raises(KeyError):
            cfg.provider_settings("cohere")

    @pytest.mark.unit
    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            AIConfig(timeout=0)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


class TestConfig:
    @pytest.mark.unit
    def test_defaults(self):
        cfg = Config()
        assert cfg.default_template == "default"
        assert cfg.default_package_manager == "npm"
        assert cfg.install_timeout == 300
        assert isinstance(cfg.backup, BackupConfig)
        assert cfg.backup.retention_hours == 24

    @pytest.mark.unit
    def test_update_sets_fields_in_place(self):
        cfg = Config()
        same = cfg.update(default_template="library")
        assert same is cfg
        assert cfg.default_template == "library"

    @pytest.mark.unit
    def test_update_merges_nested_sections(self):
        cfg = Config()
        cfg.update(ai={"timeout": 5.0})
        assert cfg.ai.timeout == 5.0
        assert cfg.ai.provider == "auto"

    @pytest.mark.unit
    def test_update_validates(self):
        cfg = Config()
        with pytest.raises(ValidationError):
            cfg.update(default_package_manager="pip")
        assert cfg.default_package_manager == "npm"

    @pytest.mark.unit
    def test_update_unknown_key(self):
        with pytest.raises(KeyError):
            Config().update(colour="blue")

    @pytest.mark.unit
    def test_save_strips_api_keys(self, tmp_path: Path):
        cfg = Config()
        cfg.ai.openai.api_key = "sk-secret"
        path = cfg.save(tmp_path / "nested" / "config.json")
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["ai"]["openai"]["api_key"] is None
        assert "sk-secret" not in path.read_text(encoding="utf-8")

    @pytest.mark.unit
    def test_save_load_roundtrip(self, tmp_path: Path):
        cfg = Config(default_template="cli")
        loaded = Config.load(cfg.save(tmp_path / "config.json"))
        assert loaded.default_template == "cli"
        assert loaded.backup.backup_dir == cfg.backup.backup_dir


class TestFromEnv:
    @pytest.mark.unit
    def test_no_env(self):
        cfg = Config.from_env()
        assert cfg.ai.openai.api_key is None
        assert cfg.ai.anthropic.api_key is None
        assert cfg.ai.enabled is True

    @pytest.mark.unit
    def test_reads_keys_and_overrides(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-abc")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-xyz")
        monkeypatch.setenv("AI_PROVIDER", "Anthropic")
        monkeypatch.setenv("CREATEKIT_AI_TIMEOUT", "12.5")
        monkeypatch.setenv("CREATEKIT_BACKUP_DIR", str(tmp_path))
        monkeypatch.setenv("CREATEKIT_DEFAULT_TEMPLATE", "library")
        cfg = Config.from_env()
        assert cfg.ai.openai.api_key == "sk-abc"
        assert cfg.ai.anthropic.api_key == "sk-ant-xyz"
        assert cfg.ai.provider == "anthropic"
        assert cfg.ai.timeout == 12.5
        assert cfg.backup.backup_dir == tmp_path
        assert cfg.default_template == "library"

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["false", "0", "no", "OFF"])
    def test_ai_disabled(self, monkeypatch: pytest.MonkeyPatch, value: str):
        monkeypatch.setenv("AI_ENABLED", value)
        assert Config.from_env().ai.enabled is False

    @pytest.mark.unit
    def test_key_pattern_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("OPENAI_API_KEY", "proj-123")
        monkeypatch.setenv("CREATEKIT_OPENAI_KEY_PATTERN", r"^proj-")
        assert Config.from_env().ai.openai.key_is_valid() is True
