"""createkit configuration.

Centralised, typed configuration for the scaffolding CLI. All settings use
Pydantic v2 models so they can be validated at construction time and serialised
to/from JSON or environment variables without boiler-plate.

A single ``Config`` instance is built per process (usually by ``Config.from_env``
in the CLI entry point) and passed to the components that need it.  The only
supported way to change it afterwards is ``Config.update``, which is called
between operations and never concurrently.
"""

from __future__ import annotations

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class ProviderSettings(BaseModel):
    """Connection settings and key predicate for one AI provider."""

    api_key: str | None = Field(default=None)
    base_url: str
    model: str
    key_pattern: str = Field(
        default=".+", description="Regex an API key must match to be considered usable"
    )

    @field_validator("key_pattern")
    @classmethod
    def _compiles(cls, value: str) -> str:
        re.compile(value)
        return value

    def key_is_valid(self) -> bool:
        """Return ``True`` if an API key is set and matches ``key_pattern``."""
        if not self.api_key:
            return False
        return re.match(self.key_pattern, self.api_key) is not None


def _openai_defaults() -> ProviderSettings:
    return ProviderSettings(
        base_url="https://api.openai.com",
        model="gpt-4o-mini",
        key_pattern=r"^sk-",
    )


def _anthropic_defaults() -> ProviderSettings:
    return ProviderSettings(
        base_url="https://api.anthropic.com",
        model="claude-3-5-sonnet-latest",
        key_pattern=r"^sk-ant-",
    )


class AIConfig(BaseModel):
    """Settings for the optional AI-assisted setup."""

    enabled: bool = Field(default=True)
    provider: Literal["auto", "openai", "anthropic"] = Field(default="auto")
    max_tokens: int = Field(default=1500, ge=1)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    timeout: float = Field(
        default=30.0, gt=0, description="Per-request timeout in seconds; expiry falls back to no-AI"
    )
    openai: ProviderSettings = Field(default_factory=_openai_defaults)
    anthropic: ProviderSettings = Field(default_factory=_anthropic_defaults)

    def provider_settings(self, name: str) -> ProviderSettings:
        """Return the settings block for *name* (``openai`` or ``anthropic``)."""
        if name == "openai":
            return self.openai
        if name == "anthropic":
            return self.anthropic
        raise KeyError(name)


class BackupConfig(BaseModel):
    """Where feature backups live and how long they are kept."""

    backup_dir: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "createkit-backups"
    )
    retention_hours: int = Field(default=24, ge=1)


class Config(BaseModel):
    """Global createkit configuration."""

    default_template: str = Field(default="default")
    default_package_manager: Literal["npm", "yarn", "pnpm", "bun"] = Field(default="npm")
    install_timeout: int = Field(
        default=300, ge=10, description="Dependency install timeout in seconds"
    )
    ai: AIConfig = Field(default_factory=AIConfig)
    backup: BackupConfig = Field(default_factory=BackupConfig)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def update(self, **changes: Any) -> "Config":
        """Apply *changes* in place after validating them.

        Nested sections accept dicts, which are merged into the existing
        section rather than replacing it.

        Returns:
            ``self``, for chaining.
        """
        merged = self.model_dump()
        for key, value in changes.items():
            if key not in merged:
                raise KeyError(f"Unknown config key: {key}")
            if isinstance(value, dict) and isinstance(merged[key], dict):
                merged[key] = _deep_merge(merged[key], value)
            elif isinstance(value, BaseModel):
                merged[key] = value.model_dump()
            else:
                merged[key] = value
        validated = type(self).model_validate(merged)
        for field_name in type(self).model_fields:
            setattr(self, field_name, getattr(validated, field_name))
        return self

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        API keys are never written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(mode="json")
        for provider in ("openai", "anthropic"):
            data["ai"][provider]["api_key"] = None
        target.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            OPENAI_API_KEY, ANTHROPIC_API_KEY, AI_ENABLED, AI_PROVIDER,
            CREATEKIT_AI_TIMEOUT, CREATEKIT_OPENAI_KEY_PATTERN,
            CREATEKIT_ANTHROPIC_KEY_PATTERN, CREATEKIT_BACKUP_DIR,
            CREATEKIT_DEFAULT_TEMPLATE.
        """
        openai = _openai_defaults()
        anthropic = _anthropic_defaults()
        if os.environ.get("OPENAI_API_KEY"):
            openai.api_key = os.environ["OPENAI_API_KEY"]
        if os.environ.get("ANTHROPIC_API_KEY"):
            anthropic.api_key = os.environ["ANTHROPIC_API_KEY"]
        if os.environ.get("CREATEKIT_OPENAI_KEY_PATTERN"):
            openai.key_pattern = os.environ["CREATEKIT_OPENAI_KEY_PATTERN"]
        if os.environ.get("CREATEKIT_ANTHROPIC_KEY_PATTERN"):
            anthropic.key_pattern = os.environ["CREATEKIT_ANTHROPIC_KEY_PATTERN"]

        ai_kwargs: dict[str, Any] = {"openai": openai, "anthropic": anthropic}
        if os.environ.get("AI_ENABLED"):
            ai_kwargs["enabled"] = os.environ["AI_ENABLED"].strip().lower() not in (
                "0",
                "false",
                "no",
                "off",
            )
        if os.environ.get("AI_PROVIDER"):
            ai_kwargs["provider"] = os.environ["AI_PROVIDER"].strip().lower()
        if os.environ.get("CREATEKIT_AI_TIMEOUT"):
            ai_kwargs["timeout"] = float(os.environ["CREATEKIT_AI_TIMEOUT"])

        backup_kwargs: dict[str, Any] = {}
        if os.environ.get("CREATEKIT_BACKUP_DIR"):
            backup_kwargs["backup_dir"] = Path(os.environ["CREATEKIT_BACKUP_DIR"])

        kwargs: dict[str, Any] = {
            "ai": AIConfig(**ai_kwargs),
            "backup": BackupConfig(**backup_kwargs),
        }
        if os.environ.get("CREATEKIT_DEFAULT_TEMPLATE"):
            kwargs["default_template"] = os.environ["CREATEKIT_DEFAULT_TEMPLATE"]
        return cls(**kwargs)


def _deep_merge(base: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result
