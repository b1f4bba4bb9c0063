"""Which AI providers can be used right now.

Availability is decided from configuration alone (no network call): a
provider is usable when its API key is set and matches the provider's
``key_pattern``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from createkit.config import AIConfig

PROVIDERS: tuple[str, ...] = ("openai", "anthropic")

_KEY_VARS = {"openai": "OPENAI_API_KEY", "anthropic": "ANTHROPIC_API_KEY"}


class AIAvailability(BaseModel):
    available: bool
    providers: list[str] = Field(default_factory=list)
    preferred: str | None = None
    reason: str | None = None


def check_provider(name: str, config: AIConfig) -> bool:
    """Return ``True`` if provider *name* has a usable API key."""
    if name not in PROVIDERS:
        return False
    return config.provider_settings(name).key_is_valid()


def _unavailable_reason(name: str, config: AIConfig) -> str:
    settings = config.provider_settings(name)
    if not settings.api_key or not settings.api_key.strip():
        return f"{name}: {_KEY_VARS[name]} not set"
    return f"{name}: API key does not match expected format"


def get_ai_availability(config: AIConfig) -> AIAvailability:
    """Summarise which providers are usable and which one to prefer.

    An explicit ``config.provider`` wins when that provider is usable;
    otherwise the first usable provider (OpenAI, then Anthropic) is preferred.
    """
    if not config.enabled:
        return AIAvailability(available=False, reason="AI features are disabled in configuration")

    providers = [name for name in PROVIDERS if check_provider(name, config)]
    if not providers:
        reasons = "; ".join(_unavailable_reason(name, config) for name in PROVIDERS)
        return AIAvailability(available=False, reason=f"No AI providers available. {reasons}")

    preferred = config.provider if config.provider in providers else providers[0]
    return AIAvailability(available=True, providers=providers, preferred=preferred)
