"""LLM client built by a factory function.

``create_llm_client`` closes over an ``AIConfig`` and the provider adapters
built from it, and returns an ``LLMClient`` record of plain callables.
``update_config`` rebuilds the adapters so later calls see the new settings.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from createkit.ai.availability import PROVIDERS, get_ai_availability
from createkit.ai.providers import ADAPTERS, LLMResponse
from createkit.config import AIConfig
from createkit.errors import ErrorCode


@dataclass(frozen=True)
class LLMClient:
    complete: Callable[..., Awaitable[LLMResponse]]
    is_available: Callable[[], bool]
    available_providers: Callable[[], list[str]]
    get_config: Callable[[], AIConfig]
    update_config: Callable[..., None]


def create_llm_client(config: AIConfig | None = None) -> LLMClient:
    """Build a client for *config* (defaults to ``AIConfig()``).

    ``complete(prompt, system="", max_tokens=None, temperature=None)`` tries
    the preferred provider first and then any other usable provider,
    returning the first successful response or the last failure.
    """
    state: dict[str, Any] = {"config": config or AIConfig()}

    def _build_adapters() -> dict[str, Any]:
        cfg: AIConfig = state["config"]
        return {
            name: ADAPTERS[name](
                cfg.provider_settings(name),
                timeout=cfg.timeout,
                max_tokens=cfg.max_tokens,
                temperature=cfg.temperature,
            )
            for name in PROVIDERS
        }

    state["adapters"] = _build_adapters()

    def available_providers() -> list[str]:
        return get_ai_availability(state["config"]).providers

    def is_available() -> bool:
        return get_ai_availability(state["config"]).available

    def _order() -> list[str]:
        availability = get_ai_availability(state["config"])
        if not availability.available:
            return []
        rest = [name for name in availability.providers if name != availability.preferred]
        return [availability.preferred, *rest]

    async def complete(
        prompt: str,
        system: str = "",
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> LLMResponse:
        cfg: AIConfig = state["config"]
        if not cfg.enabled:
            return LLMResponse(
                success=False, error="AI features are disabled", error_code=ErrorCode.AI_PROVIDER_UNAVAILABLE
            )
        order = _order()
        if not order:
            return LLMResponse(
                success=False,
                error="No LLM provider available. Please check your API key configuration.",
                error_code=ErrorCode.AI_PROVIDER_UNAVAILABLE,
            )

        response = LLMResponse(success=False)
        for name in order:
            response = await state["adapters"][name].complete(
                prompt, system=system, max_tokens=max_tokens, temperature=temperature
            )
            if response.success:
                return response
        return response

    def get_config() -> AIConfig:
        return state["config"].model_copy(deep=True)

    def update_config(**changes: Any) -> None:
        merged = state["config"].model_dump()
        for key, value in changes.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = {**merged[key], **value}
            else:
                merged[key] = value
        state["config"] = AIConfig.model_validate(merged)
        state["adapters"] = _build_adapters()

    return LLMClient(
        complete=complete,
        is_available=is_available,
        available_providers=available_providers,
        get_config=get_config,
        update_config=update_config,
    )
