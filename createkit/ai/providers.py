"""HTTP adapters for the supported LLM providers.

Both adapters speak the provider's REST API directly through
``httpx.AsyncClient`` and turn every failure into an unsuccessful
``LLMResponse``; ``complete`` never raises.

Typical usage::

    adapter = OpenAIAdapter(config.ai.openai, timeout=config.ai.timeout)
    resp = await adapter.complete("Suggest a project layout")
    if resp.success:
        print(resp.content)
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, Field

from createkit.config import ProviderSettings
from createkit.errors import ErrorCode

ANTHROPIC_VERSION = "2023-06-01"


class LLMResponse(BaseModel):
    """Structured result of a completion call."""

    success: bool = Field(default=True)
    content: str = Field(default="", description="Generated text")
    error: str | None = Field(default=None, description="Error message on failure")
    error_code: ErrorCode | None = Field(default=None)
    model: str = Field(default="")
    usage: dict[str, int] = Field(default_factory=dict, description="Token counts reported by the provider")


class _Adapter:
    """Shared request plumbing; subclasses build the payload and parse the reply."""

    name = ""
    endpoint = ""

    def __init__(
        self,
        settings: ProviderSettings,
        timeout: float = 30.0,
        max_tokens: int = 1500,
        temperature: float = 0.3,
    ) -> None:
        self.settings = settings
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature

    def is_configured(self) -> bool:
        return self.settings.key_is_valid()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.base_url.rstrip("/"),
            timeout=httpx.Timeout(self.timeout, connect=10.0),
        )

    def _headers(self) -> dict[str, str]:
        raise NotImplementedError

    def _payload(self, prompt: str, system: str, max_tokens: int, temperature: float) -> dict[str, Any]:
        raise NotImplementedError

    def _parse(self, data: dict[str, Any]) -> tuple[str, dict[str, int]]:
        raise NotImplementedError

    def _failure(self, error: str, code: ErrorCode) -> LLMResponse:
        return LLMResponse(success=False, error=error, error_code=code, model=self.settings.model)

    async def complete(
        self,
        prompt: str,
        system: str = "",
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> LLMResponse:
        """Send *prompt* and return the provider's reply."""
        if not self.is_configured():
            return self._failure(f"{self.name} API key is not configured", ErrorCode.AI_PROVIDER_UNAVAILABLE)

        payload = self._payload(
            prompt,
            system,
            max_tokens or self.max_tokens,
            self.temperature if temperature is None else temperature,
        )
        try:
            async with self._client() as client:
                response = await client.post(self.endpoint, json=payload, headers=self._headers())
                response.raise_for_status()
                data = response.json()
                content, usage = self._parse(data)
                return LLMResponse(
                    success=True,
                    content=content,
                    model=data.get("model", self.settings.model),
                    usage=usage,
                )
        except httpx.ConnectError:
            return self._failure(
                f"Cannot connect to {self.name} at {self.settings.base_url}", ErrorCode.AI_REQUEST_FAILED
            )
        except httpx.TimeoutException:
            return self._failure(
                f"Request to {self.name} timed out after {self.timeout}s", ErrorCode.AI_TIMEOUT
            )
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status == 429:
                message = f"{self.name} rate limit exceeded (HTTP 429)"
            elif status in (401, 403):
                message = f"{self.name} rejected the API key (HTTP {status}): authentication failed"
            else:
                message = f"{self.name} returned HTTP {status}: {exc.response.text[:500]}"
            return self._failure(message, ErrorCode.AI_REQUEST_FAILED)
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            return self._failure(f"Unexpected {self.name} response: {exc}", ErrorCode.AI_RESPONSE_INVALID)
        except Exception as exc:  # noqa: BLE001
            return self._failure(f"Unexpected error during {self.name} request: {exc}", ErrorCode.AI_REQUEST_FAILED)


class OpenAIAdapter(_Adapter):
    """Chat Completions API."""

    name = "openai"
    endpoint = "/v1/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.settings.api_key}"}

    def _payload(self, prompt: str, system: str, max_tokens: int, temperature: float) -> dict[str, Any]:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return {
            "model": self.settings.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

    def _parse(self, data: dict[str, Any]) -> tuple[str, dict[str, int]]:
        content = data["choices"][0]["message"]["content"] or ""
        usage = data.get("usage") or {}
        return content, {
            "input_tokens": usage.get("prompt_tokens", 0),
            "output_tokens": usage.get("completion_tokens", 0),
        }


class AnthropicAdapter(_Adapter):
    """Messages API."""

    name = "anthropic"
    endpoint = "/v1/messages"

    def _headers(self) -> dict[str, str]:
        return {"x-api-key": self.settings.api_key or "", "anthropic-version": ANTHROPIC_VERSION}

    def _payload(self, prompt: str, system: str, max_tokens: int, temperature: float) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.settings.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            payload["system"] = system
        return payload

    def _parse(self, data: dict[str, Any]) -> tuple[str, dict[str, int]]:
        content = "".join(block.get("text", "") for block in data["content"] if block.get("type") == "text")
        usage = data.get("usage") or {}
        return content, {
            "input_tokens": usage.get("input_tokens", 0),
            "output_tokens": usage.get("output_tokens", 0),
        }


ADAPTERS: dict[str, type[_Adapter]] = {"openai": OpenAIAdapter, "anthropic": AnthropicAdapter}
