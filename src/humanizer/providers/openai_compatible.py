from __future__ import annotations

import httpx

from humanizer.providers.base import (
    DEFAULT_MAX_TOKENS,
    ChatMessage,
    ProviderError,
    ProviderLimits,
)


class OpenAICompatibleClient:
    """Chat completions client for OpenAI and the vendors that mirror its API."""

    def __init__(
        self,
        *,
        name: str,
        display_name: str,
        api_key: str,
        base_url: str,
        limits: ProviderLimits,
        timeout_seconds: float = 120.0,
    ) -> None:
        self.name = name
        self.display_name = display_name
        self.limits = limits
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    def complete(
        self,
        *,
        system: str | None,
        messages: list[ChatMessage],
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float | None = None,
    ) -> str:
        wire_messages: list[dict[str, str]] = []
        if system:
            wire_messages.append({"role": "system", "content": system})
        wire_messages.extend({"role": item.role, "content": item.content} for item in messages)

        try:
            response = httpx.post(
                f"{self._base_url}/chat/completions",
                json={
                    "model": self.limits.model,
                    "messages": wire_messages,
                    "max_tokens": max_tokens,
                    "temperature": (
                        self.limits.temperature if temperature is None else temperature
                    ),
                },
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderError(f"{self.display_name} request failed: {exc}") from exc

        choices = payload.get("choices") if isinstance(payload, dict) else None
        if not isinstance(choices, list) or not choices:
            raise ProviderError("Invalid chat completion payload: missing choices")

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise ProviderError("Invalid chat completion payload: missing assistant content")

        return content
