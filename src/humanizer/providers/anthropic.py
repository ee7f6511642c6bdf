from __future__ import annotations

import httpx

from humanizer.providers.base import (
    DEFAULT_MAX_TOKENS,
    ChatMessage,
    ProviderError,
    ProviderLimits,
)

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicClient:
    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        limits: ProviderLimits,
        timeout_seconds: float = 120.0,
    ) -> None:
        self.name = "anthropic"
        self.display_name = "Anthropic"
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
        body: dict[str, object] = {
            "model": self.limits.model,
            "max_tokens": max_tokens,
            "temperature": self.limits.temperature if temperature is None else temperature,
            "messages": [{"role": item.role, "content": item.content} for item in messages],
        }
        if system:
            body["system"] = system

        try:
            response = httpx.post(
                f"{self._base_url}/messages",
                json=body,
                headers={
                    "x-api-key": self._api_key,
                    "anthropic-version": ANTHROPIC_VERSION,
                },
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderError(f"Anthropic request failed: {exc}") from exc

        blocks = payload.get("content") if isinstance(payload, dict) else None
        if not isinstance(blocks, list) or not blocks:
            raise ProviderError("Invalid messages payload: missing content")

        texts = [
            block["text"]
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str)
        ]
        if not texts:
            raise ProviderError("Unexpected response format from Anthropic")
        return "".join(texts)
