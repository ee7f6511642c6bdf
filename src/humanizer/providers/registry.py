from __future__ import annotations

from dataclasses import replace
from threading import Lock

from humanizer.config import Settings
from humanizer.providers.anthropic import AnthropicClient
from humanizer.providers.base import (
    DEFAULT_LIMITS,
    DISPLAY_NAMES,
    PROVIDER_NAMES,
    ProviderClient,
    ProviderConfigurationError,
)
from humanizer.providers.openai_compatible import OpenAICompatibleClient

KEY_ENV_VARS: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
    "perplexity": "PERPLEXITY_API_KEY",
}


class ProviderKeyStore:
    """API keys seeded from the environment and replaceable at runtime."""

    def __init__(self, keys: dict[str, str | None] | None = None) -> None:
        self._lock = Lock()
        self._keys: dict[str, str | None] = {name: None for name in PROVIDER_NAMES}
        if keys:
            self._keys.update(keys)

    @classmethod
    def from_settings(cls, settings: Settings) -> ProviderKeyStore:
        return cls(
            {
                "openai": settings.openai_api_key,
                "anthropic": settings.anthropic_api_key,
                "deepseek": settings.deepseek_api_key,
                "perplexity": settings.perplexity_api_key,
            }
        )

    def get(self, provider: str) -> str | None:
        with self._lock:
            return self._keys.get(provider)

    def require(self, provider: str) -> str:
        key = self.get(provider)
        if not key:
            env_var = KEY_ENV_VARS.get(provider, f"{provider.upper()}_API_KEY")
            raise ProviderConfigurationError(
                f"{DISPLAY_NAMES.get(provider, provider)} API key is not configured (set {env_var})"
            )
        return key

    def update(self, keys: dict[str, str | None]) -> list[str]:
        updated: list[str] = []
        with self._lock:
            for provider, key in keys.items():
                if provider not in self._keys:
                    raise ValueError(f"Unsupported provider: {provider}")
                if key is None or not key.strip():
                    continue
                self._keys[provider] = key.strip()
                updated.append(provider)
        return updated


def build_provider(name: str, *, keys: ProviderKeyStore, settings: Settings) -> ProviderClient:
    normalized = name.strip().lower()
    if normalized not in DEFAULT_LIMITS:
        raise ValueError(f"Unsupported provider: {name}")

    api_key = keys.require(normalized)

    if normalized == "anthropic":
        return AnthropicClient(
            api_key=api_key,
            base_url=settings.anthropic_base_url,
            limits=replace(DEFAULT_LIMITS["anthropic"], model=settings.anthropic_model),
            timeout_seconds=settings.llm_timeout_seconds,
        )

    endpoints = {
        "openai": (settings.openai_base_url, settings.openai_model),
        "deepseek": (settings.deepseek_base_url, settings.deepseek_model),
        "perplexity": (settings.perplexity_base_url, settings.perplexity_model),
    }
    base_url, model = endpoints[normalized]
    return OpenAICompatibleClient(
        name=normalized,
        display_name=DISPLAY_NAMES[normalized],
        api_key=api_key,
        base_url=base_url,
        limits=replace(DEFAULT_LIMITS[normalized], model=model),
        timeout_seconds=settings.llm_timeout_seconds,
    )
