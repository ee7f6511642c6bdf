from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol

ProviderName = Literal["openai", "anthropic", "deepseek", "perplexity"]

PROVIDER_NAMES: tuple[str, ...] = ("openai", "anthropic", "deepseek", "perplexity")

DEFAULT_MAX_TOKENS = 4000


class ProviderError(RuntimeError):
    pass


class ProviderConfigurationError(ProviderError):
    pass


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str


@dataclass(frozen=True)
class ProviderLimits:
    model: str
    # single-shot ceiling, estimated as len(text) / 4
    max_input_tokens: int
    fallback_chunk_tokens: int
    temperature: float
    chat_history_tokens: int
    context_document_tokens: int
    context_keep_chars: int


DEFAULT_LIMITS: dict[str, ProviderLimits] = {
    "openai": ProviderLimits(
        model="gpt-4o",
        max_input_tokens=50_000,
        fallback_chunk_tokens=32_000,
        temperature=0.7,
        chat_history_tokens=100_000,
        context_document_tokens=50_000,
        context_keep_chars=100_000,
    ),
    "anthropic": ProviderLimits(
        model="claude-3-7-sonnet-20250219",
        max_input_tokens=190_000,
        fallback_chunk_tokens=50_000,
        temperature=0.7,
        chat_history_tokens=180_000,
        context_document_tokens=80_000,
        context_keep_chars=160_000,
    ),
    "deepseek": ProviderLimits(
        model="deepseek-chat",
        max_input_tokens=100_000,
        fallback_chunk_tokens=32_000,
        temperature=0.7,
        chat_history_tokens=100_000,
        context_document_tokens=50_000,
        context_keep_chars=100_000,
    ),
    "perplexity": ProviderLimits(
        model="llama-3.1-sonar-small-128k-chat",
        max_input_tokens=100_000,
        fallback_chunk_tokens=30_000,
        temperature=0.2,
        chat_history_tokens=100_000,
        context_document_tokens=50_000,
        context_keep_chars=100_000,
    ),
}

DISPLAY_NAMES: dict[str, str] = {
    "openai": "OpenAI",
    "anthropic": "Anthropic",
    "deepseek": "DeepSeek",
    "perplexity": "Perplexity",
}


class ProviderClient(Protocol):
    name: str
    display_name: str
    limits: ProviderLimits

    def complete(
        self,
        *,
        system: str | None,
        messages: list[ChatMessage],
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float | None = None,
    ) -> str: ...
