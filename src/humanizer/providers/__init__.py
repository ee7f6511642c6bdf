from humanizer.providers.base import (
    PROVIDER_NAMES,
    ChatMessage,
    ProviderClient,
    ProviderConfigurationError,
    ProviderError,
    ProviderLimits,
    ProviderName,
)
from humanizer.providers.registry import ProviderKeyStore, build_provider

__all__ = [
    "PROVIDER_NAMES",
    "ChatMessage",
    "ProviderClient",
    "ProviderConfigurationError",
    "ProviderError",
    "ProviderKeyStore",
    "ProviderLimits",
    "ProviderName",
    "build_provider",
]
