"""LLM provider adapters."""

from tickassist.errors import ProviderNotConfiguredError
from tickassist.providers.base import LLMProvider, ModelOptions
from tickassist.providers.claude import ClaudeProvider
from tickassist.providers.gemini import GeminiProvider
from tickassist.providers.openai import GrokProvider, OpenAIProvider

PROVIDER_CLASSES: dict[str, type[LLMProvider]] = {
    "claude": ClaudeProvider,
    "openai": OpenAIProvider,
    "grok": GrokProvider,
    "gemini": GeminiProvider,
}


def get_provider(name: str, proxy_url: str | None = None) -> LLMProvider:
    """Create the adapter for a provider name.

    Args:
        name: One of the keys of PROVIDER_CLASSES
        proxy_url: Optional relay origin; requests then go through its vendor path

    Returns:
        Provider adapter instance
    """
    provider_class = PROVIDER_CLASSES.get(name)
    if provider_class is None:
        raise ProviderNotConfiguredError(f"Unknown provider: {name}")

    base_url = f"{proxy_url.rstrip('/')}{provider_class.proxy_path}" if proxy_url else None
    return provider_class(base_url=base_url)


__all__ = [
    "PROVIDER_CLASSES",
    "ClaudeProvider",
    "GeminiProvider",
    "GrokProvider",
    "LLMProvider",
    "ModelOptions",
    "OpenAIProvider",
    "get_provider",
]
