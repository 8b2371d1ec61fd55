"""
generation/providers/__init__.py

AI provider selection.

Priority: Gemini -> OpenAI -> Stub. The first backend with credentials
wins. Selection happens once, at app startup; there is no switching while
the process runs.

Usage:
    from generation.providers import create_ai_provider

    provider = create_ai_provider()
"""

from generation.providers.base import AIProvider, ProviderResult
from generation.providers.stub_provider import StubProvider
from generation.providers.gemini_provider import GeminiProvider
from generation.providers.openai_provider import OpenAIProvider
from salon import config


def create_ai_provider() -> AIProvider:
    """Build the provider for the configured credentials."""
    timeout = config.PROVIDER_TIMEOUT_SECONDS

    if config.GEMINI_API_KEY:
        print(f"[Providers] Using Google Gemini ({config.GEMINI_MODEL})")
        return GeminiProvider(config.GEMINI_API_KEY, config.GEMINI_MODEL, timeout=timeout)

    if config.OPENAI_API_KEY:
        print(f"[Providers] Using OpenAI ({config.OPENAI_MODEL})")
        return OpenAIProvider(config.OPENAI_API_KEY, config.OPENAI_MODEL, timeout=timeout)

    print("[Providers] No API key found, using stub provider")
    return StubProvider(timeout=timeout)


__all__ = [
    'AIProvider',
    'ProviderResult',
    'StubProvider',
    'GeminiProvider',
    'OpenAIProvider',
    'create_ai_provider',
]
