"""LLM classification providers."""

from .providers.base import ClassificationProvider
from .providers.factory import available_providers, create_provider
from .providers.gemini import GeminiProvider
from .providers.openai import OpenAIProvider

__all__ = [
    "ClassificationProvider",
    "GeminiProvider",
    "OpenAIProvider",
    "available_providers",
    "create_provider",
]
