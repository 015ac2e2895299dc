"""
Text Generation Module.

Provider selection and LLM clients used for conversation summaries.

Usage:
    from generation import DefaultProviderSelector, LLMClient

    selector = DefaultProviderSelector()
    choice = selector.select_provider(user_settings)
"""

from .llm_client import LLMClient, get_llm_client
from .provider_router import PROVIDER_MODELS, PROVIDERS, DefaultProviderSelector

__all__ = [
    "LLMClient",
    "get_llm_client",
    "DefaultProviderSelector",
    "PROVIDER_MODELS",
    "PROVIDERS",
]
