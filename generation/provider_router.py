"""
Provider selection policy for text generation.

Picks a provider and model from the user's settings:
- Search-grounded requests always go to Gemini (built-in grounding)
- A preferred provider is honoured when a credential for it exists
- Otherwise the configured default provider, when a credential for it exists
- Gemini (platform key) as the last resort
"""

import logging
from typing import Any, Dict, Optional

from shared.config import settings
from shared.interfaces import ProviderChoice

logger = logging.getLogger(__name__)

PROVIDERS = ("gemini", "claude", "openai")

PROVIDER_MODELS = {
    "gemini": {
        "default": settings.llm.gemini_model,
        "pro": "gemini-2.5-pro-preview-05-06",
        "flash": "gemini-2.0-flash",
    },
    "claude": {
        "default": settings.llm.claude_model,
        "opus": "claude-opus-4-20250514",
        "sonnet": "claude-sonnet-4-20250514",
        "haiku": "claude-3-5-haiku-20241022",
    },
    "openai": {
        "default": settings.llm.openai_model,
        "turbo": "gpt-4-turbo",
        "mini": "gpt-4o-mini",
    },
}

# User settings keys per provider: (api key, model preference)
_SETTINGS_KEYS = {
    "gemini": ("geminiApiKey", "geminiModelPreference"),
    "claude": ("claudeApiKey", "claudeModelPreference"),
    "openai": ("openAiApiKey", "openAiModelPreference"),
}


class DefaultProviderSelector:
    """
    Provider selection with per-user credentials and model preferences.

    Usage:
        selector = DefaultProviderSelector()
        choice = selector.select_provider(user_settings, preferred_provider="claude")
        api_key = selector.get_api_key(choice.provider, user_settings)
    """

    def __init__(self, default_provider: str = None):
        self.default_provider = default_provider or settings.llm.default_provider
        if self.default_provider not in PROVIDERS:
            logger.warning(f"Unknown default provider '{self.default_provider}', falling back to gemini")
            self.default_provider = "gemini"

    def model_for(self, provider: str, user_settings: Optional[Dict[str, Any]]) -> str:
        preference = (user_settings or {}).get(_SETTINGS_KEYS[provider][1])
        return preference or PROVIDER_MODELS[provider]["default"]

    def get_api_key(self, provider: str, user_settings: Optional[Dict[str, Any]]) -> str:
        """User-supplied key first, then the environment."""
        if provider not in PROVIDERS:
            return ""
        user_key = (user_settings or {}).get(_SETTINGS_KEYS[provider][0])
        return user_key or settings.get_env_api_key(provider)

    def select_provider(
        self,
        user_settings: Optional[Dict[str, Any]],
        preferred_provider: Optional[str] = None,
        needs_search: bool = False,
    ) -> ProviderChoice:
        if needs_search:
            return ProviderChoice("gemini", self.model_for("gemini", user_settings))

        if preferred_provider in PROVIDERS:
            # Gemini runs on the platform key, so it is always available
            if preferred_provider == "gemini" or self.get_api_key(preferred_provider, user_settings):
                return ProviderChoice(preferred_provider, self.model_for(preferred_provider, user_settings))
            logger.info(f"No credential for preferred provider {preferred_provider}, using default")

        fallback = self.default_provider
        if fallback != "gemini" and not self.get_api_key(fallback, user_settings):
            logger.info(f"No credential for default provider {fallback}, using gemini")
            fallback = "gemini"

        return ProviderChoice(fallback, self.model_for(fallback, user_settings))
