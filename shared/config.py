"""
Configuration module for the context assembly service.
Manages all environment variables and settings with validation.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional


@dataclass
class ContextConfig:
    """Token budget and prompt packing configuration."""
    max_context_tokens: int = field(
        default_factory=lambda: int(os.getenv("MAX_CONTEXT_TOKENS", "100000"))
    )
    response_buffer_tokens: int = 4096
    min_fragment_tokens: int = 500  # Smallest partial chunk worth including
    truncation_headroom: float = 0.9  # Leaves room for the truncation marker
    chars_per_token: int = 4
    truncation_marker: str = "\n\n[Content truncated...]"
    context_truncation_marker: str = "\n\n[Context truncated to fit token limit...]"
    snippet_chars: int = 200
    can_add_more_ratio: float = 0.8


@dataclass
class RetrievalConfig:
    """Retrieval channel configuration."""
    default_limit: int = 10
    default_min_score: float = 0.4
    direct_score: float = 1.0
    project_score: float = 0.9
    search_timeout: float = field(
        default_factory=lambda: float(os.getenv("SEARCH_TIMEOUT", "10"))
    )
    max_workers: int = 3


@dataclass
class CompressionConfig:
    """Conversation history compression configuration."""
    history_window: int = 10
    generation_timeout: float = field(
        default_factory=lambda: float(os.getenv("GENERATION_TIMEOUT", "60"))
    )
    temperature: float = 0.3


@dataclass
class LLMConfig:
    """LLM provider configuration for generation."""
    default_provider: str = field(
        default_factory=lambda: os.getenv("DEFAULT_PROVIDER", "gemini")
    )
    openai_model: str = "gpt-4o"
    claude_model: str = "claude-sonnet-4-20250514"
    gemini_model: str = "gemini-2.0-flash"
    max_tokens: int = 2048
    timeout: int = 30


@dataclass
class Settings:
    """Main application settings loaded from environment."""

    # Provider credentials
    OPENAI_API_KEY: str = field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))
    CLAUDE_API_KEY: str = field(default_factory=lambda: os.getenv("CLAUDE_API_KEY", ""))
    GEMINI_API_KEY: str = field(default_factory=lambda: os.getenv("GEMINI_API_KEY", ""))

    # Application settings
    DEBUG: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    LOG_LEVEL: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    TOKENIZER: Optional[str] = field(default_factory=lambda: os.getenv("TOKENIZER"))
    SEED_FILE: Optional[str] = field(default_factory=lambda: os.getenv("SEED_FILE"))

    # Nested configs
    context: ContextConfig = field(default_factory=ContextConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    compression: CompressionConfig = field(default_factory=CompressionConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)

    def get_env_api_key(self, provider: str) -> str:
        """Look up the environment credential for a provider."""
        keys = {
            "openai": self.OPENAI_API_KEY,
            "claude": self.CLAUDE_API_KEY,
            "gemini": self.GEMINI_API_KEY,
        }
        return keys.get(provider, "")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
