"""
LLM client wrapper for text generation across providers.
"""

import logging
from typing import Dict, Optional

from deployment.circuit_breaker import CircuitBreaker, CircuitOpenError, get_llm_breaker
from shared.config import settings
from shared.errors import GenerationError
from shared.interfaces import GenerationResult, ProviderConfig

logger = logging.getLogger(__name__)


class LLMClient:
    """
    LLM client with circuit breaker and per-call timeout.

    Supports:
    - OpenAI (openai SDK)
    - Claude (anthropic SDK)
    - Gemini (google-generativeai SDK)

    Implements the TextGenerator contract used by the conversation
    compressor.
    """

    def __init__(
        self,
        timeout: float = None,
        breaker: Optional[CircuitBreaker] = None,
        max_tokens: int = None,
    ):
        self.timeout = timeout if timeout is not None else settings.llm.timeout
        self.breaker = breaker or get_llm_breaker()
        self.max_tokens = max_tokens or settings.llm.max_tokens
        self._clients: Dict[tuple, object] = {}

    def _client_for(self, config: ProviderConfig):
        """Lazy load and cache the provider SDK client."""
        key = (config.provider, config.api_key)
        if key in self._clients:
            return self._clients[key]

        if config.provider == "openai":
            try:
                from openai import OpenAI
            except ImportError:
                raise ImportError("openai package required. Install with: pip install openai")
            client = OpenAI(api_key=config.api_key, timeout=self.timeout)
        elif config.provider == "claude":
            try:
                from anthropic import Anthropic
            except ImportError:
                raise ImportError("anthropic package required. Install with: pip install anthropic")
            client = Anthropic(api_key=config.api_key, timeout=self.timeout)
        elif config.provider == "gemini":
            try:
                import google.generativeai as genai
            except ImportError:
                raise ImportError(
                    "google-generativeai package required. Install with: pip install google-generativeai"
                )
            genai.configure(api_key=config.api_key)
            client = genai
        else:
            raise GenerationError(f"Unsupported provider: {config.provider}", config.provider)

        self._clients[key] = client
        return client

    def _generate_openai(self, client, prompt: str, system_instruction: str, config: ProviderConfig):
        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": prompt})

        response = client.chat.completions.create(
            model=config.model,
            messages=messages,
            temperature=config.temperature,
            max_tokens=config.max_tokens or self.max_tokens,
        )
        return GenerationResult(
            text=response.choices[0].message.content or "",
            provider=config.provider,
            model=response.model,
            tokens_used=response.usage.total_tokens if response.usage else None,
        )

    def _generate_claude(self, client, prompt: str, system_instruction: str, config: ProviderConfig):
        response = client.messages.create(
            model=config.model,
            system=system_instruction or "",
            messages=[{"role": "user", "content": prompt}],
            temperature=config.temperature,
            max_tokens=config.max_tokens or self.max_tokens,
        )
        text = "".join(block.text for block in response.content if getattr(block, "type", "") == "text")
        return GenerationResult(
            text=text,
            provider=config.provider,
            model=response.model,
            tokens_used=response.usage.input_tokens + response.usage.output_tokens,
        )

    def _generate_gemini(self, genai, prompt: str, system_instruction: str, config: ProviderConfig):
        model = genai.GenerativeModel(
            model_name=config.model,
            system_instruction=system_instruction or None,
        )
        response = model.generate_content(
            prompt,
            generation_config={
                "temperature": config.temperature,
                "max_output_tokens": config.max_tokens or self.max_tokens,
            },
        )
        return GenerationResult(text=response.text, provider=config.provider, model=config.model)

    def generate(
        self,
        prompt: str,
        system_instruction: str,
        config: ProviderConfig,
    ) -> GenerationResult:
        """
        Generate text with the configured provider.

        Args:
            prompt: User prompt
            system_instruction: System prompt
            config: Provider, model, credential and sampling settings

        Returns:
            GenerationResult

        Raises:
            GenerationError: Missing credential or provider failure
            CircuitOpenError: If the LLM circuit is open
        """
        if not config.api_key:
            raise GenerationError(f"No API key configured for {config.provider}", config.provider)

        client = self._client_for(config)
        handlers = {
            "openai": self._generate_openai,
            "claude": self._generate_claude,
            "gemini": self._generate_gemini,
        }

        try:
            return self.breaker.call(
                handlers[config.provider],
                client,
                prompt,
                system_instruction,
                config,
                timeout=self.timeout,
            )
        except CircuitOpenError:
            logger.error("LLM circuit breaker is open")
            raise
        except Exception as e:
            logger.error(f"LLM generation failed ({config.provider}/{config.model}): {e}")
            raise GenerationError(str(e), config.provider) from e


# Global LLM client
_llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get global LLM client."""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient()
    return _llm_client
