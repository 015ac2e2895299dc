"""
Token estimation.

The default estimator is a deliberately crude heuristic: one token per
four characters, rounded up. It needs no model-specific vocabulary, so
every budget computed from it is approximate. Estimators are plain
callables (str -> int) and must be monotonically non-decreasing in text
length so greedy packing stays stable; swap in TiktokenEstimator for a
real BPE count without touching the packer.
"""

import logging
import math
from typing import Callable, Dict, Optional

from shared.config import settings

logger = logging.getLogger(__name__)

TokenEstimator = Callable[[str], int]


def estimate_tokens(text: str) -> int:
    """Approximate token count: ceil(len(text) / 4)."""
    return math.ceil(len(text) / settings.context.chars_per_token)


class CharRatioEstimator:
    """Character-ratio estimator with a configurable chars-per-token ratio."""

    def __init__(self, chars_per_token: int = 4):
        if chars_per_token <= 0:
            raise ValueError("chars_per_token must be positive")
        self.chars_per_token = chars_per_token

    def __call__(self, text: str) -> int:
        return math.ceil(len(text) / self.chars_per_token)


class TiktokenEstimator:
    """
    BPE token counter backed by tiktoken.

    More accurate than the character heuristic for OpenAI-family models,
    at the cost of loading an encoding on first use.
    """

    def __init__(self, encoding_name: str = "cl100k_base"):
        self.encoding_name = encoding_name
        self._enc = None

    @property
    def encoding(self):
        """Lazy load the tiktoken encoding."""
        if self._enc is None:
            import tiktoken

            self._enc = tiktoken.get_encoding(self.encoding_name)
        return self._enc

    def __call__(self, text: str) -> int:
        return len(self.encoding.encode(text))


def get_estimator(name: Optional[str] = None) -> TokenEstimator:
    """
    Resolve an estimator by name.

    None/"chars" returns the heuristic; any other name is treated as a
    tiktoken encoding name (e.g. "cl100k_base").
    """
    name = name or settings.TOKENIZER
    if not name or name == "chars":
        return estimate_tokens
    logger.debug(f"Using tiktoken estimator: {name}")
    return TiktokenEstimator(name)


def describe_tokens(text: str, estimator: TokenEstimator = estimate_tokens) -> Dict[str, int]:
    """Token and character counts for a piece of text."""
    return {
        "tokens": estimator(text),
        "characters": len(text),
    }
