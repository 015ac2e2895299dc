"""
Context Assembly Module.

Treat prompt context as a resource with a budget.

This module handles:
- Token estimation (pluggable, chars/4 by default)
- Greedy budget packing with one partial chunk
- Prompt formatting with citation-friendly source markers
- Context window statistics

Usage:
    from context import build_prompt

    built = build_prompt(user_id, query, candidates, history=messages)
    print(built.prompt_text, built.citations, built.truncated)
"""

from .context_budgeting import (
    Citation,
    ContextBudget,
    PackedContext,
    TruncationResult,
    allocate_token_budget,
    pack_candidates,
    truncate_context,
)
from .context_builder import BuiltPrompt, build_prompt, format_chunk_header, format_prompt
from .context_stats import ContextStatsReporter, ContextWindowStats, compute_stats
from .token_estimator import (
    CharRatioEstimator,
    TiktokenEstimator,
    describe_tokens,
    estimate_tokens,
    get_estimator,
)

__all__ = [
    "estimate_tokens",
    "describe_tokens",
    "get_estimator",
    "CharRatioEstimator",
    "TiktokenEstimator",
    "Citation",
    "ContextBudget",
    "PackedContext",
    "TruncationResult",
    "allocate_token_budget",
    "pack_candidates",
    "truncate_context",
    "BuiltPrompt",
    "build_prompt",
    "format_chunk_header",
    "format_prompt",
    "ContextStatsReporter",
    "ContextWindowStats",
    "compute_stats",
]
