"""
Exceptions raised by the context assembly core.

Operational degradation (missing documents, unavailable search,
failed summarization) is never raised; only caller bugs are.
"""


class ContextValidationError(ValueError):
    """Raised when a caller passes malformed parameters (negative budget, bad limit)."""

    pass


class GenerationError(Exception):
    """Raised when a text generation provider cannot produce a response."""

    def __init__(self, message: str, provider: str = None):
        super().__init__(message)
        self.provider = provider
