"""Shared error types for the runtime safety layer."""


class RuntimeSafetyError(Exception):
    """Base error for all runtime safety failures."""


class RateLimitError(RuntimeSafetyError):
    """A tool category ran out of tokens; the call was not performed."""

    def __init__(self, category: str, retry_after_ms: int) -> None:
        self.category = category
        self.retry_after_ms = retry_after_ms
        super().__init__(
            f"Rate limit exceeded for {category} tools. Retry after {retry_after_ms}ms"
        )
