"""Summary: Exception types for degraded AI paths.

Importance: Lets services classify failures before falling back locally.
Alternatives: Use bare RuntimeError and ValueError everywhere.
"""

from __future__ import annotations


class BudgetExhausted(RuntimeError):
    """Summary: Raised when a session has no remote calls left.

    Importance: Distinguishes rate limiting from transport failures.
    Alternatives: Return a boolean from the budget check.
    """

    def __init__(self, max_calls: int) -> None:
        super().__init__(f"Rate limit reached ({max_calls} calls per email)")
        self.max_calls = max_calls


class RemoteUnavailable(RuntimeError):
    """Summary: Raised when an AI provider request fails in transport."""


class MalformedRemoteResponse(ValueError):
    """Summary: Raised when a provider reply cannot be read as a tone result."""
