"""Summary: Per-session call budgets for remote tone analysis.

Importance: Caps AI spend per email draft without one user starving another.
Alternatives: Use a time-window rate limiter shared by the whole process.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock

from draftpilot.errors import BudgetExhausted

MAX_CALLS_PER_EMAIL = 5
RESET_PREFIX_CHARS = 50
MAX_SESSIONS = 10_000


@dataclass
class CallBudget:
    """Summary: Mutable counter of remote attempts for one draft.

    Importance: Every attempt counts, whether or not the provider succeeds.
    Alternatives: Count only successful calls.
    """

    max_calls: int = MAX_CALLS_PER_EMAIL
    calls_used: int = 0
    tracked_prefix: str | None = None

    @property
    def calls_remaining(self) -> int:
        return max(0, self.max_calls - self.calls_used)

    @property
    def exhausted(self) -> bool:
        return self.calls_used >= self.max_calls

    def acquire(self) -> None:
        """Summary: Count one remote attempt against the budget.

        Importance: Stops remote calls once the cap is reached.
        Alternatives: Let callers check and increment separately.
        """

        if self.exhausted:
            raise BudgetExhausted(self.max_calls)
        self.calls_used += 1

    def reset(self) -> None:
        self.calls_used = 0

    def observe(self, text: str, prefix_chars: int = RESET_PREFIX_CHARS) -> bool:
        """Summary: Track the draft prefix and reset when it changes.

        Importance: Treats an edited opening as a new draft with a fresh budget.
        Alternatives: Require callers to reset explicitly.
        """

        prefix = text[:prefix_chars]
        changed = self.tracked_prefix is not None and prefix != self.tracked_prefix
        if changed:
            self.reset()
        self.tracked_prefix = prefix
        return changed


@dataclass(frozen=True)
class BudgetSnapshot:
    """Summary: Budget counters captured after an operation."""

    calls_used: int
    calls_remaining: int
    max_calls: int


class BudgetRegistry:
    """Summary: Holds one CallBudget per composition session.

    Importance: Scopes budgets per session so concurrent users never share a counter.
    Alternatives: Keep a single process-wide counter.
    """

    def __init__(
        self,
        max_calls: int = MAX_CALLS_PER_EMAIL,
        prefix_chars: int = RESET_PREFIX_CHARS,
        max_sessions: int = MAX_SESSIONS,
    ) -> None:
        self._budgets: OrderedDict[str, CallBudget] = OrderedDict()
        self._lock = Lock()
        self._max_calls = max_calls
        self._prefix_chars = prefix_chars
        self._max_sessions = max(1, max_sessions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._budgets)

    def acquire(self, session_id: str, text: str) -> BudgetSnapshot:
        """Summary: Observe the draft text and count a remote attempt.

        Importance: Checking and incrementing under one lock keeps the cap exact.
        Alternatives: Use an atomic counter per session.
        """

        with self._lock:
            budget = self._get_or_create(session_id)
            budget.observe(text, self._prefix_chars)
            budget.acquire()
            return self._snapshot(budget)

    def snapshot(self, session_id: str) -> BudgetSnapshot:
        """Summary: Read a session's counters without registering the session."""

        with self._lock:
            budget = self._budgets.get(session_id)
            return self._snapshot(budget or CallBudget(max_calls=self._max_calls))

    def reset(self, session_id: str) -> BudgetSnapshot:
        with self._lock:
            budget = self._budgets.get(session_id)
            if budget is None:
                return self._snapshot(CallBudget(max_calls=self._max_calls))
            budget.reset()
            return self._snapshot(budget)

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._budgets.pop(session_id, None)

    def _get_or_create(self, session_id: str) -> CallBudget:
        # Called under lock. Least recently used sessions are evicted past the cap.
        budget = self._budgets.get(session_id)
        if budget is None:
            budget = CallBudget(max_calls=self._max_calls)
            self._budgets[session_id] = budget
            while len(self._budgets) > self._max_sessions:
                self._budgets.popitem(last=False)
        else:
            self._budgets.move_to_end(session_id)
        return budget

    @staticmethod
    def _snapshot(budget: CallBudget) -> BudgetSnapshot:
        return BudgetSnapshot(
            calls_used=budget.calls_used,
            calls_remaining=budget.calls_remaining,
            max_calls=budget.max_calls,
        )
