#!/usr/bin/env python3
"""Resilience Patterns for per-app device lookups.

This module provides the two pieces the collector uses to survive a
throttled, partially failing Graph API:
    - next_delay: the backoff policy (server hint wins, else 2^attempt)
    - RetrySequence: an explicit state machine for one app's attempts

Example:
    sequence = RetrySequence(max_attempts=5)
    sequence.begin()
    while sequence.state is RetryState.ATTEMPTING:
        try:
            devices = await api.list_app_devices(app_id)
            sequence.succeed()
        except APIError as e:
            if sequence.fail():
                await asyncio.sleep(next_delay(sequence.attempt - 1, e.retry_after))
"""
from enum import Enum
from typing import Optional


# ============================================
# Backoff Policy
# ============================================

def next_delay(attempt: int, server_hint: Optional[int] = None) -> float:
    """Return the number of seconds to wait before the next attempt.

    A valid server hint (a positive whole number of seconds, e.g. from a
    Retry-After header) is returned verbatim. Otherwise the delay grows as
    2^attempt with no jitter and no cap.

    Args:
        attempt: 1-based number of the attempt that just failed
        server_hint: Optional Retry-After value in seconds

    Returns:
        Delay in seconds

    Raises:
        ValueError: If attempt is not a positive integer
    """
    if isinstance(attempt, bool) or not isinstance(attempt, int) or attempt < 1:
        raise ValueError(f"attempt must be a positive integer, got {attempt!r}")

    if (
        server_hint is not None
        and not isinstance(server_hint, bool)
        and isinstance(server_hint, int)
        and server_hint > 0
    ):
        return float(server_hint)

    return float(2 ** attempt)


# ============================================
# Retry State Machine
# ============================================

class RetryState(Enum):
    """Lifecycle of a single app's device lookup."""
    IDLE = "idle"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


class RetrySequence:
    """Attempt bookkeeping for one lookup.

    Transitions:
        IDLE --begin()--> ATTEMPTING(1)
        ATTEMPTING(n) --succeed()--> SUCCEEDED
        ATTEMPTING(n) --fail()--> ATTEMPTING(n+1)   while n < max_attempts
        ATTEMPTING(n) --fail()--> EXHAUSTED         when n == max_attempts

    SUCCEEDED and EXHAUSTED are terminal. A new sequence is created for every
    app, so nothing carries over between apps.

    Attributes:
        max_attempts: Total attempts allowed (including the first)
        attempt: Number of the current (or last) attempt, 0 while idle
        state: Current RetryState
    """

    def __init__(self, max_attempts: int):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.max_attempts = max_attempts
        self.attempt = 0
        self.state = RetryState.IDLE
        self.last_error: Optional[Exception] = None

    def _require(self, expected: RetryState, action: str) -> None:
        if self.state is not expected:
            raise RuntimeError(
                f"Cannot {action} from state {self.state.value} "
                f"(expected {expected.value})"
            )

    def begin(self) -> None:
        """Start the first attempt."""
        self._require(RetryState.IDLE, "begin")
        self.attempt = 1
        self.state = RetryState.ATTEMPTING

    def succeed(self) -> None:
        """Record that the current attempt returned a result."""
        self._require(RetryState.ATTEMPTING, "succeed")
        self.state = RetryState.SUCCEEDED

    def fail(self, error: Optional[Exception] = None) -> bool:
        """Record a failed attempt.

        Returns:
            True if another attempt is allowed, False once exhausted
        """
        self._require(RetryState.ATTEMPTING, "fail")
        self.last_error = error
        if self.attempt >= self.max_attempts:
            self.state = RetryState.EXHAUSTED
            return False
        self.attempt += 1
        return True

    @property
    def is_finished(self) -> bool:
        return self.state in (RetryState.SUCCEEDED, RetryState.EXHAUSTED)

    def __repr__(self) -> str:
        return (
            f"RetrySequence(state={self.state.value}, "
            f"attempt={self.attempt}/{self.max_attempts})"
        )


__all__ = [
    "RetrySequence",
    "RetryState",
    "next_delay",
]
