#!/usr/bin/env python3
"""Tests for the backoff policy and the per-app retry state machine.

Tests cover:
    - next_delay: server hint precedence, exponential fallback, invalid input
    - RetrySequence state transitions (IDLE -> ATTEMPTING -> SUCCEEDED/EXHAUSTED)
"""
import sys

import pytest

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])
from src.appinv.api.exceptions import RateLimitError
from src.appinv.api.resilience import RetrySequence, RetryState, next_delay


# ============================================
# Backoff Policy Tests
# ============================================

class TestNextDelay:
    """Test the backoff policy."""

    def test_server_hint_returned_verbatim(self):
        assert next_delay(1, 5) == 5
        assert next_delay(4, 5) == 5

    def test_hint_can_be_shorter_than_backoff(self):
        """A valid hint wins even when 2^attempt would be longer."""
        assert next_delay(6, 1) == 1

    def test_exponential_without_hint(self):
        assert next_delay(1) == 2
        assert next_delay(2) == 4
        assert next_delay(3) == 8
        assert next_delay(5) == 32

    def test_no_cap(self):
        assert next_delay(12) == 4096

    def test_returns_float(self):
        assert isinstance(next_delay(3), float)
        assert isinstance(next_delay(3, 7), float)

    @pytest.mark.parametrize("hint", [0, -3, True, "5", 2.5])
    def test_invalid_hint_falls_back(self, hint):
        assert next_delay(3, hint) == 8

    @pytest.mark.parametrize("attempt", [0, -1, True, 1.0, "2"])
    def test_invalid_attempt_raises(self, attempt):
        with pytest.raises(ValueError):
            next_delay(attempt)


# ============================================
# RetrySequence Tests
# ============================================

class TestRetrySequence:
    """Test RetrySequence state transitions."""

    def test_initial_state_is_idle(self):
        sequence = RetrySequence(max_attempts=3)
        assert sequence.state is RetryState.IDLE
        assert sequence.attempt == 0
        assert not sequence.is_finished

    def test_begin_starts_first_attempt(self):
        sequence = RetrySequence(max_attempts=3)
        sequence.begin()
        assert sequence.state is RetryState.ATTEMPTING
        assert sequence.attempt == 1

    def test_succeed_is_terminal(self):
        sequence = RetrySequence(max_attempts=3)
        sequence.begin()
        sequence.succeed()
        assert sequence.state is RetryState.SUCCEEDED
        assert sequence.is_finished

    def test_fail_advances_until_exhausted(self):
        sequence = RetrySequence(max_attempts=3)
        sequence.begin()

        assert sequence.fail() is True
        assert sequence.attempt == 2
        assert sequence.fail() is True
        assert sequence.attempt == 3
        assert sequence.fail() is False

        assert sequence.state is RetryState.EXHAUSTED
        assert sequence.attempt == 3
        assert sequence.is_finished

    def test_single_attempt_exhausts_immediately(self):
        sequence = RetrySequence(max_attempts=1)
        sequence.begin()
        assert sequence.fail() is False
        assert sequence.state is RetryState.EXHAUSTED

    def test_fail_records_last_error(self):
        sequence = RetrySequence(max_attempts=2)
        sequence.begin()
        error = RateLimitError("throttled", retry_after=5)
        sequence.fail(error)
        assert sequence.last_error is error

    def test_success_after_failures(self):
        sequence = RetrySequence(max_attempts=5)
        sequence.begin()
        sequence.fail()
        sequence.fail()
        sequence.succeed()
        assert sequence.state is RetryState.SUCCEEDED
        assert sequence.attempt == 3

    def test_invalid_transitions_raise(self):
        sequence = RetrySequence(max_attempts=2)
        with pytest.raises(RuntimeError):
            sequence.succeed()
        with pytest.raises(RuntimeError):
            sequence.fail()

        sequence.begin()
        with pytest.raises(RuntimeError):
            sequence.begin()

        sequence.succeed()
        with pytest.raises(RuntimeError):
            sequence.fail()

    def test_max_attempts_must_be_positive(self):
        with pytest.raises(ValueError):
            RetrySequence(max_attempts=0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
