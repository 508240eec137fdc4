"""
Tests for the rate limiter and audit sinks.

Tests cover:
- Sliding window admission (N allowed, N+1 denied)
- Window expiry and periodic sweeps, driven by a fake clock
- Key validation
- Operation classification and the rate-limited audit logger
- Failing sinks
"""

import logging

import pytest

from logmask.audit import (
    AuditEvent,
    RateLimitedAuditLogger,
    RateLimiter,
    SafeAuditSink,
    array_audit_logger,
    classify_operation,
    logging_audit_logger,
    null_audit_logger,
)
from logmask.config import AuditSettings
from logmask.errors import InvalidRateLimitConfigurationError


class TestRateLimiter:
    """Test suite for RateLimiter."""

    def test_nth_allowed_next_denied(self, clock):
        """The N-th call in a window is allowed, the (N+1)-th is denied."""
        limiter = RateLimiter(3, 60, clock=clock)

        assert [limiter.is_allowed("k") for _ in range(3)] == [True, True, True]
        assert limiter.is_allowed("k") is False

    def test_keys_are_independent(self, clock):
        """Each key has its own budget."""
        limiter = RateLimiter(1, 60, clock=clock)
        assert limiter.is_allowed("a") is True
        assert limiter.is_allowed("b") is True
        assert limiter.is_allowed("a") is False

    def test_window_slides(self, clock):
        """Requests older than the window no longer count."""
        limiter = RateLimiter(2, 60, clock=clock)
        limiter.is_allowed("k")
        clock.advance(30)
        limiter.is_allowed("k")
        assert limiter.is_allowed("k") is False

        clock.advance(30)
        assert limiter.is_allowed("k") is True
        assert limiter.is_allowed("k") is False

    def test_stats(self, clock):
        """Stats report usage, remaining budget and reset time."""
        limiter = RateLimiter(5, 60, clock=clock)
        limiter.is_allowed("k")
        clock.advance(10)
        limiter.is_allowed("k")

        stats = limiter.get_stats("k")
        assert stats.current_requests == 2
        assert stats.remaining_requests == 3
        assert stats.time_until_reset == 50
        assert limiter.get_remaining_requests("unused") == 5
        assert limiter.get_time_until_reset("unused") == 0

    def test_sweep_drops_abandoned_keys(self, clock):
        """A periodic sweep purges keys whose timestamps all expired."""
        limiter = RateLimiter(5, 60, cleanup_interval=120, clock=clock)
        limiter.is_allowed("old")
        clock.advance(200)
        limiter.is_allowed("new")

        assert limiter.memory_stats()["total_keys"] == 1

    def test_reset(self, clock):
        """reset() forgets every key."""
        limiter = RateLimiter(1, 60, clock=clock)
        limiter.is_allowed("k")
        limiter.reset()
        assert limiter.is_allowed("k") is True

    def test_clear_key(self, clock):
        """clear_key() forgets a single key."""
        limiter = RateLimiter(1, 60, clock=clock)
        limiter.is_allowed("k")
        limiter.clear_key("k")
        assert limiter.is_allowed("k") is True

    @pytest.mark.parametrize("key", ["", "   ", "x" * 251, "bad\x00key"])
    def test_invalid_keys(self, key):
        """Empty, oversized and control-character keys are rejected."""
        with pytest.raises(InvalidRateLimitConfigurationError):
            RateLimiter(1, 60).is_allowed(key)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_requests": 0, "window_seconds": 60},
            {"max_requests": 1, "window_seconds": 0},
            {"max_requests": 1, "window_seconds": 60, "cleanup_interval": 10},
            {"max_requests": True, "window_seconds": 60},
        ],
    )
    def test_invalid_limits(self, kwargs):
        """Out-of-range limits are a configuration error."""
        with pytest.raises(InvalidRateLimitConfigurationError):
            RateLimiter(**kwargs)


class TestClassifyOperation:
    """Test suite for audit path classification."""

    @pytest.mark.parametrize(
        "path,operation",
        [
            ("json_masked", "json_operations"),
            ("conditional_skip", "conditional_operations"),
            ("regex_error", "regex_operations"),
            ("preg_replace_error", "regex_operations"),
            ("user.email_masking_error", "error_operations"),
            ("user.email", "general_operations"),
        ],
    )
    def test_classification(self, path, operation):
        """Audit paths map to their operation bucket."""
        assert classify_operation(path) == operation


class TestRateLimitedAuditLogger:
    """Test suite for RateLimitedAuditLogger."""

    def test_drops_excess_and_warns_once(self, clock, audit_events, audit_logger):
        """Events past the limit are dropped; one rate_limit_exceeded is emitted per window."""
        limited = RateLimitedAuditLogger(audit_logger, max_requests=2, window_seconds=60, clock=clock)

        for index in range(5):
            limited(f"field{index}", "orig", "masked")

        assert [e.path for e in audit_events] == ["field0", "field1", "rate_limit_exceeded"]
        assert audit_events[2].original == "field2"

    def test_buckets_by_operation_type(self, clock, audit_events, audit_logger):
        """Different operation types have separate budgets."""
        limited = RateLimitedAuditLogger(audit_logger, max_requests=1, window_seconds=60, clock=clock)
        limited("user.email", 1, 2)
        limited("json_masked", 1, 2)

        assert [e.path for e in audit_events] == ["user.email", "json_masked"]

    def test_window_reopens(self, clock, audit_events, audit_logger):
        """Events are forwarded again once the window has passed."""
        limited = RateLimitedAuditLogger(audit_logger, max_requests=1, window_seconds=60, clock=clock)
        limited("a", 1, 2)
        limited("b", 1, 2)
        clock.advance(61)
        limited("c", 1, 2)

        assert [e.path for e in audit_events] == ["a", "rate_limit_exceeded", "c"]

    def test_stats_and_clear(self, clock):
        """Stats are keyed by operation bucket and can be cleared."""
        limited = RateLimitedAuditLogger(None, max_requests=10, window_seconds=60, clock=clock)
        limited("a", 1, 2)
        limited("regex_error", 1, 2)

        stats = limited.get_rate_limit_stats()
        assert stats["audit:general_operations"]["current_requests"] == 1
        assert stats["audit:regex_operations"]["current_requests"] == 1

        limited.clear_rate_limit_data()
        assert limited.get_rate_limit_stats() == {}

    def test_is_operation_allowed(self, clock):
        """All operation types share the general budget for this check."""
        limited = RateLimitedAuditLogger(None, max_requests=1, window_seconds=60, clock=clock)
        assert limited.is_operation_allowed("x") is True
        assert limited.is_operation_allowed("y") is False

    def test_create_from_profile(self):
        """Named profiles set the limits."""
        limited = RateLimitedAuditLogger.create(None, "strict")
        assert limited.rate_limiter.max_requests == 50
        assert limited.rate_limiter.window_seconds == 60

    def test_from_settings(self, monkeypatch):
        """LOGMASK_AUDIT_* variables configure the limiter."""
        monkeypatch.setenv("LOGMASK_AUDIT_MAX_REQUESTS", "7")
        monkeypatch.setenv("LOGMASK_AUDIT_WINDOW_SECONDS", "30")

        limited = RateLimitedAuditLogger.from_settings(None)

        assert limited.rate_limiter.max_requests == 7
        assert limited.rate_limiter.window_seconds == 30

    def test_from_settings_profile(self):
        """A profile in the settings overrides the explicit limits."""
        limited = RateLimitedAuditLogger.from_settings(None, AuditSettings(profile="relaxed"))
        assert limited.rate_limiter.max_requests == 200


class TestSinks:
    """Test suite for the bundled sinks."""

    def test_array_audit_logger(self):
        """Events are collected as AuditEvent tuples."""
        events = []
        array_audit_logger(events)("a", 1, 2)
        assert isinstance(events[0], AuditEvent)
        assert (events[0].path, events[0].original, events[0].masked) == ("a", 1, 2)

    def test_rate_limited_array_logger(self):
        """rate_limited=True wraps the sink."""
        events = []
        sink = array_audit_logger(events, rate_limited=True)
        assert isinstance(sink, RateLimitedAuditLogger)

    def test_null_audit_logger(self):
        """The null sink accepts and drops events."""
        assert null_audit_logger()("a", 1, 2) is None

    def test_logging_audit_logger_hides_original(self, caplog):
        """Only the path and the masked value reach the log."""
        sink = logging_audit_logger()
        with caplog.at_level(logging.INFO, logger="logmask.audit"):
            sink("user.ssn", "123-45-6789", "***USSSN***")

        assert "user.ssn" in caplog.text
        assert "***USSSN***" in caplog.text
        assert "123-45-6789" not in caplog.text

    def test_safe_sink_swallows_errors(self, caplog):
        """A raising sink is logged, not propagated."""

        def broken(path, original, masked):
            raise RuntimeError("sink down")

        sink = SafeAuditSink.wrap(broken)
        with caplog.at_level(logging.WARNING, logger="logmask.audit"):
            sink("a", 1, 2)

        assert "Audit logger failed: sink down" in caplog.text

    def test_wrap_is_idempotent(self):
        """Wrapping twice returns the same sink; None stays None."""
        sink = SafeAuditSink.wrap(null_audit_logger())
        assert SafeAuditSink.wrap(sink) is sink
        assert SafeAuditSink.wrap(None) is None
