"""
Recovery - What to emit when masking itself fails.

FailureMode picks the policy, FallbackMaskStrategy produces the replacement
value, and RetryStrategy retries transient failures with exponential backoff
before falling back.

    FAIL_OPEN    the original value, unmasked
    FAIL_CLOSED  a fixed "***REDACTED***"
    FAIL_SAFE    a type-aware placeholder such as "***STRING*** (42 chars)"
"""

import logging
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

from .datatypes import default_masks
from .errors import ConfigurationError, PatternEvaluationError
from .sanitize import sanitize_error_message
from .values import ValueKind, kind_of

logger = logging.getLogger(__name__)

MASK_MASKED = "***MASKED***"
MASK_REDACTED = "***REDACTED***"

# Strings up to this length get the bare placeholder; longer ones mention their length
_SHORT_STRING = 10


class FailureMode(str, Enum):
    FAIL_OPEN = "fail_open"
    FAIL_CLOSED = "fail_closed"
    FAIL_SAFE = "fail_safe"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @classmethod
    def recommended(cls) -> "FailureMode":
        return cls.FAIL_SAFE

    @classmethod
    def parse(cls, value: Union[str, "FailureMode"]) -> "FailureMode":
        """
        Raises:
            ConfigurationError: If value is not a known mode.
        """
        try:
            return cls(value)
        except ValueError:
            raise ConfigurationError.for_parameter(
                "failure_mode", value, f"Must be one of: {', '.join(mode.value for mode in cls)}"
            ) from None


_DESCRIPTIONS = {
    FailureMode.FAIL_OPEN: "Return original value on failure (risky)",
    FailureMode.FAIL_CLOSED: "Return fully redacted value on failure (strict)",
    FailureMode.FAIL_SAFE: "Apply conservative fallback mask on failure (balanced)",
}


class FallbackMaskStrategy:
    """
    Produces the value emitted in place of one that could not be masked.

    Args:
        custom_fallbacks: Value kind -> fallback, checked first in FAIL_SAFE
            mode. The key "closed" overrides the FAIL_CLOSED mask.
        default_fallback: Used for every kind when preserve_type is False.
        preserve_type: Whether FAIL_SAFE picks a placeholder per value kind.

    Example:
        fallback = FallbackMaskStrategy.default()
        fallback.get_fallback("a very long secret", FailureMode.FAIL_SAFE)
        # "***STRING*** (18 chars)"
    """

    def __init__(
        self,
        custom_fallbacks: Optional[dict[str, Any]] = None,
        default_fallback: str = MASK_MASKED,
        preserve_type: bool = True,
    ):
        self.custom_fallbacks = dict(custom_fallbacks or {})
        self.default_fallback = default_fallback
        self.preserve_type = preserve_type
        self._placeholders = default_masks()

    @classmethod
    def default(cls) -> "FallbackMaskStrategy":
        return cls()

    @classmethod
    def strict(cls, mask: str = MASK_REDACTED) -> "FallbackMaskStrategy":
        """Always the same mask, whatever the value."""
        return cls(default_fallback=mask, preserve_type=False)

    @classmethod
    def with_mappings(cls, mappings: dict[str, Any]) -> "FallbackMaskStrategy":
        return cls(custom_fallbacks=mappings)

    def get_fallback(self, value: Any, mode: FailureMode = FailureMode.FAIL_SAFE) -> Any:
        if mode is FailureMode.FAIL_OPEN:
            return value
        if mode is FailureMode.FAIL_CLOSED:
            return self.custom_fallbacks.get("closed", MASK_REDACTED)
        return self._safe_fallback(value)

    def _safe_fallback(self, value: Any) -> Any:
        kind = kind_of(value)
        if kind.value in self.custom_fallbacks:
            return self.custom_fallbacks[kind.value]
        if not self.preserve_type:
            return self.default_fallback

        placeholder = self._placeholders[kind.value]
        if kind is ValueKind.STRING and len(value) > _SHORT_STRING:
            return f"{placeholder} ({len(value)} chars)"
        if kind in (ValueKind.ARRAY, ValueKind.OBJECT) and value:
            return f"{placeholder} ({len(value)} items)"
        if kind is ValueKind.RESOURCE:
            return f"{placeholder} ({type(value).__name__})"
        return placeholder

    @property
    def configuration(self) -> dict[str, Any]:
        return {
            "custom_fallbacks": dict(self.custom_fallbacks),
            "default_fallback": self.default_fallback,
            "preserve_type": self.preserve_type,
        }


@dataclass(frozen=True)
class RecoveryResult:
    """Outcome of running an operation under a RecoveryStrategy."""

    SUCCESS = "success"
    RECOVERED = "recovered"
    FALLBACK = "fallback"
    FAILED = "failed"

    value: Any
    outcome: str
    attempts: int = 1
    total_duration_ms: float = 0.0
    last_error: Optional[str] = None

    @classmethod
    def success(cls, value: Any, duration_ms: float = 0.0) -> "RecoveryResult":
        return cls(value, cls.SUCCESS, 1, duration_ms)

    @classmethod
    def recovered(cls, value: Any, attempts: int, duration_ms: float = 0.0) -> "RecoveryResult":
        return cls(value, cls.RECOVERED, attempts, duration_ms)

    @classmethod
    def fallback(cls, value: Any, attempts: int, error: str, duration_ms: float = 0.0) -> "RecoveryResult":
        return cls(value, cls.FALLBACK, attempts, duration_ms, error)

    @classmethod
    def failed(cls, original: Any, attempts: int, error: str, duration_ms: float = 0.0) -> "RecoveryResult":
        return cls(original, cls.FAILED, attempts, duration_ms, error)

    def is_success(self) -> bool:
        return self.outcome in (self.SUCCESS, self.RECOVERED)

    def used_fallback(self) -> bool:
        return self.outcome == self.FALLBACK

    def is_failed(self) -> bool:
        return self.outcome == self.FAILED

    def needed_retry(self) -> bool:
        return self.attempts > 1

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "outcome": self.outcome,
            "attempts": self.attempts,
            "duration_ms": round(self.total_duration_ms, 3),
        }
        if self.last_error is not None:
            data["error"] = self.last_error
        return data


class RecoveryStrategy(ABC):
    """Runs a masking operation and decides what to return if it fails."""

    @abstractmethod
    def execute(
        self,
        operation: Callable[[], Any],
        original: Any,
        path: str,
        audit_logger: Optional[Callable[[str, Any, Any], None]] = None,
    ) -> RecoveryResult:
        pass

    @abstractmethod
    def is_recoverable(self, error: BaseException) -> bool:
        """Whether retrying could help."""
        pass

    @property
    @abstractmethod
    def failure_mode(self) -> FailureMode:
        pass


class RetryStrategy(RecoveryStrategy):
    """
    Retry with exponential backoff and jitter, then fall back.

    Delays are base_delay_ms * 2**(attempt - 1) plus up to 25% jitter,
    capped at max_delay_ms. Configuration errors, pattern evaluation errors
    and RecursionError are permanent and end the retries at once.

    Example:
        result = RetryStrategy.fast().execute(lambda: lookup(token), token, "user.token")
        if result.used_fallback():
            ...
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay_ms: int = 10,
        max_delay_ms: int = 100,
        failure_mode: FailureMode = FailureMode.FAIL_SAFE,
        fallback_mask: Optional[str] = None,
        fallback: Optional[FallbackMaskStrategy] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ConfigurationError.for_parameter("max_attempts", max_attempts, "Must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self._failure_mode = FailureMode.parse(failure_mode)
        self.fallback_mask = fallback_mask
        self._fallback = fallback or FallbackMaskStrategy.default()
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def default(cls) -> "RetryStrategy":
        return cls()

    @classmethod
    def no_retry(cls, failure_mode: FailureMode = FailureMode.FAIL_SAFE) -> "RetryStrategy":
        return cls(max_attempts=1, failure_mode=failure_mode)

    @classmethod
    def fast(cls) -> "RetryStrategy":
        return cls(max_attempts=2, base_delay_ms=5, max_delay_ms=20)

    @classmethod
    def thorough(cls) -> "RetryStrategy":
        return cls(max_attempts=5, base_delay_ms=20, max_delay_ms=200, failure_mode=FailureMode.FAIL_CLOSED)

    @property
    def failure_mode(self) -> FailureMode:
        return self._failure_mode

    @property
    def configuration(self) -> dict[str, Any]:
        return {
            "max_attempts": self.max_attempts,
            "base_delay_ms": self.base_delay_ms,
            "max_delay_ms": self.max_delay_ms,
            "failure_mode": self._failure_mode.value,
            "fallback_mask": self.fallback_mask or "[auto]",
        }

    def is_recoverable(self, error: BaseException) -> bool:
        return not isinstance(error, (ConfigurationError, PatternEvaluationError, RecursionError))

    def execute(
        self,
        operation: Callable[[], Any],
        original: Any,
        path: str,
        audit_logger: Optional[Callable[[str, Any, Any], None]] = None,
    ) -> RecoveryResult:
        """
        Run operation until it succeeds, the error is permanent, or the
        attempts run out. Never raises.
        """
        started = self._clock()
        last_error = "No error captured"

        for attempt in range(1, self.max_attempts + 1):
            try:
                value = operation()
            except Exception as e:
                last_error = sanitize_error_message(f"{type(e).__name__}: {e}")
                will_retry = attempt < self.max_attempts and self.is_recoverable(e)
                logger.debug(f"Masking attempt {attempt} for '{path}' failed: {last_error}")
                if not will_retry:
                    break
                if audit_logger is not None:
                    audit_logger("recovery_retry", {"path": path, "attempt": attempt}, {"error": last_error})
                self._sleep(self._delay_seconds(attempt))
                continue

            duration = self._elapsed_ms(started)
            if attempt == 1:
                return RecoveryResult.success(value, duration)
            return RecoveryResult.recovered(value, attempt, duration)

        fallback = self.fallback_value(original)
        logger.warning(f"Masking '{path}' failed, applying {self._failure_mode.value} fallback: {last_error}")
        if audit_logger is not None:
            audit_logger(
                "recovery_fallback",
                {"path": path, "mode": self._failure_mode.value},
                {"error": last_error, "fallback_applied": True},
            )
        return RecoveryResult.fallback(fallback, attempt, last_error, self._elapsed_ms(started))

    def fallback_value(self, original: Any) -> Any:
        if self.fallback_mask is not None:
            return self.fallback_mask
        return self._fallback.get_fallback(original, self._failure_mode)

    def _delay_seconds(self, attempt: int) -> float:
        delay = self.base_delay_ms * (2 ** (attempt - 1))
        delay += random.randint(0, int(delay * 0.25))
        return min(delay, self.max_delay_ms) / 1000.0

    def _elapsed_ms(self, started: float) -> float:
        return (self._clock() - started) * 1000.0
