"""
Audit sinks and the sliding-window rate limiter that protects them.

An audit logger is any callable taking (path, original, masked). The engine
calls it once per mutation; on a busy service that can be many calls per
record, so RateLimitedAuditLogger groups paths into a few operation types
and admits at most N events per type per window.
"""

import logging
import re
import threading
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Optional

from .errors import AuditSinkError, InvalidRateLimitConfigurationError
from .sanitize import sanitize_error_message

if TYPE_CHECKING:
    from .config import AuditSettings

logger = logging.getLogger(__name__)

AuditLogger = Callable[[str, Any, Any], None]

MAX_KEY_LENGTH = 250
MAX_REQUESTS_LIMIT = 1_000_000
MAX_WINDOW_SECONDS = 86_400
MIN_CLEANUP_INTERVAL = 60
MAX_CLEANUP_INTERVAL = 604_800

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

# name -> (max_requests, window_seconds)
RATE_LIMIT_PROFILES: dict[str, tuple[int, int]] = {
    "strict": (50, 60),
    "default": (100, 60),
    "relaxed": (200, 60),
    "testing": (1000, 60),
}

OPERATION_TYPES = (
    "json_operations",
    "conditional_operations",
    "regex_operations",
    "error_operations",
    "general_operations",
)


@dataclass
class AuditEvent:
    """One masking mutation. masked is None when the value was removed."""

    path: str
    original: Any
    masked: Any
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class RateLimitStats:
    current_requests: int
    remaining_requests: int
    time_until_reset: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class RateLimiter:
    """
    Sliding-window rate limiter keyed by string.

    Each key holds the timestamps of its admitted requests. A request is
    admitted while fewer than max_requests timestamps fall inside the
    trailing window. Every cleanup_interval seconds all keys are swept and
    empty ones dropped, so abandoned keys do not accumulate.

    Args:
        max_requests: Requests admitted per window (1 to 1,000,000).
        window_seconds: Window length (1 to 86,400).
        cleanup_interval: Seconds between global sweeps (60 to 604,800).
        clock: Returns the current time in seconds.

    Raises:
        InvalidRateLimitConfigurationError: If any limit is out of range.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        cleanup_interval: int = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        _check_range("max_requests", max_requests, 1, MAX_REQUESTS_LIMIT)
        _check_range("window_seconds", window_seconds, 1, MAX_WINDOW_SECONDS)
        _check_range("cleanup_interval", cleanup_interval, MIN_CLEANUP_INTERVAL, MAX_CLEANUP_INTERVAL)

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.cleanup_interval = cleanup_interval
        self._clock = clock
        self._lock = threading.Lock()
        self._requests: dict[str, deque[float]] = {}
        self._last_cleanup = clock()

    def is_allowed(self, key: str) -> bool:
        """Admit and record a request for key if the window has room."""
        _validate_key(key)
        with self._lock:
            now = self._clock()
            self._cleanup_if_due(now)
            bucket = self._requests.setdefault(key, deque())
            self._expire(bucket, now)
            if len(bucket) < self.max_requests:
                bucket.append(now)
                return True
            return False

    def get_stats(self, key: str) -> RateLimitStats:
        _validate_key(key)
        with self._lock:
            now = self._clock()
            bucket = self._requests.get(key)
            if bucket:
                self._expire(bucket, now)
            current = len(bucket) if bucket else 0
            return RateLimitStats(
                current_requests=current,
                remaining_requests=max(0, self.max_requests - current),
                time_until_reset=self._time_until_reset(bucket, now),
            )

    def get_remaining_requests(self, key: str) -> int:
        return self.get_stats(key).remaining_requests

    def get_time_until_reset(self, key: str) -> int:
        return self.get_stats(key).time_until_reset

    def clear_key(self, key: str) -> None:
        _validate_key(key)
        with self._lock:
            self._requests.pop(key, None)

    def reset(self) -> None:
        """Forget every key."""
        with self._lock:
            self._requests.clear()
            self._last_cleanup = self._clock()

    def memory_stats(self) -> dict[str, Any]:
        with self._lock:
            total_keys = len(self._requests)
            total_timestamps = sum(len(bucket) for bucket in self._requests.values())
            return {
                "total_keys": total_keys,
                "total_timestamps": total_timestamps,
                "estimated_memory_bytes": total_keys * 50 + total_timestamps * 8,
                "last_cleanup": self._last_cleanup,
                "cleanup_interval": self.cleanup_interval,
            }

    def _expire(self, bucket: deque, now: float) -> None:
        window_start = now - self.window_seconds
        while bucket and bucket[0] <= window_start:
            bucket.popleft()

    def _time_until_reset(self, bucket: Optional[deque], now: float) -> int:
        if not bucket:
            return 0
        return max(0, int(bucket[0] + self.window_seconds - now))

    def _cleanup_if_due(self, now: float) -> None:
        if now - self._last_cleanup < self.cleanup_interval:
            return
        for key in list(self._requests):
            bucket = self._requests[key]
            self._expire(bucket, now)
            if not bucket:
                del self._requests[key]
        self._last_cleanup = now
        logger.debug(f"Rate limiter sweep done, {len(self._requests)} keys kept")


def _check_range(name: str, value: Any, minimum: int, maximum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRateLimitConfigurationError.invalid_type(name, "int", value)
    if not minimum <= value <= maximum:
        raise InvalidRateLimitConfigurationError.for_parameter(
            name, value, f"Must be between {minimum:,} and {maximum:,}"
        )


def _validate_key(key: str) -> None:
    if not isinstance(key, str) or not key.strip():
        raise InvalidRateLimitConfigurationError("Rate limiting key cannot be empty")
    if len(key) > MAX_KEY_LENGTH:
        raise InvalidRateLimitConfigurationError(
            f"Rate limiting key length ({len(key)}) exceeds maximum ({MAX_KEY_LENGTH} characters)"
        )
    if _CONTROL_CHARS.search(key):
        raise InvalidRateLimitConfigurationError("Rate limiting key cannot contain control characters")


def classify_operation(path: str) -> str:
    """Group an audit path into one of OPERATION_TYPES."""
    if "json_" in path:
        return "json_operations"
    if "conditional_" in path:
        return "conditional_operations"
    if "regex_" in path or "preg_replace_" in path:
        return "regex_operations"
    if "error" in path:
        return "error_operations"
    return "general_operations"


class RateLimitedAuditLogger:
    """
    Wraps an audit logger with per-operation-type rate limiting.

    Denied events are dropped. The first denial per operation type in a
    window is reported to the wrapped logger as "rate_limit_exceeded".

    Example:
        events = []
        audit = RateLimitedAuditLogger.create(array_audit_logger(events), "strict")
        engine = MaskingEngine(audit_logger=audit)
    """

    def __init__(
        self,
        audit_logger: Optional[AuditLogger],
        max_requests: int = 100,
        window_seconds: int = 60,
        cleanup_interval: int = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._audit_logger = audit_logger
        self.rate_limiter = RateLimiter(max_requests, window_seconds, cleanup_interval, clock)
        self._warning_limiter = RateLimiter(1, window_seconds, cleanup_interval, clock)

    def __call__(self, path: str, original: Any, masked: Any) -> None:
        key = self._key_for(path)
        if self.rate_limiter.is_allowed(key):
            if self._audit_logger is not None:
                self._audit_logger(path, original, masked)
        else:
            self._log_rate_limit_exceeded(path, key)

    @staticmethod
    def _key_for(path: str) -> str:
        return f"audit:{classify_operation(path)}"

    def _log_rate_limit_exceeded(self, path: str, key: str) -> None:
        if not self._warning_limiter.is_allowed(f"warning:{key}"):
            return
        stats = self.rate_limiter.get_stats(key).to_dict()
        logger.warning(f"Audit rate limit exceeded for {key}")
        if self._audit_logger is not None:
            self._audit_logger(
                "rate_limit_exceeded",
                path,
                f"Audit logging rate limit exceeded for operation type: {key}. Stats: {stats}",
            )

    def is_operation_allowed(self, path: str) -> bool:
        """Consume one slot for path's operation type, without logging."""
        return self.rate_limiter.is_allowed(self._key_for(path))

    def get_rate_limit_stats(self) -> dict[str, dict[str, int]]:
        """Stats for every operation type with requests in the current window."""
        stats = {}
        for operation in OPERATION_TYPES:
            key = f"audit:{operation}"
            current = self.rate_limiter.get_stats(key)
            if current.current_requests > 0:
                stats[key] = current.to_dict()
        return stats

    def clear_rate_limit_data(self) -> None:
        self.rate_limiter.reset()
        self._warning_limiter.reset()

    @classmethod
    def create(cls, audit_logger: Optional[AuditLogger], profile: str = "default", **kwargs: Any) -> "RateLimitedAuditLogger":
        """Build from a named profile: strict, default, relaxed or testing."""
        max_requests, window_seconds = RATE_LIMIT_PROFILES.get(profile, RATE_LIMIT_PROFILES["default"])
        return cls(audit_logger, max_requests, window_seconds, **kwargs)

    @classmethod
    def from_settings(
        cls, audit_logger: Optional[AuditLogger], settings: Optional["AuditSettings"] = None
    ) -> "RateLimitedAuditLogger":
        """Build from LOGMASK_AUDIT_* environment settings."""
        if settings is None:
            from .config import AuditSettings

            settings = AuditSettings()
        if settings.profile:
            return cls.create(audit_logger, settings.profile, cleanup_interval=settings.cleanup_interval)
        return cls(audit_logger, settings.max_requests, settings.window_seconds, settings.cleanup_interval)


class SafeAuditSink:
    """
    Calls an audit logger and swallows anything it raises.

    A failing sink is logged as a warning; masking continues.
    """

    def __init__(self, sink: AuditLogger):
        self.sink = sink

    @classmethod
    def wrap(cls, sink: Optional[AuditLogger]) -> Optional["SafeAuditSink"]:
        if sink is None or isinstance(sink, SafeAuditSink):
            return sink
        return cls(sink)

    def __call__(self, path: str, original: Any, masked: Any) -> None:
        try:
            self.sink(path, original, masked)
        except Exception as e:
            error = AuditSinkError(
                f"Audit logger failed: {sanitize_error_message(str(e))}", {"path": path}
            )
            logger.warning(str(error))


def array_audit_logger(storage: list, rate_limited: bool = False) -> AuditLogger:
    """Append an AuditEvent to storage for every call."""

    def append(path: str, original: Any, masked: Any) -> None:
        storage.append(AuditEvent(path, original, masked))

    return RateLimitedAuditLogger.create(append, "testing") if rate_limited else append


def null_audit_logger() -> AuditLogger:
    def discard(path: str, original: Any, masked: Any) -> None:
        return None

    return discard


def logging_audit_logger(target: Optional[logging.Logger] = None, level: int = logging.INFO) -> AuditLogger:
    """
    Route audit events into the logging tree.

    Only the path and masked value are logged; the original value is the
    data being protected and never leaves the process this way.
    """
    target = target or logging.getLogger("logmask.audit")

    def emit(path: str, original: Any, masked: Any) -> None:
        target.log(level, f"Masked {path}: {masked!r}")

    return emit
