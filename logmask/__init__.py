"""
logmask - PII masking for structured log records

This package masks sensitive data (PII, credentials, etc.) in log records
before they are persisted or shipped. Every rule is supplied by
configuration; nothing is inferred.

Architecture:
    - MaskingEngine: Core engine that orchestrates the masking pipeline
    - ComplianceProfile: Abstract base class for named pattern sets
    - profiles/: Directory containing the built-in pattern sets
    - strategies/: Opt-in, priority-ranked masking strategies
    - MaskingEngineBuilder / MaskingPlugin: Fluent construction and hooks
    - recovery: Fail-open, fail-closed or fail-safe output when masking fails
    - SerializedDataProcessor / StreamingProcessor: Dumps in messages, large streams

Example:
    from logmask import MaskingEngine, Record

    engine = MaskingEngine()
    record = engine.process(Record("Request from 10.0.0.1"))
    # record.message: "Request from ***IPv4***"
"""

from .audit import (
    AuditEvent,
    RateLimitedAuditLogger,
    RateLimiter,
    array_audit_logger,
    logging_audit_logger,
    null_audit_logger,
)
from .base_profile import ComplianceProfile
from .builder import MaskingEngineBuilder
from .conditions import (
    ConditionalRule,
    channel_rule,
    context_field_rule,
    context_value_rule,
    level_rule,
    min_level_rule,
)
from .config import AuditSettings, MaskingConfig
from .engine import MaskingEngine, get_default_engine
from .errors import (
    AuditSinkError,
    ConfigurationError,
    InvalidRateLimitConfigurationError,
    InvalidRegexPatternError,
    MaskingError,
    MaskingOperationError,
    PatternEvaluationError,
    StreamingOperationError,
)
from .fields import FieldMaskConfig
from .patterns import PatternRule, PatternValidator
from .plugins import MaskingPlugin, PluginAwareEngine
from .records import Level, Record
from .recovery import FailureMode, FallbackMaskStrategy, RecoveryResult, RecoveryStrategy, RetryStrategy
from .serialized import SerializedDataProcessor
from .streaming import StreamingProcessor

__all__ = [
    "MaskingEngine",
    "get_default_engine",
    "MaskingEngineBuilder",
    "MaskingPlugin",
    "PluginAwareEngine",
    "MaskingConfig",
    "AuditSettings",
    "ComplianceProfile",
    "PatternRule",
    "PatternValidator",
    "FieldMaskConfig",
    "ConditionalRule",
    "level_rule",
    "min_level_rule",
    "channel_rule",
    "context_field_rule",
    "context_value_rule",
    "Record",
    "Level",
    "AuditEvent",
    "RateLimiter",
    "RateLimitedAuditLogger",
    "array_audit_logger",
    "null_audit_logger",
    "logging_audit_logger",
    "MaskingError",
    "ConfigurationError",
    "InvalidRegexPatternError",
    "InvalidRateLimitConfigurationError",
    "PatternEvaluationError",
    "MaskingOperationError",
    "AuditSinkError",
    "StreamingOperationError",
    "FailureMode",
    "FallbackMaskStrategy",
    "RecoveryResult",
    "RecoveryStrategy",
    "RetryStrategy",
    "SerializedDataProcessor",
    "StreamingProcessor",
]
