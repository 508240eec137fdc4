"""
MaskingEngine - Core engine for masking sensitive data in log records.

This engine orchestrates:
1. The conditional gate (should this record be masked at all?)
2. JSON-aware masking of the message, then the ordered pattern list
3. Field-path rules and custom callbacks on the context
4. Recursive masking (patterns and data type masks) of the remaining context
5. Audit reporting of every mutation

Thread-safe and designed for high-throughput log processing.
"""

import logging
from typing import Any, Callable, Iterable, Iterator, Optional

from .audit import AuditLogger, SafeAuditSink
from .base_profile import ComplianceProfile
from .conditions import ConditionalGate
from .config import MaskingConfig
from .datatypes import DataTypeMasker
from .errors import PatternEvaluationError
from .fields import ContextProcessor
from .json_masker import JsonMasker
from .patterns import CompiledRule, PatternValidator
from .profiles import DEFAULT_PROFILE
from .records import Record
from .recovery import FailureMode, FallbackMaskStrategy
from .recursive import RecursiveMasker
from .sanitize import sanitize_error_message
from .values import copy_containers

logger = logging.getLogger(__name__)


class MaskingEngine:
    """
    Engine for masking sensitive data in log records.

    Uses a layered approach:
    1. Message: embedded JSON is masked structurally, then every pattern
       is applied in order over the whole text
    2. Context: field rules and callbacks first, then patterns and data type
       masks over whatever those left untouched

    Example:
        engine = MaskingEngine()

        # Basic usage
        record = engine.process(Record("Request from 10.0.0.1", {"email": "john@example.com"}))
        # record.message: "Request from ***IPv4***"
        # record.context: {"email": "***EMAIL***"}

        # Explicit patterns
        engine = MaskingEngine(patterns={"/\\d{3}-\\d{2}-\\d{4}/": "***SSN***"})
        engine.mask_message("SSN: 123-45-6789")
        # "SSN: ***SSN***"

        # Field rules
        engine = MaskingEngine(
            patterns={},
            field_paths={"user.password": FieldMaskConfig.remove()},
        )

    Thread Safety:
        process() may be called concurrently from many threads. The
        configuration is immutable after construction; load_profile() and
        set_audit_logger() should only be called during initialization.
    """

    def __init__(
        self,
        patterns: Optional[Any] = None,
        field_paths: Optional[dict[str, Any]] = None,
        custom_callbacks: Optional[dict[str, Callable[[Any], Any]]] = None,
        audit_logger: Optional[AuditLogger] = None,
        max_depth: int = 100,
        data_type_masks: Optional[dict[str, str]] = None,
        conditional_rules: Optional[Any] = None,
        on_rule_error: str = "mask",
        validator: Optional[PatternValidator] = None,
        failure_mode: Any = FailureMode.FAIL_SAFE,
        fallback: Optional[FallbackMaskStrategy] = None,
    ):
        """
        Initialize the MaskingEngine.

        Args:
            patterns: Ordered pattern -> replacement mapping (or PatternRules).
                      None loads the default profile; pass {} for a clean slate.
            field_paths: Dot path (may contain "*") -> FieldMaskConfig.
            custom_callbacks: Exact dot path -> callable(value).
            audit_logger: Optional (path, original, masked) callback.
            max_depth: Nesting depth at which traversal stops (1 to 1000).
            data_type_masks: Value kind -> mask spec.
            conditional_rules: Name -> predicate(Record), AND-combined.
            on_rule_error: "mask" or "skip" when a conditional rule raises.
            validator: Pattern validator; a private one is created if omitted.
            failure_mode: What process() emits if masking a record fails:
                "fail_safe" (type-aware placeholders), "fail_closed" or "fail_open".
            fallback: Produces the placeholders; FallbackMaskStrategy.default()
                if omitted.

        Raises:
            ConfigurationError: If any option is invalid. Nothing is built.
        """
        self._validator = validator or PatternValidator()
        self.config = MaskingConfig.build(
            validator=self._validator,
            patterns=patterns,
            field_paths=field_paths,
            custom_callbacks=custom_callbacks,
            audit_logger=audit_logger,
            max_depth=max_depth,
            data_type_masks=data_type_masks,
            conditional_rules=conditional_rules,
            on_rule_error=on_rule_error,
            failure_mode=failure_mode,
        )

        self._profiles: dict[str, ComplianceProfile] = {}
        self._rules: list[CompiledRule] = []
        self._audit_logger = SafeAuditSink.wrap(self.config.audit_logger)
        self._fallback = fallback or FallbackMaskStrategy.default()

        self._datatypes = DataTypeMasker(self.config.data_type_masks, self._audit_logger)
        self._recursive = RecursiveMasker(
            self.mask_message, self._datatypes, self._audit_logger, self.config.max_depth
        )
        self._json = JsonMasker(self._recursive.mask, self._audit_logger)
        self._context = ContextProcessor(
            self.config.field_paths,
            self.config.custom_callbacks,
            self._audit_logger,
            validator=self._validator,
        )
        self._gate = ConditionalGate(
            self.config.conditional_rules, self._audit_logger, self.config.on_rule_error
        )

        if patterns is None:
            self.load_profile(DEFAULT_PROFILE)
        else:
            self._compile_rules()

        logger.info(
            f"MaskingEngine ready: {len(self._rules)} patterns, "
            f"{len(self.config.field_paths)} field rules, "
            f"{len(self.config.custom_callbacks)} callbacks"
        )

    # -- configuration ---------------------------------------------------

    @property
    def patterns(self) -> dict[str, str]:
        """Every active pattern -> replacement, in application order."""
        return {rule.pattern: rule.replacement for rule in self._rules}

    @property
    def audit_logger(self) -> Optional[AuditLogger]:
        return self._audit_logger

    def _compile_rules(self) -> None:
        table = dict(self.config.patterns)
        for profile in self._profiles.values():
            for pattern, replacement in profile.as_mapping().items():
                table.setdefault(pattern, replacement)

        self._validator.validate_all(table)
        self._validator.cache_patterns(table)
        self._rules = [self._validator.compile_rule(p, r) for p, r in table.items()]
        self._context.pattern_masker = self.apply_patterns if self._rules else None

    def load_profile(self, profile: ComplianceProfile) -> None:
        """
        Load a compliance profile into the engine.

        Args:
            profile: A ComplianceProfile instance to add.

        Raises:
            InvalidRegexPatternError: If any of its patterns is rejected.

        Note:
            If a profile with the same name already exists, it will be replaced.
        """
        previous = self._profiles.get(profile.name)
        self._profiles[profile.name] = profile
        try:
            self._compile_rules()
        except Exception:
            if previous is None:
                del self._profiles[profile.name]
            else:
                self._profiles[profile.name] = previous
            raise
        logger.info(f"Loaded compliance profile: {profile.name}")

    def unload_profile(self, profile_name: str) -> bool:
        """
        Remove a compliance profile from the engine.

        Args:
            profile_name: The name of the profile to remove.

        Returns:
            True if profile was removed, False if not found.
        """
        if profile_name in self._profiles:
            del self._profiles[profile_name]
            self._compile_rules()
            logger.info(f"Unloaded compliance profile: {profile_name}")
            return True
        return False

    def list_profiles(self) -> list[str]:
        """Return a list of loaded profile names."""
        return list(self._profiles.keys())

    def set_audit_logger(self, audit_logger: Optional[AuditLogger]) -> None:
        """Replace the audit logger used by every stage."""
        sink = SafeAuditSink.wrap(audit_logger)
        self._audit_logger = sink
        for component in (self._datatypes, self._recursive, self._json, self._context, self._gate):
            component.audit_logger = sink

    # -- masking ---------------------------------------------------------

    def process(self, record: Record) -> Record:
        """
        Mask a record.

        Args:
            record: The record to mask. It is never modified.

        Returns:
            A new Record with message and context masked, or the record itself
            when a conditional rule skips it. If masking fails, the record
            produced by the configured failure mode.
        """
        if self._gate and not self._gate.should_apply(record):
            return record

        try:
            message = self.mask_message(record.message)
            context = self.mask_context(record.context)
        except Exception as e:
            # Masking must never break the caller's logging call
            mode = self.config.failure_mode
            error = sanitize_error_message(f"{type(e).__name__}: {e}")
            logger.error(f"Masking failed, applying {mode.value} fallback: {error}")
            self._audit("masking_error", type(e).__name__, error)
            return self.fallback_record(record)

        return record.with_(message=message, context=context)

    def fallback_record(self, record: Record) -> Record:
        """
        The record emitted when masking fails: the record itself for
        fail_open, otherwise every top-level value and the message replaced
        by a fallback placeholder.
        """
        mode = self.config.failure_mode
        if mode is FailureMode.FAIL_OPEN:
            return record
        message = self._fallback.get_fallback(record.message, mode)
        context = {key: self._fallback.get_fallback(value, mode) for key, value in (record.context or {}).items()}
        return record.with_(message=str(message), context=context)

    def __call__(self, record: Record) -> Record:
        return self.process(record)

    def process_many(self, records: Iterable[Record]) -> Iterator[Record]:
        """Lazily mask a stream of records."""
        for record in records:
            yield self.process(record)

    def mask_message(self, text: str) -> str:
        """
        Mask a message: embedded JSON first, then the ordered pattern list.

        A result that comes out empty is discarded in favor of the input.

        Example:
            engine.mask_message('Login {"email":"a@b.com"} from 10.0.0.1')
            # 'Login {"email":"***EMAIL***"} from ***IPv4***'
        """
        if not text:
            return text
        masked = self._json.process_message(text)
        masked = self.apply_patterns(masked)
        return masked if masked else text

    def mask_context(self, context: dict[str, Any]) -> dict[str, Any]:
        """
        Mask a context and return the masked copy.

        Field rules run first, callbacks next, and everything they did not
        touch is then masked recursively.
        """
        if not context:
            return {} if context is None else copy_containers(context)

        masked = copy_containers(context)
        processed = self._context.mask_field_paths(masked) if self._context.field_paths else set()
        if self._context.custom_callbacks:
            processed |= self._context.process_custom_callbacks(masked, processed)
        return self._recursive.mask_context(masked, processed)

    def recursive_mask(self, value: Any, depth: int = 0) -> Any:
        """Mask any value (string, scalar or container) without auditing leaves."""
        return self._recursive.mask(value, depth)

    def apply_patterns(self, text: str) -> str:
        """
        Apply every pattern in order; later patterns see earlier output.

        A pattern that fails is skipped and reported as "regex_error".
        """
        for rule in self._rules:
            try:
                result, count = rule.subn(text)
            except (RecursionError, MemoryError, IndexError, ValueError) as e:
                error = PatternEvaluationError.for_pattern(rule.pattern, sanitize_error_message(str(e)))
                logger.warning(str(error))
                self._audit("regex_error", rule.pattern, sanitize_error_message(str(error)))
                continue
            if count > 0:
                text = result
        return text

    def _audit(self, path: str, original: Any, masked: Any) -> None:
        if self._audit_logger is not None:
            self._audit_logger(path, original, masked)


# Singleton instance for convenience
_default_engine: Optional[MaskingEngine] = None


def get_default_engine() -> MaskingEngine:
    """
    Get the default MaskingEngine instance.

    This is a convenience function for simple use cases.
    For more control, instantiate MaskingEngine directly.
    """
    global _default_engine
    if _default_engine is None:
        _default_engine = MaskingEngine()
    return _default_engine
