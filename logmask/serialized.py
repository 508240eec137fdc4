"""
SerializedDataProcessor - Mask values inside serialized dumps in a message.

Services often log whole structures as text. Besides embedded JSON, these
dump formats are recognized and their string values masked in place:

    print_r      Array ( [email] => john@example.com )
    var_export   array ( 'email' => 'john@example.com', )
    serialize    a:1:{s:5:"email";s:16:"john@example.com";}
    repr         {'email': 'john@example.com'}

Each value goes through the string masker (usually an engine's pattern
stage). Keys are kept; only values change.
"""

import logging
import re
from typing import Any, Callable, Optional

from .json_masker import JsonMasker

logger = logging.getLogger(__name__)

StringMasker = Callable[[str], str]
AuditLogger = Callable[[str, Any, Any], None]

_PRINT_R_DETECT = re.compile(r"Array\s*\(\s*\[", re.S)
_PRINT_R_PAIR = re.compile(r"(\[\S+\])\s*=>\s*([^\n\[]+)")
_VAR_EXPORT_DETECT = re.compile(r"array\s*\(\s*['\"]?\w+['\"]?\s*=>", re.S)
_VAR_EXPORT_PAIR = re.compile(r"(['\"])(\w+)\1\s*=>\s*(['\"])([^'\"]+)\3")
_SERIALIZE_DETECT = re.compile(r"[aOCs]:\d+:", re.S)
_SERIALIZE_STRING = re.compile(r's:(\d+):"([^"]*)";')
_REPR_DETECT = re.compile(r"\{\s*'\w+'\s*:")
_REPR_PAIR = re.compile(r"'(\w+)'\s*:\s*'([^'\\\n]*)'")


class SerializedDataProcessor:
    """
    Finds serialized dumps in a message and masks their string values.

    Example:
        engine = MaskingEngine()
        processor = SerializedDataProcessor(engine.apply_patterns)
        processor.process('user=a:1:{s:5:"email";s:16:"john@example.com";}')
        # 'user=a:1:{s:5:"email";s:11:"***EMAIL***";}'
    """

    def __init__(self, string_masker: StringMasker, audit_logger: Optional[AuditLogger] = None):
        self._string_masker = string_masker
        self.audit_logger = audit_logger
        self._json = JsonMasker(lambda data: self._mask_recursive(data, "json"))

    @classmethod
    def from_engine(cls, engine: Any) -> "SerializedDataProcessor":
        """Mask with an engine's patterns and report to its audit logger."""
        return cls(engine.apply_patterns, engine.audit_logger)

    def set_audit_logger(self, audit_logger: Optional[AuditLogger]) -> None:
        self.audit_logger = audit_logger

    def process(self, message: str) -> str:
        """
        Mask every recognized dump in message.

        Args:
            message: Free text that may contain serialized data.

        Returns:
            The message with dumped values masked; everything else untouched.
        """
        if not message:
            return message

        original = message
        message = self._json.process_message(message)
        message = self.process_print_r(message)
        message = self.process_var_export(message)
        message = self.process_serialize(message)
        message = self.process_repr(message)
        if message != original:
            logger.debug(f"Masked serialized data in message ({len(original)} chars)")
        return message

    def process_print_r(self, message: str) -> str:
        if not _PRINT_R_DETECT.search(message):
            return message

        def replace(match: re.Match) -> str:
            key = match.group(1).strip("[]")
            value = match.group(2).strip()
            # Nested structures are handled by their own pairs
            if value == "Array":
                return match.group(0)
            masked = self._mask(f"print_r.{key}", value)
            if masked == value:
                return match.group(0)
            return f"[{key}] => {masked}"

        return _PRINT_R_PAIR.sub(replace, message)

    def process_var_export(self, message: str) -> str:
        if not _VAR_EXPORT_DETECT.search(message):
            return message

        def replace(match: re.Match) -> str:
            key_quote, key, value_quote, value = match.groups()
            masked = self._mask(f"var_export.{key}", value)
            if masked == value:
                return match.group(0)
            return f"{key_quote}{key}{key_quote} => {value_quote}{masked}{value_quote}"

        return _VAR_EXPORT_PAIR.sub(replace, message)

    def process_serialize(self, message: str) -> str:
        """Mask s:N:"..."; strings, rewriting N to the new UTF-8 byte length."""
        if not _SERIALIZE_DETECT.search(message):
            return message

        def replace(match: re.Match) -> str:
            declared, value = int(match.group(1)), match.group(2)
            if len(value.encode("utf-8")) != declared:
                return match.group(0)
            masked = self._mask("serialize.string", value)
            if masked == value:
                return match.group(0)
            return f's:{len(masked.encode("utf-8"))}:"{masked}";'

        return _SERIALIZE_STRING.sub(replace, message)

    def process_repr(self, message: str) -> str:
        """Mask single-quoted string values of dict reprs."""
        if not _REPR_DETECT.search(message):
            return message

        def replace(match: re.Match) -> str:
            key, value = match.groups()
            masked = self._mask(f"repr.{key}", value)
            if masked == value:
                return match.group(0)
            return f"'{key}': '{masked}'"

        return _REPR_PAIR.sub(replace, message)

    def _mask_recursive(self, data: Any, path: str) -> Any:
        if isinstance(data, str):
            return self._mask(path, data)
        if isinstance(data, dict):
            return {key: self._mask_recursive(value, f"{path}.{key}") for key, value in data.items()}
        if isinstance(data, list):
            return [self._mask_recursive(value, f"{path}.{index}") for index, value in enumerate(data)]
        return data

    def _mask(self, path: str, value: str) -> str:
        masked = self._string_masker(value)
        if masked != value and self.audit_logger is not None:
            self.audit_logger(path, value, masked)
        return masked
