"""
JsonMasker - Mask JSON documents embedded in free text.

Log messages often carry serialized payloads ("Request failed: {...}").
The masker scans the text left to right, extracts every balanced {...} or
[...] structure, and when a structure parses as strict JSON the decoded
value is masked recursively and re-encoded in place. Anything that does
not parse is left exactly as it was for the pattern stage to handle.
"""

import json
import logging
from typing import Any, Callable, Optional

from .errors import MaskingOperationError

logger = logging.getLogger(__name__)

_CLOSING = {"{": "}", "[": "]"}


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant: {name}")


def decode_strict(text: str) -> Any:
    """Parse JSON, rejecting NaN and Infinity."""
    return json.loads(text, parse_constant=_reject_constant)


def encode_compact(data: Any) -> str:
    """Compact JSON with non-ASCII characters and slashes left unescaped."""
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"), allow_nan=False)


class JsonMasker:
    """
    Finds, masks and re-encodes JSON structures inside a message.

    Example:
        masker = JsonMasker(recursive_mask=lambda data: mask_everything(data))
        masker.process_message('Payload {"email":"a@b.com"} sent')
        # 'Payload {"email":"***EMAIL***"} sent'
    """

    def __init__(
        self,
        recursive_mask: Callable[[Any], Any],
        audit_logger: Optional[Callable[[str, Any, Any], None]] = None,
    ):
        self._recursive_mask = recursive_mask
        self.audit_logger = audit_logger

    def process_message(self, text: str) -> str:
        """
        Replace every embedded JSON structure with its masked encoding.

        Args:
            text: The message to scan.

        Returns:
            The message with embedded JSON masked; all other text untouched.
        """
        parts: list[str] = []
        length = len(text)
        position = 0
        literal_start = 0
        # Opener index -> closing index (or None) from earlier scans, per bracket type
        known: dict[str, dict[int, Optional[int]]] = {opening: {} for opening in _CLOSING}

        while position < length:
            opening = text[position]
            if opening in _CLOSING:
                matches = known[opening]
                if position not in matches:
                    matches.update(self.match_brackets(text, position))
                end = matches[position]
                if end is not None:
                    candidate = text[position:end + 1]
                    parts.append(text[literal_start:position])
                    parts.append(self.process_candidate(candidate))
                    position = end + 1
                    literal_start = position
                    continue
            position += 1

        parts.append(text[literal_start:])
        return "".join(parts)

    @staticmethod
    def match_brackets(text: str, start: int) -> dict[int, Optional[int]]:
        """
        Match every bracket of text[start]'s type that opens outside a string.

        One pass from start to the end of the text. Brackets inside
        double-quoted strings (honoring backslash escapes there) are ignored,
        as is the other bracket type.

        Returns:
            Opener index -> index of its closing bracket, or None when it
            never closes. Scanning from any opener in the result would give
            the same answer, so each is resolved once per message.
        """
        opening = text[start]
        closing = _CLOSING[opening]
        matches: dict[int, Optional[int]] = {}
        open_indexes: list[int] = []
        in_string = False
        escaped = False

        for index in range(start, len(text)):
            char = text[index]
            if escaped:
                escaped = False
                continue
            if char == "\\" and in_string:
                escaped = True
                continue
            if char == '"':
                in_string = not in_string
                continue
            if in_string:
                continue
            if char == opening:
                open_indexes.append(index)
                matches[index] = None
            elif char == closing and open_indexes:
                matches[open_indexes.pop()] = index
        return matches

    @classmethod
    def extract_balanced_structure(cls, text: str, start: int) -> Optional[str]:
        """
        Return the substring from start up to its matching closing bracket,
        or None when the structure never closes.
        """
        if start >= len(text) or text[start] not in _CLOSING:
            return None
        end = cls.match_brackets(text, start)[start]
        return None if end is None else text[start:end + 1]

    def process_candidate(self, candidate: str) -> str:
        """
        Mask a single candidate structure.

        Returns the re-encoded masked JSON, or the candidate unchanged if it
        is not valid JSON (including nesting too deep to decode) or cannot be
        re-encoded.
        """
        try:
            decoded = decode_strict(candidate)
        except (ValueError, RecursionError):
            return candidate

        masked = self._recursive_mask(decoded)
        encoded = self.encode_preserving_empty_objects(masked, candidate)
        if encoded is None:
            error = MaskingOperationError.json_masking_failed(candidate, "masked value is not JSON-serializable")
            logger.debug(f"Keeping original JSON: {error}")
            return candidate

        if encoded != candidate and self.audit_logger is not None:
            self.audit_logger("json_masked", candidate, encoded)
        return encoded

    def encode_preserving_empty_objects(self, data: Any, original: str) -> Optional[str]:
        """
        Encode masked data, keeping empty objects that were in the original.

        Returns None if the data is not JSON-serializable.
        """
        if data in ("", "0") or (isinstance(data, (dict, list)) and not data):
            if original in ("{}", "[]"):
                return original

        try:
            encoded = encode_compact(data)
        except (TypeError, ValueError, RecursionError):
            return None
        return self.fix_empty_objects(encoded, original)

    @staticmethod
    def fix_empty_objects(encoded: str, original: str) -> str:
        """
        Rewrite "[]" back to "{}" for empty objects lost during encoding.

        Only the deficit is rewritten (the number of "{}" in the original
        minus the number already present in the encoding), left to right.
        """
        deficit = original.count("{}") - encoded.count("{}")
        if deficit > 0 and encoded.count("[]") >= deficit:
            return encoded.replace("[]", "{}", deficit)
        return encoded
