"""
Pattern validation and compilation.

Masking patterns are supplied in delimited form, e.g. '/\\d{3}-\\d{2}-\\d{4}/i':
a delimiter character, the expression, the same delimiter again and optional
trailing modifiers. Before a pattern is accepted it goes through:

1. Structural checks (length, closing delimiter).
2. A battery of heuristics that reject shapes known to cause catastrophic
   backtracking. Python's `re` is a backtracking engine, so this guard is the
   only protection against a hostile pattern hanging a logging call.
3. A compile test and a match against the empty string.

Verdicts are memoized per validator. Validators are thread-safe.
"""

import logging
import re
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Union

from .errors import InvalidRegexPatternError

logger = logging.getLogger(__name__)

REDOS_REASON = "Potential ReDoS vulnerability: catastrophic backtracking risk"

# Shapes that trigger catastrophic backtracking, matched against the raw pattern text
_DANGEROUS_CONSTRUCTS: list[re.Pattern[str]] = [
    re.compile(p)
    for p in (
        # Nested quantifiers
        r"\([^)]*\+[^)]*\)\+",  # (a+)+
        r"\([^)]*\*[^)]*\)\*",  # (a*)*
        r"\([^)]*\+[^)]*\)\*",  # (a+)*
        r"\([^)]*\*[^)]*\)\+",  # (a*)+
        r"\([^)]*[+*][^)]*\)\{\d+(?:,\d*)?\}",  # (a+){1,10}
        # Alternation under a quantifier
        r"\([^|)]*\|[^|)]*\)\*",  # (a|a)*
        r"\([^|)]*\|[^|)]*\)\+",  # (a|a)+
        # Nested groups
        r"\(\([^)]*\+[^)]*\)[^)]*\)\+",  # ((a+)...)+
        # Character classes with stacked quantifiers
        r"\[[^\]]*\]\*\*",  # [a-z]**
        r"\[[^\]]*\]\+\+",  # [a-z]++
        r"\([^)]*\[[^\]]*\][^)]*\)\*",  # ([a-z])*
        r"\([^)]*\[[^\]]*\][^)]*\)\+",  # ([a-z])+
        # Lookaround followed by a quantified group
        r"\(\?=[^)]*\)\([^)]*\)\+",  # (?=...)(...)+
        r"\(\?<[^)]*\)\([^)]*\)\+",  # (?<...)(...)+
        # Stacked quantifiers on classes and dot
        r"\\w\+\*",  # \w+*
        r"\\w\*\+",  # \w*+
        r"\.\*\*",  # .**
        r"\.\+\+",  # .++
        r"\(\.\*\)\+",  # (.*)+
        r"\(\.\+\)\*",  # (.+)*
        # Legacy shapes
        r"\(\?.*\*.*\+",  # (?:...*...)+
        r"\(.*\*.*\).*\*",  # (...*...).*
        # Identical alternatives
        r"\(\.\*\s*\|\s*\.\*\)",  # (.*|.*)
        r"\(\.\+\s*\|\s*\.\+\)",  # (.+|.+)
        # Three or more overlapping alternatives under * or +
        r"\([a-zA-Z0-9]+(?:\s*\|\s*[a-zA-Z0-9]+){2,}\)\*",
        r"\([a-zA-Z0-9]+(?:\s*\|\s*[a-zA-Z0-9]+){2,}\)\+",
    )
]

_CLOSING_DELIMITERS = {"(": ")", "{": "}", "[": "]", "<": ">"}

_MODIFIER_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    "u": 0,
    "D": 0,
}

# $1, ${1} and \1 group references in replacement strings
_GROUP_REFERENCE = re.compile(r"\\(\d{1,2})|\$\{(\d{1,2})\}|\$(\d{1,2})")


def split_delimited(pattern: str) -> Optional[tuple[str, str, str]]:
    """
    Split a delimited pattern into (delimiter, body, modifiers).

    Returns None when the closing delimiter cannot be found after position 0.
    """
    if not pattern:
        return None
    delimiter = pattern[0]
    closing = _CLOSING_DELIMITERS.get(delimiter, delimiter)
    end = pattern.rfind(closing)
    if end <= 0:
        return None
    return delimiter, pattern[1:end], pattern[end + 1:]


def has_dangerous_construct(pattern: str) -> bool:
    """Return True if the pattern text matches any ReDoS heuristic."""
    return any(check.search(pattern) for check in _DANGEROUS_CONSTRUCTS)


def _compile(pattern: str) -> re.Pattern[str]:
    parts = split_delimited(pattern)
    if parts is None:
        raise re.error("missing closing delimiter")
    delimiter, body, modifiers = parts

    if delimiter.isalnum() or delimiter == "\\" or delimiter.isspace():
        raise re.error("delimiter must not be alphanumeric, backslash or whitespace")

    flags = 0
    for modifier in modifiers:
        if modifier not in _MODIFIER_FLAGS:
            raise re.error(f"unknown modifier {modifier!r}")
        flags |= _MODIFIER_FLAGS[modifier]
    if "u" not in modifiers:
        flags |= re.ASCII
    return re.compile(body, flags)


def compile_replacement(replacement: str) -> Callable[["re.Match[str]"], str]:
    """
    Build a replacement function from a replacement string.

    Group references ($1, ${1}, \\1) are substituted with the matched group
    (or the empty string when the group did not participate). Everything
    else is literal, so backslashes in mask tokens never need escaping.
    """
    parts: list[Union[str, int]] = []
    position = 0
    for ref in _GROUP_REFERENCE.finditer(replacement):
        if ref.start() > position:
            parts.append(replacement[position:ref.start()])
        parts.append(int(next(g for g in ref.groups() if g is not None)))
        position = ref.end()
    if position < len(replacement):
        parts.append(replacement[position:])

    if all(isinstance(part, str) for part in parts):
        literal = "".join(parts)  # type: ignore[arg-type]
        return lambda match: literal

    def expand(match: "re.Match[str]") -> str:
        out = []
        for part in parts:
            if isinstance(part, int):
                if part <= match.re.groups:
                    out.append(match.group(part) or "")
            else:
                out.append(part)
        return "".join(out)

    return expand


@dataclass(frozen=True)
class PatternRule:
    """A single ordered masking rule: delimited pattern and its replacement."""

    pattern: str
    replacement: str
    name: str = ""
    description: str = ""


@dataclass(frozen=True)
class CompiledRule:
    """A validated PatternRule, ready to apply."""

    pattern: str
    replacement: str
    regex: re.Pattern[str]
    expand: Callable[["re.Match[str]"], str] = field(repr=False, compare=False)

    def subn(self, text: str) -> tuple[str, int]:
        return self.regex.subn(self.expand, text)

    def sub(self, text: str) -> str:
        return self.regex.sub(self.expand, text)

    def search(self, text: str) -> bool:
        return self.regex.search(text) is not None


class PatternValidator:
    """
    Validates, memoizes and compiles delimited patterns.

    Example:
        validator = PatternValidator()
        validator.is_valid("/\\d{3}-\\d{2}-\\d{4}/")   # True
        validator.is_valid("/(a+)+/")                # False
        validator.check("/(a+)+/")                   # REDOS_REASON
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._verdicts: dict[str, Optional[str]] = {}
        self._compiled: dict[str, re.Pattern[str]] = {}

    def check(self, pattern: str) -> Optional[str]:
        """
        Return the reason a pattern is rejected, or None if it is valid.
        """
        with self._lock:
            if pattern in self._verdicts:
                return self._verdicts[pattern]

        reason, compiled = self._evaluate(pattern)

        with self._lock:
            self._verdicts[pattern] = reason
            if compiled is not None:
                self._compiled[pattern] = compiled
        logger.debug(f"Pattern {pattern!r} validated: {reason or 'ok'}")
        return reason

    def is_valid(self, pattern: str) -> bool:
        return self.check(pattern) is None

    def _evaluate(self, pattern: str) -> tuple[Optional[str], Optional[re.Pattern[str]]]:
        if not isinstance(pattern, str):
            return "Pattern must be a string", None
        if len(pattern) < 3:
            return "Pattern is too short", None
        if split_delimited(pattern) is None:
            return "Pattern must start and end with a delimiter", None
        if has_dangerous_construct(pattern):
            return REDOS_REASON, None

        try:
            compiled = _compile(pattern)
            compiled.search("")
        except (re.error, OverflowError, RecursionError, ValueError) as e:
            return f"Pattern compilation failed: {e}", None
        return None, compiled

    def cache_patterns(self, patterns: Iterable[str]) -> None:
        """Pre-warm the verdict cache."""
        for pattern in patterns:
            self.check(pattern)

    def validate_all(self, patterns: Iterable[str]) -> None:
        """
        Raises:
            InvalidRegexPatternError: On the first invalid or unsafe pattern.
        """
        for pattern in patterns:
            reason = self.check(pattern)
            if reason is not None:
                raise InvalidRegexPatternError.for_pattern(pattern, reason)

    def compile(self, pattern: str) -> re.Pattern[str]:
        """
        Return the compiled regex for a valid pattern.

        Raises:
            InvalidRegexPatternError: If the pattern is invalid or unsafe.
        """
        reason = self.check(pattern)
        if reason is not None:
            raise InvalidRegexPatternError.for_pattern(pattern, reason)
        with self._lock:
            compiled = self._compiled.get(pattern)
        if compiled is None:
            compiled = _compile(pattern)
            with self._lock:
                self._compiled[pattern] = compiled
        return compiled

    def compile_rule(self, pattern: str, replacement: str) -> CompiledRule:
        return CompiledRule(
            pattern=pattern,
            replacement=replacement,
            regex=self.compile(pattern),
            expand=compile_replacement(replacement),
        )

    def get_cache(self) -> dict[str, bool]:
        with self._lock:
            return {pattern: reason is None for pattern, reason in self._verdicts.items()}

    def clear_cache(self) -> None:
        with self._lock:
            self._verdicts.clear()
            self._compiled.clear()


# Shared validator for rules built before any engine exists (field configs, strategies)
shared_validator = PatternValidator()
