"""
Tests for SerializedDataProcessor.

Tests cover:
- print_r, var_export, serialize and dict repr dumps inside messages
- serialize length prefixes rewritten in UTF-8 bytes
- Embedded JSON
- Audit paths per format
"""

import pytest

from logmask import MaskingEngine, SerializedDataProcessor

SSN = {"/\\d{3}-\\d{2}-\\d{4}/": "***SSN***"}


@pytest.fixture
def processor(audit_logger):
    """Processor masking SSNs and auditing into audit_events."""
    return SerializedDataProcessor(MaskingEngine(patterns=SSN).apply_patterns, audit_logger)


class TestPrintR:
    """print_r style dumps."""

    def test_flat(self, processor, audit_events):
        """Values are masked and keys kept."""
        message = "Array\n(\n    [ssn] => 123-45-6789\n    [name] => John\n)\n"

        assert processor.process(message) == "Array\n(\n    [ssn] => ***SSN***\n    [name] => John\n)\n"
        assert [(e.path, e.original, e.masked) for e in audit_events] == [
            ("print_r.ssn", "123-45-6789", "***SSN***")
        ]

    def test_nested(self, processor):
        """Nested arrays are left to their own pairs."""
        message = "Array\n(\n    [user] => Array\n        (\n            [ssn] => 123-45-6789\n        )\n\n)\n"
        expected = "Array\n(\n    [user] => Array\n        (\n            [ssn] => ***SSN***\n        )\n\n)\n"
        assert processor.process(message) == expected

    def test_bracketed_text_without_dump(self, processor):
        """Bracketed text outside a dump is not treated as print_r."""
        assert processor.process("[ssn] => 123-45-6789") == "[ssn] => 123-45-6789"


class TestVarExport:
    """var_export style dumps."""

    def test_quoted_values(self, processor, audit_events):
        """Quoted values are masked; quotes and unquoted values are kept."""
        message = "array (\n  'ssn' => '123-45-6789',\n  'id' => 5,\n)"

        assert processor.process(message) == "array (\n  'ssn' => '***SSN***',\n  'id' => 5,\n)"
        assert audit_events[0].path == "var_export.ssn"

    def test_double_quotes(self, processor):
        message = 'array ("ssn" => "123-45-6789")'
        assert processor.process(message) == 'array ("ssn" => "***SSN***")'


class TestSerialize:
    """serialize() style dumps."""

    def test_length_rewritten(self, processor, audit_events):
        """Masked strings get their new length."""
        message = 'a:1:{s:3:"ssn";s:11:"123-45-6789";}'

        assert processor.process(message) == 'a:1:{s:3:"ssn";s:9:"***SSN***";}'
        assert audit_events[0].path == "serialize.string"

    def test_length_mismatch_untouched(self, processor):
        """A string whose declared length is wrong is not a serialized string."""
        message = 'a:1:{s:3:"ssn";s:12:"123-45-6789";}'
        assert processor.process(message) == message

    def test_length_counts_utf8_bytes(self):
        """Lengths are byte counts, so multi-byte output grows the prefix."""
        processor = SerializedDataProcessor(lambda text: "ü" if text == "x" else text)
        assert processor.process('s:1:"x";') == 's:2:"ü";'


class TestRepr:
    """Dict reprs."""

    def test_single_quoted_values(self, processor, audit_events):
        """String values are masked; other values are kept."""
        message = "payload={'ssn': '123-45-6789', 'n': 1}"

        assert processor.process(message) == "payload={'ssn': '***SSN***', 'n': 1}"
        assert audit_events[0].path == "repr.ssn"


class TestProcess:
    """The full pass over a message."""

    def test_embedded_json(self, processor, audit_events):
        """JSON values are masked with json.<key> audit paths."""
        message = 'body {"user":{"ssn":"123-45-6789"}}'

        assert processor.process(message) == 'body {"user":{"ssn":"***SSN***"}}'
        assert audit_events[0].path == "json.user.ssn"

    def test_plain_text_untouched(self, processor, audit_events):
        """A message without dumps comes back unchanged, even if it holds PII."""
        assert processor.process("SSN 123-45-6789") == "SSN 123-45-6789"
        assert audit_events == []

    def test_empty_message(self, processor):
        assert processor.process("") == ""

    def test_from_engine(self, audit_events, audit_logger):
        """from_engine() uses the engine's patterns and audit logger."""
        engine = MaskingEngine(patterns=SSN, audit_logger=audit_logger)
        processor = SerializedDataProcessor.from_engine(engine)

        assert processor.process('s:11:"123-45-6789";') == 's:9:"***SSN***";'
        assert (audit_events[-1].path, audit_events[-1].original) == ("serialize.string", "123-45-6789")
