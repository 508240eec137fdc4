"""
Tests for RecursiveMasker.

Tests cover:
- String leaves through the text masker, other leaves through type masks
- Depth limiting and the max_depth_reached audit event
- Whole-container type masks vs. walking
- Context masking with processed paths and per-path audit
"""

from logmask.datatypes import DataTypeMasker
from logmask.recursive import CHUNK_SIZE, MAX_DEPTH_PATH, RecursiveMasker


def upper_secret(text):
    return text.replace("secret", "***")


def make_masker(masks=None, audit_logger=None, max_depth=100):
    return RecursiveMasker(upper_secret, DataTypeMasker(masks, audit_logger), audit_logger, max_depth)


class TestMask:
    """Test suite for mask()."""

    def test_string_goes_through_text_masker(self):
        """Strings are handed to the text masker."""
        assert make_masker().mask("my secret") == "my ***"

    def test_unchanged_string_falls_back_to_type_mask(self):
        """A string the text masker leaves alone gets the string mask."""
        masker = make_masker({"string": "***STRING***"})
        assert masker.mask("hello") == "***STRING***"
        assert masker.mask("secret") == "***"

    def test_nested_structures(self):
        """Every level of nesting is masked."""
        data = {"a": ["secret", {"b": "secret!"}], "n": 1}
        assert make_masker().mask(data) == {"a": ["***", {"b": "***!"}], "n": 1}

    def test_tuples_preserved(self):
        """Tuples come back as tuples."""
        assert make_masker().mask(("secret", 1)) == ("***", 1)

    def test_scalars_use_type_masks(self):
        """Non-string leaves fall through to type masks."""
        masker = make_masker({"integer": "0"})
        assert masker.mask(5) == 0

    def test_top_level_container_is_walked(self):
        """The value passed in is never replaced wholesale."""
        masker = make_masker({"array": "[]"})
        assert masker.mask(["secret", ["x"]]) == ["***", []]

    def test_recursive_spec_walks_nested_container(self):
        """A recursive object mask masks the contents instead."""
        masker = make_masker({"object": "recursive", "integer": "0"})
        assert masker.mask({"inner": {"n": 7}}) == {"inner": {"n": 0}}

    def test_large_lists_are_chunked(self):
        """Lists longer than one chunk are masked completely and in order."""
        data = ["secret"] * (CHUNK_SIZE * 2 + 5)
        masked = make_masker().mask(data)
        assert len(masked) == len(data)
        assert set(masked) == {"***"}


class TestDepthLimit:
    """Test suite for max_depth handling."""

    def test_boundary_returned_unchanged(self, audit_events, audit_logger):
        """Containers at max_depth are returned as is and audited once."""
        deep = {"c": "secret"}
        masker = make_masker(audit_logger=audit_logger, max_depth=2)

        result = masker.mask({"a": {"b": deep}, "x": "secret"})

        assert result["a"]["b"] is deep
        assert result["x"] == "***"
        depth_events = [e for e in audit_events if e.path == MAX_DEPTH_PATH]
        assert len(depth_events) == 1
        assert depth_events[0].original == 2
        assert depth_events[0].masked == "Recursion depth limit (2) reached"

    def test_one_event_per_boundary(self, audit_events, audit_logger):
        """Each boundary container produces its own event."""
        masker = make_masker(audit_logger=audit_logger, max_depth=1)
        masker.mask({"a": {"x": 1}, "b": [1], "c": "leaf"})

        assert [e.path for e in audit_events] == [MAX_DEPTH_PATH, MAX_DEPTH_PATH]

    def test_within_limit_no_event(self, audit_events, audit_logger):
        """Shallow structures never hit the depth limit."""
        masker = make_masker(audit_logger=audit_logger, max_depth=5)
        masker.mask({"a": {"b": "c"}})
        assert audit_events == []


class TestMaskContext:
    """Test suite for mask_context()."""

    def test_audits_changed_paths(self, audit_events, audit_logger):
        """Every changed leaf is audited under its dot path."""
        masker = make_masker(audit_logger=audit_logger)
        result = masker.mask_context({"user": {"note": "secret", "name": "Bob"}, "tags": ["secret"]})

        assert result == {"user": {"note": "***", "name": "Bob"}, "tags": ["***"]}
        assert [(e.path, e.masked) for e in audit_events] == [("user.note", "***"), ("tags.0", "***")]

    def test_processed_paths_skipped(self):
        """Processed paths and everything below them are left alone."""
        masker = make_masker()
        context = {"keep": {"inner": "secret"}, "mask": "secret"}
        result = masker.mask_context(context, processed={"keep"})

        assert result == {"keep": {"inner": "secret"}, "mask": "***"}

    def test_replaced_container_audited(self, audit_events, audit_logger):
        """A nested container replaced by a type mask is audited once."""
        masker = make_masker({"array": "[]"}, audit_logger)
        result = masker.mask_context({"ids": [1, 2]})

        assert result == {"ids": []}
        assert [(e.path, e.original, e.masked) for e in audit_events] == [("ids", [1, 2], [])]
