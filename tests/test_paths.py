"""
Tests for dot-path access and wildcard matching.
"""

from logmask import paths


class TestPathAccess:
    """Test suite for get/has/set/delete."""

    def test_get_nested(self):
        """Should walk dict keys and list indices."""
        data = {"user": {"emails": ["a@x.com", "b@x.com"]}}
        assert paths.get(data, "user.emails.1") == "b@x.com"

    def test_get_missing_returns_default(self):
        """Missing paths should return the default."""
        assert paths.get({"a": 1}, "a.b", "nope") == "nope"

    def test_has_distinguishes_none(self):
        """A present None value still counts as present."""
        data = {"a": None}
        assert paths.has(data, "a") is True
        assert paths.has(data, "b") is False

    def test_non_string_keys(self):
        """Integer dict keys are addressable by their string form."""
        data = {1: {"secret": "x"}}
        assert paths.get(data, "1.secret") == "x"
        paths.set_path(data, "1.secret", "y")
        assert data == {1: {"secret": "y"}}

    def test_set_creates_intermediate_dicts(self):
        """set_path should create missing parents."""
        data = {}
        paths.set_path(data, "a.b.c", 1)
        assert data == {"a": {"b": {"c": 1}}}

    def test_set_list_index(self):
        """set_path should replace list items in place."""
        data = {"items": [1, 2, 3]}
        paths.set_path(data, "items.1", 20)
        assert data == {"items": [1, 20, 3]}

    def test_delete(self):
        """delete should remove keys and report whether they existed."""
        data = {"user": {"password": "x", "name": "Bob"}}
        assert paths.delete(data, "user.password") is True
        assert paths.delete(data, "user.password") is False
        assert data == {"user": {"name": "Bob"}}

    def test_delete_list_item(self):
        """delete should remove list items by index."""
        data = {"items": ["a", "b"]}
        assert paths.delete(data, "items.0") is True
        assert data == {"items": ["b"]}


class TestWildcards:
    """Test suite for wildcard matching and expansion."""

    def test_wildcard_matches_one_segment(self):
        """* matches exactly one segment."""
        assert paths.path_matches("users.0.email", "users.*.email") is True
        assert paths.path_matches("users.email", "users.*.email") is False
        assert paths.path_matches("users.0.1.email", "users.*.email") is False

    def test_multiple_wildcards(self):
        """Any number of wildcards at any position."""
        assert paths.path_matches("a.b.c", "*.b.*") is True

    def test_exact_match(self):
        """Exact patterns match only themselves."""
        assert paths.path_matches("a.b", "a.b") is True
        assert paths.path_matches("a.c", "a.b") is False

    def test_expand_in_data_order(self):
        """expand should list concrete paths present in the data."""
        data = {"users": [{"email": "a"}, {"name": "b"}, {"email": "c"}]}
        assert paths.expand(data, "users.*.email") == ["users.0.email", "users.2.email"]

    def test_expand_over_dict(self):
        """Wildcards also expand over dict keys."""
        data = {"accounts": {"main": {"iban": "x"}, "spare": {"iban": "y"}}}
        assert paths.expand(data, "accounts.*.iban") == ["accounts.main.iban", "accounts.spare.iban"]

    def test_is_wildcard(self):
        """Only paths containing "*" are wildcards."""
        assert paths.is_wildcard("a.*.b") is True
        assert paths.is_wildcard("a.b") is False

    def test_iter_leaf_paths(self):
        """Every leaf is yielded; empty containers count as leaves."""
        data = {"a": {"b": 1, "c": []}, "d": [True]}
        assert list(paths.iter_leaf_paths(data)) == [("a.b", 1), ("a.c", []), ("d.0", True)]
