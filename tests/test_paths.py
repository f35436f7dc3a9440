"""Tests for path composition."""

import pytest

from resourcemachine.paths import compose, to_route_path, trim

SEGMENTS = ["", "/", "foo", "/foo", "foo/", "/foo/", " foo ", "foo/bar", "/foo//bar/", None]


class TestTrim:
    def test_strips_slashes_and_whitespace(self):
        assert trim(" /frob/ ") == "frob"

    def test_root_is_empty(self):
        assert trim("/") == ""

    def test_none_is_empty(self):
        assert trim(None) == ""

    def test_collapses_inner_slashes(self):
        assert trim("a//b///c") == "a/b/c"


class TestCompose:
    """Test joining a prefix and a segment."""

    def test_joins_with_single_slash(self):
        assert compose("foo", "frob") == "foo/frob"

    def test_strips_slashes_on_both_sides(self):
        assert compose("/foo/", "/frob/") == "foo/frob"

    def test_empty_segment_returns_prefix(self):
        assert compose("foo", "") == "foo"
        assert compose("foo", None) == "foo"

    def test_empty_prefix_returns_segment(self):
        assert compose("", "/frob/") == "frob"
        assert compose(None, "frob") == "frob"

    def test_both_empty(self):
        assert compose("", "/") == ""

    def test_nested_composition(self):
        assert compose(compose("foo", "frob"), "foo") == "foo/frob/foo"

    @pytest.mark.parametrize("a", SEGMENTS)
    @pytest.mark.parametrize("b", SEGMENTS)
    def test_composing_empty_is_identity(self, a, b):
        assert compose(compose(a, b), "") == compose(a, b)

    @pytest.mark.parametrize("x", SEGMENTS)
    def test_empty_prefix_equals_trim(self, x):
        assert compose("", x) == trim(x)

    @pytest.mark.parametrize("a", SEGMENTS)
    @pytest.mark.parametrize("b", SEGMENTS)
    def test_never_doubled_or_trailing_slash(self, a, b):
        result = compose(a, b)
        assert "//" not in result
        assert not result.endswith("/")
        assert not result.startswith("/")


class TestRoutePath:
    def test_adds_leading_slash(self):
        assert to_route_path("foo/frob") == "/foo/frob"

    def test_empty_is_root(self):
        assert to_route_path("") == "/"
