"""Unit tests for wildcard event matching."""

import pytest

from eventgate.gateway.routing.wildcard import MATCH_ALL, compile_pattern, matches


class TestWildcardMatching:
    """Test cases for the wildcard matcher."""

    def test_exact_patterns(self):
        """Test that patterns without '*' require string equality."""
        test_cases = [
            ("purchase", "purchase", True),
            ("purchase", "Purchase", False),
            ("purchase", "purchase2", False),
            ("purchase", "", False),
            ("page.view", "pageXview", False),
            ("a+b", "a+b", True),
            ("a+b", "aab", False),
            ("(x)", "(x)", True),
        ]

        for pattern, value, expected in test_cases:
            assert matches(pattern, value) is expected, f"Failed for {pattern!r} vs {value!r}"

    def test_match_all(self):
        """Test that '*' matches any event name."""
        for value in ["purchase", "", "a.b.c", "with space", "ünïcode"]:
            assert matches(MATCH_ALL, value) is True

    def test_prefix_wildcard_boundary(self):
        """Test prefix patterns require the separator and allow any suffix."""
        assert matches("purchase.*", "purchase.refund") is True
        assert matches("purchase.*", "purchase.") is True
        assert matches("purchase.*", "purchase") is False
        assert matches("purchase.*", "purchasex.refund") is False
        assert matches("purchase.*", "purchase.refund.partial") is True

    def test_inner_and_multiple_wildcards(self):
        """Test wildcards in the middle and more than one '*'."""
        assert matches("add_*_cart", "add_to_cart") is True
        assert matches("add_*_cart", "add__cart") is True
        assert matches("add_*_cart", "add_to_wishlist") is False
        assert matches("*.*", "a.b") is True
        assert matches("*.*", "ab") is False

    def test_wildcard_matches_across_lines(self):
        """Test that '*' also matches newline characters."""
        assert matches("a*", "a\nb") is True
        assert matches("add_*_cart", "add_to_cart\n") is False

    def test_compiled_patterns_are_cached(self):
        """Test that the same pattern compiles to the same regex object."""
        assert compile_pattern("view_*") is compile_pattern("view_*")
