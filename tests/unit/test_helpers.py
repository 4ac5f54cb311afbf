"""Unit tests for utility helper functions."""

import pytest

from eventgate.utils.helpers import (
    create_request_meta,
    deep_copy_payload,
    error_body,
    get_client_ip,
    get_event_name,
    is_valid_ga4_payload,
    truncate_string,
)
from tests.fixtures import make_request


class TestRequestHelpers:
    """Test cases for request inspection helpers."""

    def test_get_client_ip(self):
        """Test client IP resolution order."""
        test_cases = [
            ({"X-Forwarded-For": "1.1.1.1, 2.2.2.2"}, ("10.0.0.1", 1), "1.1.1.1"),
            ({"X-Forwarded-For": " 3.3.3.3 "}, ("10.0.0.1", 1), "3.3.3.3"),
            ({"X-Real-IP": "4.4.4.4"}, ("10.0.0.1", 1), "10.0.0.1"),
            ({}, ("10.0.0.1", 1), "10.0.0.1"),
            ({}, None, "unknown"),
        ]

        for headers, client, expected in test_cases:
            assert get_client_ip(make_request(headers, client=client)) == expected, f"Failed for {headers}"

    def test_create_request_meta(self):
        """Test the template meta object."""
        meta = create_request_meta(make_request({"User-Agent": "Mozilla/5.0"}))

        assert meta["ip"] == "10.0.0.1"
        assert meta["user_agent"] == "Mozilla/5.0"
        assert isinstance(meta["timestamp"], int)

    def test_create_request_meta_default_user_agent(self):
        """Test the placeholder for a missing User-Agent."""
        assert create_request_meta(make_request())["user_agent"] == "unknown"


class TestPayloadHelpers:
    """Test cases for GA4 payload helpers."""

    def test_is_valid_ga4_payload(self):
        """Test the minimal payload shape check."""
        test_cases = [
            ({"events": [{"name": "purchase"}]}, True),
            ({"events": [{"name": ""}]}, True),
            ({"events": [{"name": "a"}, {"foo": 1}]}, True),
            ({"events": []}, False),
            ({"events": [{"name": 5}]}, False),
            ({"events": [{}]}, False),
            ({"events": ["purchase"]}, False),
            ({"events": {"name": "purchase"}}, False),
            ({}, False),
            ([], False),
            (None, False),
            ("events", False),
        ]

        for payload, expected in test_cases:
            assert is_valid_ga4_payload(payload) is expected, f"Failed for {payload!r}"

    def test_get_event_name(self):
        """Test reading events[0].name."""
        assert get_event_name({"events": [{"name": "login"}]}) == "login"
        assert get_event_name({"events": []}) is None

    def test_deep_copy_payload(self):
        """Test that passthrough copies are independent."""
        payload = {"events": [{"name": "a", "params": {"items": [1]}}]}

        copied = deep_copy_payload(payload)
        copied["events"][0]["params"]["items"].append(2)

        assert payload["events"][0]["params"]["items"] == [1]


class TestErrorBody:
    """Test cases for error body selection."""

    def test_debug_returns_message(self):
        """Test that debug mode exposes the real message."""
        assert error_body("All routes failed: Invalid API key", debug=True) == {
            "error": "All routes failed: Invalid API key"
        }

    def test_generic_messages(self):
        """Test keyword sniffing outside debug mode."""
        test_cases = [
            ("Invalid payload: missing events[0].name", "Bad Request"),
            ("Malformed JSON", "Bad Request"),
            ("Unauthorized client", "Forbidden"),
            ("Auth header missing", "Forbidden"),
            ("Request timeout", "Internal Server Error"),
            ("", "Internal Server Error"),
        ]

        for message, expected in test_cases:
            assert error_body(message) == {"error": expected}, f"Failed for {message!r}"


class TestStringHelpers:
    """Test cases for string helpers."""

    def test_truncate_string(self):
        """Test string truncation."""
        assert truncate_string("short", 10) == "short"
        assert truncate_string("a" * 20, 10) == "aaaaaaa..."
        assert truncate_string("", 10) == ""
