"""Unit tests for GET query normalization."""

import pytest

from eventgate.gateway.normalizer import coerce_number, normalize_get_payload
from eventgate.utils.helpers import is_valid_ga4_payload


class TestNormalizeGetPayload:
    """Test cases for normalize_get_payload()."""

    def test_collect_hit(self):
        """Test a typical gtag collect query."""
        query = {
            "v": "2",
            "tid": "G-ABC123",
            "gtm": "45je",
            "_p": "123",
            "cid": "555.666",
            "uid": "user-1",
            "en": "purchase",
            "dl": "https://shop.example.com/checkout",
            "dt": "Checkout",
            "cu": "EUR",
            "sid": "1700000000",
            "sct": "3",
            "_et": "1200",
            "ep.transaction_id": "T-1",
            "epn.value": "19.99",
        }

        payload = normalize_get_payload(query)

        assert payload == {
            "measurement_id": "G-ABC123",
            "client_id": "555.666",
            "user_id": "user-1",
            "events": [
                {
                    "name": "purchase",
                    "params": {
                        "page_location": "https://shop.example.com/checkout",
                        "page_title": "Checkout",
                        "currency": "EUR",
                        "session_id": "1700000000",
                        "session_count": 3,
                        "engagement_time_msec": 1200,
                        "transaction_id": "T-1",
                        "value": 19.99,
                    },
                }
            ],
        }
        assert is_valid_ga4_payload(payload)

    def test_missing_event_name_is_invalid(self):
        """Test that a query without 'en' fails validation."""
        payload = normalize_get_payload({"cid": "1"})

        assert payload == {"client_id": "1", "events": [{}]}
        assert not is_valid_ga4_payload(payload)

    def test_unknown_parameters_pass_through(self):
        """Test that unmapped keys land in params unchanged."""
        payload = normalize_get_payload({"en": "page_view", "custom": "42", "ep.count": "7"})

        assert payload["events"][0]["params"] == {"custom": "42", "count": "7"}

    def test_numeric_fields_only_coerced_when_numeric(self):
        """Test that non-numeric values of numeric fields stay strings."""
        payload = normalize_get_payload({"en": "purchase", "value": "abc", "price": "5", "epn.tax": "x"})

        assert payload["events"][0]["params"] == {"value": "abc", "price": 5, "tax": "x"}

    def test_coerce_number(self):
        """Test numeric coercion rules."""
        test_cases = [
            ("10", 10),
            ("-3", -3),
            ("9.99", 9.99),
            (" 7 ", 7),
            ("1e3", "1e3"),
            ("", ""),
            ("1.", "1."),
        ]

        for value, expected in test_cases:
            assert coerce_number(value) == expected, f"Failed for {value!r}"
