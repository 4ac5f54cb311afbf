"""Unit tests for route and outcome models."""

import pytest
from pydantic import ValidationError

from eventgate.models.outcome import AuthStatus, OutcomeRecord, ProcessingStatus
from eventgate.models.route import ApiKeyAuth, IPWhitelistAuth, OriginWhitelistAuth, Route


class TestRouteModel:
    """Test cases for the Route model."""

    def test_route_defaults(self):
        """Test default values of optional route fields."""
        route = Route(
            event_match="purchase",
            target_url="https://example.com",
            auth={"type": "apikey", "key": "k"}
        )

        assert route.name == "unnamed"
        assert route.methods == ["POST"]
        assert route.template is None
        assert route.is_passthrough is True
        assert route.priority is None
        assert route.multi is False
        assert route.fallback is False
        assert route.headers == {}

    def test_auth_union_by_type(self):
        """Test that the auth type selects the strategy model."""
        test_cases = [
            ({"type": "apikey", "key": "k"}, ApiKeyAuth),
            ({"type": "whitelist", "origins": ["https://a.com"]}, OriginWhitelistAuth),
            ({"type": "ip_whitelist", "allowed_ips": ["1.2.3.4"]}, IPWhitelistAuth),
        ]

        for auth, expected_type in test_cases:
            route = Route(event_match="*", target_url="https://example.com", auth=auth)
            assert isinstance(route.auth, expected_type), f"Failed for {auth}"

    def test_invalid_auth(self):
        """Test unknown types and empty strategy fields are rejected."""
        for auth in [
            {"type": "oauth"},
            {"type": "apikey", "key": ""},
            {"type": "whitelist", "origins": []},
            {"type": "ip_whitelist"},
        ]:
            with pytest.raises(ValidationError):
                Route(event_match="*", target_url="https://example.com", auth=auth)

    def test_methods_are_upper_cased(self):
        """Test method normalization and method checks."""
        route = Route(
            event_match="*",
            target_url="https://example.com",
            auth={"type": "apikey", "key": "k"},
            methods=["get", "Post"]
        )

        assert route.methods == ["GET", "POST"]
        assert route.allows_method("get")
        assert not route.allows_method("PUT")

    def test_priority_must_be_integer(self):
        """Test that priority does not accept strings or floats."""
        for priority in ["1", 1.5]:
            with pytest.raises(ValidationError):
                Route(
                    event_match="*",
                    target_url="https://example.com",
                    auth={"type": "apikey", "key": "k"},
                    priority=priority
                )

    def test_blank_template_rejected(self):
        """Test that an empty template path is a validation error."""
        with pytest.raises(ValidationError):
            Route(
                event_match="*",
                target_url="https://example.com",
                auth={"type": "apikey", "key": "k"},
                template="  "
            )

    def test_route_is_immutable(self):
        """Test that routes cannot be modified after load."""
        route = Route(event_match="*", target_url="https://example.com", auth={"type": "apikey", "key": "k"})

        with pytest.raises(ValidationError):
            route.multi = True


class TestOutcomeRecord:
    """Test cases for OutcomeRecord serialization."""

    def test_to_dict(self):
        """Test enums become values and extra fields are merged."""
        record = OutcomeRecord(
            request_id="abc",
            source_ip="1.2.3.4",
            source_path="/g/collect",
            request_method="POST",
            processing_status=ProcessingStatus.FORWARDING_ERROR,
            auth_status=AuthStatus.SUCCESS,
            duration_ms=12.6,
            extra={"attempt": 1}
        )

        data = record.to_dict()

        assert data["processing_status"] == "forwarding_error"
        assert data["auth_status"] == "success"
        assert data["duration_ms"] == 13
        assert data["attempt"] == 1
        assert "extra" not in data
