"""
Utility helper functions for the event gateway.

This module provides request inspection, payload validation and error
body helpers used throughout the gateway.
"""

import copy
import time
from typing import Any, Dict, Optional

from starlette.requests import Request


GENERIC_BAD_REQUEST = "Bad Request"
GENERIC_FORBIDDEN = "Forbidden"
GENERIC_SERVER_ERROR = "Internal Server Error"

_BAD_REQUEST_KEYWORDS = ("bad request", "invalid", "malformed")
_FORBIDDEN_KEYWORDS = ("unauthorized", "forbidden", "auth")


def get_client_ip(request: Request) -> str:
    """
    Extract the client IP address from a request.

    The first entry of ``X-Forwarded-For`` wins, then the socket peer
    address.

    Args:
        request: Incoming request

    Returns:
        Client IP address or "unknown"
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"


def current_timestamp() -> int:
    """Return the current UNIX timestamp in whole seconds."""
    return int(time.time())


def create_request_meta(request: Request) -> Dict[str, Any]:
    """
    Build the ``meta`` object exposed to templates.

    Args:
        request: Incoming request

    Returns:
        Dictionary with ip, user_agent and timestamp
    """
    return {
        "ip": get_client_ip(request),
        "user_agent": request.headers.get("User-Agent") or "unknown",
        "timestamp": current_timestamp(),
    }


def is_valid_ga4_payload(payload: Any) -> bool:
    """
    Check that a payload has the minimal GA4 shape.

    Examples:
        {"events": [{"name": "purchase"}]} -> True
        {"events": []} -> False
        {"events": [{"name": 5}]} -> False
    """
    if not isinstance(payload, dict):
        return False

    events = payload.get("events")
    if not isinstance(events, list) or not events:
        return False

    first = events[0]
    return isinstance(first, dict) and isinstance(first.get("name"), str)


def get_event_name(payload: Any) -> Optional[str]:
    """Return ``events[0].name`` or None when the payload is not valid."""
    if is_valid_ga4_payload(payload):
        return payload["events"][0]["name"]
    return None


def error_body(message: str, debug: bool = False) -> Dict[str, str]:
    """
    Build a JSON error body.

    In debug mode the real message is returned. Otherwise a generic
    message is chosen from the category the message falls into.

    Args:
        message: Underlying error message
        debug: Whether detailed errors are enabled

    Returns:
        Dictionary with a single ``error`` key
    """
    if debug:
        return {"error": message}

    lowered = (message or "").lower()
    if any(keyword in lowered for keyword in _BAD_REQUEST_KEYWORDS):
        return {"error": GENERIC_BAD_REQUEST}
    if any(keyword in lowered for keyword in _FORBIDDEN_KEYWORDS):
        return {"error": GENERIC_FORBIDDEN}
    return {"error": GENERIC_SERVER_ERROR}


def deep_copy_payload(payload: Any) -> Any:
    """Return a structural deep copy of a JSON-like payload."""
    return copy.deepcopy(payload)


def truncate_string(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """
    Truncate a string to a maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length including suffix
        suffix: Suffix to add when truncating

    Returns:
        Truncated string
    """
    if not text or len(text) <= max_length:
        return text

    return text[:max_length - len(suffix)] + suffix
