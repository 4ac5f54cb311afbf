"""
GET payload normalization.

Tag managers send GA4 hits as query strings on ``GET /g/collect``. This
module turns such a query into the same ``{"events": [...]}`` shape a
POST body has, so the rest of the pipeline does not care which one
arrived.
"""

import re
from typing import Any, Dict, Mapping, Union


TOP_LEVEL_PARAMETERS = {
    "cid": "client_id",
    "tid": "measurement_id",
    "uid": "user_id",
}

EVENT_PARAMETERS = {
    "dl": "page_location",
    "dt": "page_title",
    "dr": "page_referrer",
    "ul": "language",
    "sr": "screen_resolution",
    "cu": "currency",
    "sid": "session_id",
    "sct": "session_count",
    "seg": "session_engaged",
    "_et": "engagement_time_msec",
}

NUMERIC_PARAMETERS = {
    "value",
    "session_count",
    "engagement_time_msec",
    "quantity",
    "price",
    "tax",
    "shipping",
}

PROTOCOL_PARAMETERS = {"v", "_p", "gtm"}

EVENT_NAME_PARAMETER = "en"
STRING_PARAM_PREFIX = "ep."
NUMERIC_PARAM_PREFIX = "epn."

_INT_PATTERN = re.compile(r"^-?\d+$")
_FLOAT_PATTERN = re.compile(r"^-?\d+\.\d+$")


def coerce_number(value: str) -> Union[int, float, str]:
    """
    Convert a numeric query value, leaving anything else untouched.

    Examples:
        "10" -> 10
        "9.99" -> 9.99
        "abc" -> "abc"
    """
    text = value.strip()
    if _INT_PATTERN.match(text):
        return int(text)
    if _FLOAT_PATTERN.match(text):
        return float(text)
    return value


def normalize_get_payload(query: Mapping[str, str]) -> Dict[str, Any]:
    """
    Build a GA4 payload from collect query parameters.

    Args:
        query: Query parameters, one value per key

    Returns:
        Payload with top level ids and a single event
    """
    payload: Dict[str, Any] = {}
    event: Dict[str, Any] = {}
    params: Dict[str, Any] = {}

    for key, value in query.items():
        if key in PROTOCOL_PARAMETERS:
            continue

        if key in TOP_LEVEL_PARAMETERS:
            payload[TOP_LEVEL_PARAMETERS[key]] = value
        elif key == EVENT_NAME_PARAMETER:
            event["name"] = value
        elif key.startswith(NUMERIC_PARAM_PREFIX):
            params[key[len(NUMERIC_PARAM_PREFIX):]] = coerce_number(value)
        elif key.startswith(STRING_PARAM_PREFIX):
            params[key[len(STRING_PARAM_PREFIX):]] = value
        else:
            name = EVENT_PARAMETERS.get(key, key)
            params[name] = coerce_number(value) if name in NUMERIC_PARAMETERS else value

    if params:
        event["params"] = params

    payload["events"] = [event]
    return payload
