"""
Outcome models for the event gateway.

These records describe what happened to a request and to each route
executed on its behalf. They live only for the duration of one request.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ProcessingStatus(str, Enum):
    """Processing status recorded for a route execution or a rejection."""
    SUCCESS = "success"
    PASSTHROUGH = "passthrough"
    AUTH_FAILED = "auth_failed"
    TRANSFORM_ERROR = "transform_error"
    FORWARDING_ERROR = "forwarding_error"
    EXECUTION_ERROR = "execution_error"
    VALIDATION_ERROR = "validation_error"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    UNMATCHED = "unmatched"
    ROUTER_ERROR = "router_error"


class AuthStatus(str, Enum):
    """Authentication status recorded alongside an outcome."""
    SUCCESS = "success"
    FAILED = "auth_failed"
    METHOD_REJECTED = "method_rejected"
    VALIDATION_FAILED = "validation_failed"
    NO_MATCH = "no_match"
    NOT_EVALUATED = "not_evaluated"


@dataclass
class ExecutionResult:
    """Outcome of executing a single route."""
    success: bool
    route: str
    status_code: Optional[int] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    transformed_payload: Any = None
    duration_ms: float = 0.0


@dataclass
class OutcomeRecord:
    """Structured record handed to the outcome sinks."""
    request_id: Optional[str]
    source_ip: str
    source_path: str
    request_method: str
    processing_status: ProcessingStatus
    auth_status: AuthStatus = AuthStatus.NOT_EVALUATED
    route_name: Optional[str] = None
    target_url: Optional[str] = None
    http_status: Optional[int] = None
    duration_ms: float = 0.0
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    user_agent: str = "unknown"
    payload_source: str = "body"
    source_type: str = "STANDARD_POST"
    original_payload: Any = None
    transformed_payload: Any = None
    timestamp: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["processing_status"] = self.processing_status.value
        data["auth_status"] = self.auth_status.value
        data["duration_ms"] = round(self.duration_ms)
        extra = data.pop("extra")
        data.update(extra)
        return data
