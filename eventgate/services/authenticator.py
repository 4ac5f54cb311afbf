"""
Per-route authentication for the event gateway.

Each route carries exactly one strategy:
- apikey: ``x-api-key`` header must equal the configured key
- whitelist: ``Origin`` header must be one of the configured origins
- ip_whitelist: resolved client IP must be one of the allowed IPs

Authentication never raises; callers receive an ``AuthResult`` so the
dispatcher can record the failure and carry on with sibling routes.
"""

import secrets
from dataclasses import dataclass
from typing import Optional

from starlette.requests import Request

from eventgate.config.logging import get_logger
from eventgate.models.route import (
    ApiKeyAuth,
    AuthConfig,
    IPWhitelistAuth,
    OriginWhitelistAuth,
)
from eventgate.utils.helpers import get_client_ip

logger = get_logger(__name__)


API_KEY_HEADER = "x-api-key"
ORIGIN_HEADER = "origin"


@dataclass(frozen=True)
class AuthResult:
    """Result of authenticating a request against one route."""
    success: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "AuthResult":
        return cls(success=True)

    @classmethod
    def failed(cls, error: str) -> "AuthResult":
        return cls(success=False, error=error)


class Authenticator:
    """Evaluates a route's authentication strategy against a request."""

    def authenticate(self, request: Request, auth: Optional[AuthConfig]) -> AuthResult:
        """
        Authenticate a request.

        Args:
            request: Incoming request
            auth: Strategy configured on the route

        Returns:
            AuthResult describing success or the reason for failure
        """
        if auth is None:
            return AuthResult.failed("Missing authentication configuration")

        if isinstance(auth, ApiKeyAuth):
            return self._authenticate_api_key(request, auth)
        if isinstance(auth, OriginWhitelistAuth):
            return self._authenticate_origin(request, auth)
        if isinstance(auth, IPWhitelistAuth):
            return self._authenticate_ip(request, auth)

        auth_type = getattr(auth, "type", None)
        return AuthResult.failed(f"Unknown authentication type: {auth_type}")

    def _authenticate_api_key(self, request: Request, auth: ApiKeyAuth) -> AuthResult:
        provided_key = request.headers.get(API_KEY_HEADER)
        if not provided_key:
            return AuthResult.failed("Missing x-api-key header for API key authentication")

        if not secrets.compare_digest(provided_key.encode("utf-8"), auth.key.encode("utf-8")):
            return AuthResult.failed("Invalid API key")

        return AuthResult.ok()

    def _authenticate_origin(self, request: Request, auth: OriginWhitelistAuth) -> AuthResult:
        origin = request.headers.get(ORIGIN_HEADER)
        if not origin:
            return AuthResult.failed("Missing Origin header for whitelist authentication")

        if origin not in auth.origins:
            return AuthResult.failed(f"Origin {origin} not in whitelist")

        return AuthResult.ok()

    def _authenticate_ip(self, request: Request, auth: IPWhitelistAuth) -> AuthResult:
        client_ip = get_client_ip(request)
        if client_ip not in auth.allowed_ips:
            return AuthResult.failed(f"IP address {client_ip} not in whitelist")

        return AuthResult.ok()

    def log_auth_attempt(self, request: Request, result: AuthResult, route_name: str) -> None:
        """Log an authentication attempt; used in debug mode."""
        client_ip = get_client_ip(request)
        origin = request.headers.get(ORIGIN_HEADER) or "none"

        if result.success:
            logger.debug(f"Auth success: {route_name} from {client_ip} ({origin})")
        else:
            logger.debug(f"Auth failed: {route_name} from {client_ip} ({origin}) - {result.error}")
