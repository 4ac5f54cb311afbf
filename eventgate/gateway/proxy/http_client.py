"""
HTTP client for forwarding events to route targets.

This module provides the outbound transport of the gateway: a single
shared ``httpx.AsyncClient`` that POSTs JSON bodies with a bounded
timeout and classifies the outcome. There is no retry; one failed
attempt is final for that route in that request.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from eventgate.config.logging import get_logger
from eventgate.models.route import Route

logger = get_logger(__name__)


DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_HEADERS = {"Content-Type": "application/json"}

ERROR_CODE_TIMEOUT = "ECONNABORTED"
ERROR_CODE_NO_RESPONSE = "NO_RESPONSE"


@dataclass
class ForwardResult:
    """Outcome of one outbound delivery attempt."""
    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0


def build_headers(route: Route) -> Dict[str, str]:
    """Merge the default JSON content type with the route's headers."""
    overridden = {name.lower() for name in route.headers}
    headers = {
        name: value for name, value in DEFAULT_HEADERS.items()
        if name.lower() not in overridden
    }
    headers.update(route.headers)
    return headers


class EventForwarder:
    """Outbound HTTP transport for route targets."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the forwarder.

        Args:
            timeout: Per-attempt timeout in seconds
            transport: Optional httpx transport, e.g. a MockTransport in tests
        """
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Shared client, created on first use."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
                follow_redirects=True
            )
        return self._client

    async def send(self, route: Route, payload: Any) -> ForwardResult:
        """
        POST a payload to the route's target URL.

        Responses below 500 count as delivered, including the target's
        own 4xx answers.

        Args:
            route: Route whose target and headers to use
            payload: JSON-serializable body

        Returns:
            ForwardResult with status or classified error
        """
        start_time = time.time()

        try:
            # The whole exchange is bounded, not just each phase
            response = await asyncio.wait_for(
                self.client.post(
                    route.target_url,
                    json=payload,
                    headers=build_headers(route)
                ),
                timeout=self.timeout
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            logger.error(
                "Timeout forwarding event",
                extra={"route_name": route.name, "url": route.target_url, "error": str(e)}
            )
            return ForwardResult(
                success=False,
                error="Request timeout",
                error_code=ERROR_CODE_TIMEOUT,
                response_time_ms=self._elapsed_ms(start_time)
            )
        except httpx.RequestError as e:
            logger.error(
                "No response from forwarding target",
                extra={"route_name": route.name, "url": route.target_url, "error": str(e)}
            )
            return ForwardResult(
                success=False,
                error="No response from target",
                error_code=ERROR_CODE_NO_RESPONSE,
                response_time_ms=self._elapsed_ms(start_time)
            )
        except Exception as e:
            logger.error(
                "Unexpected error forwarding event",
                extra={"route_name": route.name, "url": route.target_url, "error": str(e)}
            )
            return ForwardResult(
                success=False,
                error=str(e) or e.__class__.__name__,
                response_time_ms=self._elapsed_ms(start_time)
            )

        response_time = self._elapsed_ms(start_time)

        if response.status_code >= 500:
            logger.error(
                "Forwarding target returned server error",
                extra={
                    "route_name": route.name,
                    "url": route.target_url,
                    "status_code": response.status_code,
                    "response_time_ms": response_time
                }
            )
            return ForwardResult(
                success=False,
                status_code=response.status_code,
                error=f"HTTP {response.status_code}: {response.reason_phrase}",
                error_code=f"HTTP_{response.status_code}",
                response_time_ms=response_time
            )

        logger.info(
            "Event forwarded",
            extra={
                "route_name": route.name,
                "url": route.target_url,
                "status_code": response.status_code,
                "response_time_ms": response_time
            }
        )
        return ForwardResult(
            success=True,
            status_code=response.status_code,
            response_time_ms=response_time
        )

    async def close(self) -> None:
        """Close the shared HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _elapsed_ms(start_time: float) -> float:
        return (time.time() - start_time) * 1000
