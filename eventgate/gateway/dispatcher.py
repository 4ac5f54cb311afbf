"""
Request dispatcher for the event gateway.

This module ties the pipeline together: method gate, payload
normalization and validation, route matching, and the per-route
authenticate, transform and forward sequence. Route failures stay local
to the route; the response is decided from the aggregated results.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from eventgate.config.logging import get_logger
from eventgate.config.settings import Settings
from eventgate.gateway.normalizer import normalize_get_payload
from eventgate.gateway.proxy.http_client import EventForwarder
from eventgate.gateway.routing.table import RouteTable
from eventgate.gateway.templates.engine import TemplateEngine
from eventgate.models.outcome import AuthStatus, ExecutionResult, OutcomeRecord, ProcessingStatus
from eventgate.models.route import Route
from eventgate.services.authenticator import Authenticator
from eventgate.services.outcomes import OutcomeRecorder
from eventgate.utils.errors import TemplateLoadError
from eventgate.utils.helpers import (
    create_request_meta,
    deep_copy_payload,
    error_body,
    get_event_name,
)

logger = get_logger(__name__)


INVALID_PAYLOAD_ERROR = "Invalid payload: missing events[0].name"

SOURCE_TYPE_GET = "GTM_GET"
SOURCE_TYPE_POST = "STANDARD_POST"


@dataclass
class RequestScope:
    """Per-request state shared by the pipeline steps."""
    request: Request
    meta: Dict[str, Any]
    request_id: Optional[str] = None
    payload: Any = None
    payload_source: str = "body"
    source_type: str = SOURCE_TYPE_POST
    start_time: float = field(default_factory=time.time)

    def elapsed_ms(self) -> float:
        return (time.time() - self.start_time) * 1000


class Dispatcher:
    """
    Orchestrates matching, authentication, transformation and forwarding.

    All collaborators are built once at startup and injected here; the
    dispatcher itself holds no per-request state.
    """

    def __init__(
        self,
        route_table: RouteTable,
        template_engine: TemplateEngine,
        forwarder: EventForwarder,
        recorder: OutcomeRecorder,
        settings: Settings,
        authenticator: Optional[Authenticator] = None
    ):
        self.route_table = route_table
        self.template_engine = template_engine
        self.forwarder = forwarder
        self.recorder = recorder
        self.settings = settings
        self.authenticator = authenticator or Authenticator()

    @property
    def debug(self) -> bool:
        return self.settings.debug_logging

    async def handle_collect(self, request: Request) -> JSONResponse:
        """
        Handle an event collection request.

        Args:
            request: Incoming ``/g/collect`` request

        Returns:
            JSON response describing the aggregated outcome
        """
        scope = RequestScope(
            request=request,
            meta=create_request_meta(request),
            request_id=getattr(request.state, "request_id", None)
        )

        try:
            return await self._dispatch(scope)
        except Exception as e:
            logger.error(
                f"Router error: {e}",
                extra={"request_id": scope.request_id, "path": request.url.path},
                exc_info=True
            )
            self._record(
                scope,
                ProcessingStatus.ROUTER_ERROR,
                http_status=500,
                error_message=str(e)
            )
            return JSONResponse(status_code=500, content=error_body(str(e), self.debug))

    async def handle_dry_run(self, request: Request) -> JSONResponse:
        """
        Simulate routing for a payload without forwarding anything.

        Returns:
            ``{"matched_routes": [...]}`` with the auth error or the
            would-be payload of every matching route
        """
        meta = create_request_meta(request)

        try:
            payload = await self._read_json_body(request)

            event_name = get_event_name(payload)
            if event_name is None:
                return JSONResponse(
                    status_code=400,
                    content=error_body(INVALID_PAYLOAD_ERROR, self.debug)
                )

            results: List[Dict[str, Any]] = []
            for route in self.route_table.find_matches(event_name, request.method):
                entry: Dict[str, Any] = {"route": route.name, "target_url": route.target_url}

                auth_result = self.authenticator.authenticate(request, route.auth)
                if not auth_result.success:
                    entry["auth_error"] = auth_result.error
                    results.append(entry)
                    continue

                try:
                    entry["transformed_payload"] = self._transform(route, payload, meta)
                except TemplateLoadError as e:
                    entry["transform_error"] = e.message

                results.append(entry)

            return JSONResponse(content={"matched_routes": results})

        except Exception as e:
            logger.error(f"Dry run error: {e}", exc_info=True)
            return JSONResponse(status_code=500, content=error_body(str(e), self.debug))

    async def _dispatch(self, scope: RequestScope) -> JSONResponse:
        request = scope.request
        method = request.method.upper()

        if not self.route_table.is_method_allowed(method):
            error = f"Method {method} not allowed"
            self._record(
                scope,
                ProcessingStatus.METHOD_NOT_ALLOWED,
                auth_status=AuthStatus.METHOD_REJECTED,
                http_status=405,
                error_message=error
            )
            return JSONResponse(
                status_code=405,
                content={"error": "Method Not Allowed"},
                headers={"Allow": ", ".join(self.route_table.allowed_methods())}
            )

        if method == "GET":
            scope.payload = normalize_get_payload(request.query_params)
            scope.payload_source = "query"
            scope.source_type = SOURCE_TYPE_GET
        else:
            scope.payload = await self._read_json_body(request)

        event_name = get_event_name(scope.payload)
        if event_name is None:
            self._record(
                scope,
                ProcessingStatus.VALIDATION_ERROR,
                auth_status=AuthStatus.VALIDATION_FAILED,
                http_status=400,
                error_message=INVALID_PAYLOAD_ERROR
            )
            return JSONResponse(status_code=400, content=error_body(INVALID_PAYLOAD_ERROR, self.debug))

        matching_routes = self.route_table.find_matches(event_name, method)
        if not matching_routes:
            return await self._handle_unmatched(scope, event_name)

        results = await self.execute_routes(matching_routes, scope)

        success_count = sum(1 for result in results if result.success)
        if success_count > 0:
            return JSONResponse(content={"status": "success", "processed": success_count})

        errors = [result.error for result in results if result.error]
        message = f"All routes failed: {', '.join(errors)}"
        return JSONResponse(status_code=500, content=error_body(message, self.debug))

    async def _handle_unmatched(self, scope: RequestScope, event_name: str) -> JSONResponse:
        if self.settings.log_unmatched_events:
            logger.info(f"Unmatched event: {event_name} from {scope.meta['ip']}")

        fallback = self.route_table.fallback
        if fallback is not None:
            result = await self.execute_route(fallback, scope)
            if result.success:
                return JSONResponse(content={"status": "success", "processed": 1, "fallback": True})
            return JSONResponse(
                status_code=500,
                content=error_body(f"Fallback route failed: {result.error}", self.debug)
            )

        self._record(
            scope,
            ProcessingStatus.UNMATCHED,
            auth_status=AuthStatus.NO_MATCH,
            http_status=200,
            error_message=f"No route matched event: {event_name}"
        )
        return JSONResponse(content={"status": "unmatched", "event": event_name})

    async def execute_routes(self, routes: List[Route], scope: RequestScope) -> List[ExecutionResult]:
        """Execute routes one after another, in match order."""
        results = []
        for route in routes:
            results.append(await self.execute_route(route, scope))
        return results

    async def execute_route(self, route: Route, scope: RequestScope) -> ExecutionResult:
        """
        Authenticate, transform and forward for a single route.

        Never raises; every failure is recorded and returned as an
        unsuccessful ``ExecutionResult``.
        """
        start_time = time.time()

        def elapsed_ms() -> float:
            return (time.time() - start_time) * 1000

        try:
            auth_result = self.authenticator.authenticate(scope.request, route.auth)
            if not auth_result.success:
                if self.debug:
                    self.authenticator.log_auth_attempt(scope.request, auth_result, route.name)
                duration = elapsed_ms()
                self._record(
                    scope,
                    ProcessingStatus.AUTH_FAILED,
                    auth_status=AuthStatus.FAILED,
                    route=route,
                    http_status=401,
                    duration_ms=duration,
                    error_message=auth_result.error
                )
                return ExecutionResult(
                    success=False, route=route.name, error=auth_result.error, duration_ms=duration
                )

            try:
                transformed = self._transform(route, scope.payload, scope.meta)
            except TemplateLoadError as e:
                logger.error(f"Template error for route {route.name}: {e.message}")
                duration = elapsed_ms()
                self._record(
                    scope,
                    ProcessingStatus.TRANSFORM_ERROR,
                    auth_status=AuthStatus.SUCCESS,
                    route=route,
                    duration_ms=duration,
                    error_message=e.message
                )
                return ExecutionResult(
                    success=False, route=route.name, error=e.message, duration_ms=duration
                )

            forward = await self.forwarder.send(route, transformed)
            duration = elapsed_ms()

            if not forward.success:
                self._record(
                    scope,
                    ProcessingStatus.FORWARDING_ERROR,
                    auth_status=AuthStatus.SUCCESS,
                    route=route,
                    http_status=forward.status_code,
                    duration_ms=duration,
                    error_message=forward.error,
                    error_code=forward.error_code,
                    transformed_payload=transformed
                )
                return ExecutionResult(
                    success=False,
                    route=route.name,
                    status_code=forward.status_code,
                    error=forward.error,
                    error_code=forward.error_code,
                    transformed_payload=transformed,
                    duration_ms=duration
                )

            status = ProcessingStatus.PASSTHROUGH if route.is_passthrough else ProcessingStatus.SUCCESS
            self._record(
                scope,
                status,
                auth_status=AuthStatus.SUCCESS,
                route=route,
                http_status=forward.status_code,
                duration_ms=duration,
                transformed_payload=transformed
            )
            return ExecutionResult(
                success=True,
                route=route.name,
                status_code=forward.status_code,
                transformed_payload=transformed,
                duration_ms=duration
            )

        except Exception as e:
            logger.error(f"Route execution error for {route.name}: {e}", exc_info=True)
            duration = elapsed_ms()
            self._record(
                scope,
                ProcessingStatus.EXECUTION_ERROR,
                route=route,
                duration_ms=duration,
                error_message=str(e)
            )
            return ExecutionResult(success=False, route=route.name, error=str(e), duration_ms=duration)

    def _transform(self, route: Route, payload: Dict[str, Any], meta: Dict[str, Any]) -> Any:
        if route.is_passthrough:
            return deep_copy_payload(payload)
        return self.template_engine.process(route.template, payload, meta)

    @staticmethod
    async def _read_json_body(request: Request) -> Any:
        try:
            return await request.json()
        except ValueError:
            return None

    def _record(
        self,
        scope: RequestScope,
        processing_status: ProcessingStatus,
        auth_status: AuthStatus = AuthStatus.NOT_EVALUATED,
        route: Optional[Route] = None,
        http_status: Optional[int] = None,
        duration_ms: Optional[float] = None,
        error_message: Optional[str] = None,
        error_code: Optional[str] = None,
        transformed_payload: Any = None
    ) -> None:
        self.recorder.record(OutcomeRecord(
            request_id=scope.request_id,
            source_ip=scope.meta["ip"],
            source_path=scope.request.url.path,
            request_method=scope.request.method,
            processing_status=processing_status,
            auth_status=auth_status,
            route_name=route.name if route else None,
            target_url=route.target_url if route else None,
            http_status=http_status,
            duration_ms=scope.elapsed_ms() if duration_ms is None else duration_ms,
            error_message=error_message,
            error_code=error_code,
            user_agent=scope.meta["user_agent"],
            payload_source=scope.payload_source,
            source_type=scope.source_type,
            original_payload=scope.payload,
            transformed_payload=transformed_payload,
            timestamp=scope.meta["timestamp"]
        ))
