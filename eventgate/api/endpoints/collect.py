"""
Event collection endpoints.

``/g/collect`` is registered by ``register_collect_routes`` once the
route table is known: an API route for the methods the routes declare,
plus a catch-all so the dispatcher's method gate answers every other
method with its own 405 and ``Allow`` header.
"""

from typing import List

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from eventgate.api.dependencies import get_dispatcher
from eventgate.gateway.dispatcher import Dispatcher

COLLECT_PATH = "/g/collect"

router = APIRouter(tags=["collect"])


async def collect(
    request: Request,
    dispatcher: Dispatcher = Depends(get_dispatcher)
) -> JSONResponse:
    return await dispatcher.handle_collect(request)


async def collect_any_method(request: Request) -> JSONResponse:
    return await get_dispatcher(request).handle_collect(request)


def register_collect_routes(app: FastAPI, methods: List[str]) -> None:
    """
    Register the collect endpoint on the application.

    Args:
        app: Application to register on
        methods: Union of the methods declared by the routes
    """
    if methods:
        app.add_api_route(
            COLLECT_PATH,
            collect,
            methods=methods,
            tags=["collect"],
            summary="Collect an event",
            description="Match a GA4 event against the configured routes and forward it"
        )

    # A Starlette route without a method list matches any method
    app.add_route(COLLECT_PATH, collect_any_method, include_in_schema=False)


@router.post(
    "/dry-run",
    summary="Simulate event routing",
    description="Run matching, authentication and transformation without forwarding"
)
async def dry_run(
    request: Request,
    dispatcher: Dispatcher = Depends(get_dispatcher)
) -> JSONResponse:
    return await dispatcher.handle_dry_run(request)
