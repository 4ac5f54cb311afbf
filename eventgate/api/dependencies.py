"""
FastAPI dependencies.

Collaborators are built once in ``create_app`` and stored on
``app.state``; these helpers hand them to the endpoints.
"""

from fastapi import Request

from eventgate.config.settings import Settings
from eventgate.gateway.dispatcher import Dispatcher
from eventgate.services.debug_log import DebugLog


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


def get_debug_log(request: Request) -> DebugLog:
    return request.app.state.debug_log


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
