"""
Route document loading.

This module reads ``routes.json``, resolves ``{{ENV_VAR}}`` tokens in
route values, validates every route and preloads the templates the
routes reference. Any problem is raised as ``ConfigurationError`` so the
process stops before it starts serving.
"""

import json
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Union

from pydantic import ValidationError

from eventgate.config.logging import get_logger
from eventgate.models.route import AuthType, Route
from eventgate.utils.errors import ConfigurationError, TemplateLoadError

if TYPE_CHECKING:
    from eventgate.gateway.templates.engine import TemplateEngine

logger = get_logger(__name__)


ENV_TOKEN_PATTERN = re.compile(r"\{\{([A-Z_][A-Z0-9_]*)\}\}")

AUTH_STRATEGY_FIELDS = ("origins", "key", "allowed_ips")
REQUIRED_FIELDS = ("event_match", "target_url", "auth")


def load_routes(
    routes_file: Union[str, Path],
    template_engine: Optional["TemplateEngine"] = None,
    environ: Optional[Mapping[str, str]] = None
) -> List[Route]:
    """
    Load and validate the route document.

    Args:
        routes_file: Path of the JSON route document
        template_engine: When given, every referenced template is loaded
        environ: Environment used for ``{{ENV_VAR}}`` tokens

    Returns:
        Routes in declaration order

    Raises:
        ConfigurationError: If the document or any route is invalid
    """
    environ = os.environ if environ is None else environ
    raw_routes = _read_document(Path(routes_file))

    routes: List[Route] = []
    fallback_indexes: List[int] = []

    for index, raw_route in enumerate(raw_routes, start=1):
        route = parse_route(raw_route, index, template_engine, environ)
        if route.fallback:
            fallback_indexes.append(index)
        routes.append(route)

    if len(fallback_indexes) > 1:
        indexes = ", ".join(str(i) for i in fallback_indexes)
        raise ConfigurationError(
            f"Multiple fallback routes defined (routes {indexes}). "
            "Only one fallback route is allowed."
        )

    logger.info(
        f"Loaded {len(routes)} routes from {routes_file}",
        extra={"routes_count": len(routes), "has_fallback": bool(fallback_indexes)}
    )
    return routes


def parse_route(
    raw_route: Any,
    index: int,
    template_engine: Optional["TemplateEngine"] = None,
    environ: Optional[Mapping[str, str]] = None
) -> Route:
    """
    Validate a single raw route.

    Args:
        raw_route: Route object as read from JSON
        index: 1-based position, used in error messages

    Returns:
        Validated route
    """
    environ = os.environ if environ is None else environ

    if not isinstance(raw_route, dict):
        raise ConfigurationError(f"Route {index}: must be an object")

    resolved = resolve_environment_tokens(raw_route, index, environ)

    for field in REQUIRED_FIELDS:
        if not resolved.get(field):
            raise ConfigurationError(f"Route {index}: missing required field \"{field}\"")

    _validate_auth(resolved["auth"], index)

    if "priority" in resolved:
        priority = resolved["priority"]
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ConfigurationError(f"Route {index}: priority must be an integer")

    template = resolved.get("template")
    if template is not None:
        if not isinstance(template, str) or not template.strip():
            raise ConfigurationError(f"Route {index}: template must be a non-empty path")
        if template_engine is not None:
            try:
                template_engine.load(template)
            except TemplateLoadError as e:
                raise ConfigurationError(f"Route {index}: {e.message}") from e

    try:
        return Route.model_validate(resolved)
    except ValidationError as e:
        raise ConfigurationError(f"Route {index}: {_format_validation_error(e)}") from e


def resolve_environment_tokens(value: Any, index: int, environ: Mapping[str, str]) -> Any:
    """
    Replace ``{{ENV_VAR}}`` tokens in every string of a route.

    Only upper-case identifiers are treated as environment tokens, so
    template-style paths never collide with them.
    """
    if isinstance(value, dict):
        return {key: resolve_environment_tokens(item, index, environ) for key, item in value.items()}
    if isinstance(value, list):
        return [resolve_environment_tokens(item, index, environ) for item in value]
    if not isinstance(value, str):
        return value

    def replace_token(match: re.Match) -> str:
        name = match.group(1)
        if name not in environ:
            raise ConfigurationError(f"Route {index}: environment variable {name} is not defined")
        return environ[name]

    return ENV_TOKEN_PATTERN.sub(replace_token, value)


def _read_document(routes_file: Path) -> List[Any]:
    try:
        content = routes_file.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigurationError(f"Routes file not found: {routes_file}") from None
    except OSError as e:
        raise ConfigurationError(f"Failed to read routes file {routes_file}: {e}") from e

    try:
        document = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in routes file {routes_file}: {e}") from e

    if not isinstance(document, dict) or not isinstance(document.get("routes"), list):
        raise ConfigurationError(f"Routes file {routes_file} must contain a \"routes\" array")

    return document["routes"]


def _validate_auth(auth: Any, index: int) -> None:
    if not isinstance(auth, dict):
        raise ConfigurationError(f"Route {index}: auth must be an object")

    if not auth.get("type"):
        raise ConfigurationError(f"Route {index}: auth missing \"type\" field")

    strategies = [field for field in AUTH_STRATEGY_FIELDS if auth.get(field)]
    if len(strategies) > 1:
        raise ConfigurationError(
            f"Route {index}: auth has multiple strategies ({', '.join(strategies)}). "
            "Only one of origins, key or allowed_ips may be set."
        )

    try:
        auth_type = AuthType(auth["type"])
    except ValueError:
        raise ConfigurationError(f"Route {index}: unknown auth type \"{auth['type']}\"") from None

    if auth_type is AuthType.APIKEY:
        if not isinstance(auth.get("key"), str) or not auth.get("key"):
            raise ConfigurationError(f"Route {index}: apikey auth requires a \"key\"")
    elif auth_type is AuthType.WHITELIST:
        if not isinstance(auth.get("origins"), list) or not auth.get("origins"):
            raise ConfigurationError(f"Route {index}: whitelist auth requires a non-empty \"origins\" array")
    elif auth_type is AuthType.IP_WHITELIST:
        if not isinstance(auth.get("allowed_ips"), list) or not auth.get("allowed_ips"):
            raise ConfigurationError(
                f"Route {index}: ip_whitelist auth requires a non-empty \"allowed_ips\" array"
            )


def _format_validation_error(error: ValidationError) -> str:
    messages = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        messages.append(f"{location}: {detail['msg']}" if location else detail["msg"])
    return "; ".join(messages)

