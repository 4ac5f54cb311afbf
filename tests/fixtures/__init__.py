"""Test fixtures for event gateway tests."""

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from eventgate.config.settings import Settings
from eventgate.gateway.templates.engine import TemplateEngine
from eventgate.main import create_app


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every outbound request.

    Responses default to 200; ``responses`` maps a URL to a status code or
    to an exception instance that should be raised for that URL.
    """

    def __init__(self, responses: Optional[Dict[str, Any]] = None):
        self.requests: List[httpx.Request] = []
        self.responses: Dict[str, Any] = dict(responses or {})
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.responses.get(str(request.url), 200)
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(outcome, json={"ok": outcome < 400})

    @property
    def bodies(self) -> List[Any]:
        return [json.loads(request.content) for request in self.requests]

    @property
    def urls(self) -> List[str]:
        return [str(request.url) for request in self.requests]


def apikey_route(name: str, event_match: str, target_url: str, key: str = "secret", **extra) -> Dict[str, Any]:
    """Build a raw route dictionary with API key auth."""
    route = {
        "name": name,
        "event_match": event_match,
        "target_url": target_url,
        "auth": {"type": "apikey", "key": key},
    }
    route.update(extra)
    return route


@pytest.fixture
def templates_dir(tmp_path: Path) -> Path:
    """Empty templates directory."""
    directory = tmp_path / "templates"
    directory.mkdir()
    return directory


@pytest.fixture
def write_template(templates_dir: Path) -> Callable[[str, Any], str]:
    """Write a JSON template and return its relative path."""
    def _write(relative_path: str, document: Any) -> str:
        path = templates_dir / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(document, str):
            path.write_text(document, encoding="utf-8")
        else:
            path.write_text(json.dumps(document), encoding="utf-8")
        return relative_path

    return _write


@pytest.fixture
def write_routes(tmp_path: Path) -> Callable[[List[Dict[str, Any]]], Path]:
    """Write a routes document and return its path."""
    def _write(routes: List[Dict[str, Any]]) -> Path:
        path = tmp_path / "routes.json"
        path.write_text(json.dumps({"routes": routes}), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def template_engine(templates_dir: Path) -> TemplateEngine:
    """Template engine over the temporary templates directory."""
    return TemplateEngine(templates_dir)


@pytest.fixture
def recording_transport() -> RecordingTransport:
    """Outbound transport that records requests and answers 200."""
    return RecordingTransport()


@pytest.fixture
def make_client(write_routes, templates_dir, recording_transport):
    """Build a TestClient for an app serving the given routes."""
    clients: List[TestClient] = []

    def _make(routes: List[Dict[str, Any]], environ: Optional[Dict[str, str]] = None, **settings) -> TestClient:
        routes_file = write_routes(routes)
        app_settings = Settings(
            routes_file=str(routes_file),
            templates_dir=str(templates_dir),
            **settings
        )
        app = create_app(app_settings, transport=recording_transport, environ=environ or {})
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def sample_payload() -> Dict[str, Any]:
    """GA4 purchase payload."""
    return {
        "client_id": "123.456",
        "events": [
            {
                "name": "purchase",
                "params": {
                    "value": 10,
                    "transaction_id": "T-1001",
                    "items": [{"item_id": "SKU-1", "price": 10}],
                },
            }
        ],
    }


def make_request(
    headers: Optional[Dict[str, str]] = None,
    client: Optional[tuple] = ("10.0.0.1", 52000),
    method: str = "POST",
    path: str = "/g/collect",
    query_string: bytes = b""
):
    """Build a bare Starlette request for unit tests."""
    from starlette.requests import Request

    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "headers": [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        ],
        "query_string": query_string,
        "client": client,
    }
    return Request(scope)
