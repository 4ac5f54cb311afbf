"""
JSON template engine for the event gateway.

Templates are JSON documents whose string leaves may contain
``{{ path }}`` or ``{{ path || fallback }}`` tokens. Tokens are resolved
against the request context; a string leaf with any unresolved token is
omitted from its parent container.
"""

import json
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from eventgate.config.logging import get_logger
from eventgate.gateway.templates.resolver import NOT_FOUND, resolve
from eventgate.utils.errors import TemplateLoadError

logger = get_logger(__name__)


TOKEN_PATTERN = re.compile(r"\{\{([^}]+)\}\}")
NUMBER_PATTERN = re.compile(r"^-?\d+(\.\d+)?$")
FALLBACK_SEPARATOR = "||"


class _Missing:
    """Marker for a template value that must be omitted."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


@lru_cache(maxsize=1024)
def parse_expression(expression: str) -> Tuple[str, Optional[str]]:
    """
    Split a token expression into its path and optional fallback.

    The split happens on the first ``||``; the remainder is the fallback
    text, stripped but otherwise verbatim.

    Examples:
        "events.0.name" -> ("events.0.name", None)
        "a.b || 'USD'" -> ("a.b", "'USD'")
    """
    index = expression.find(FALLBACK_SEPARATOR)
    if index == -1:
        return expression.strip(), None
    return expression[:index].strip(), expression[index + len(FALLBACK_SEPARATOR):].strip()


def _is_quoted(text: str) -> bool:
    """True for one literal such as 'USD'; the quote may not reappear inside."""
    if len(text) < 2 or text[0] != text[-1] or text[0] not in ("'", '"'):
        return False
    return text[0] not in text[1:-1]


def to_template_string(value: Any) -> str:
    """
    Convert a resolved value to the string substituted into a template.

    Examples:
        None -> "null"
        True -> "true"
        10.0 -> "10"
        [1, 2] -> "[1,2]"
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


class TemplateEngine:
    """
    Loads, caches and renders JSON templates.

    Documents are read once per relative path and treated as immutable
    afterwards, so a single engine is shared by all requests.
    """

    def __init__(self, templates_dir: Union[str, Path]):
        self.templates_dir = Path(templates_dir)
        self._cache: Dict[str, Any] = {}

    def load(self, template_path: str) -> Any:
        """
        Load and cache a template document.

        Args:
            template_path: Path relative to the templates directory

        Returns:
            Parsed JSON document

        Raises:
            TemplateLoadError: If the file is missing, is not valid JSON,
                or uses an unsupported token form
        """
        if template_path in self._cache:
            return self._cache[template_path]

        full_path = self.templates_dir / template_path
        if not full_path.is_file():
            raise TemplateLoadError(template_path, f"template file not found at {full_path}")

        try:
            document = json.loads(full_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise TemplateLoadError(template_path, f"invalid JSON: {e}") from e
        except OSError as e:
            raise TemplateLoadError(template_path, f"cannot read file: {e}") from e

        self._check_tokens(document, template_path)
        self._cache[template_path] = document

        logger.debug(f"Loaded template {template_path}")
        return document

    def is_cached(self, template_path: str) -> bool:
        return template_path in self._cache

    def clear_cache(self) -> None:
        """Drop every cached document. Only tests should need this."""
        self._cache.clear()

    def render(self, document: Any, context: Dict[str, Any]) -> Any:
        """
        Render a template document against a context.

        Returns:
            The rendered value, or None when the root itself is omitted
        """
        rendered = self._render_value(document, context)
        return None if rendered is MISSING else rendered

    def process(self, template_path: str, payload: Dict[str, Any], meta: Dict[str, Any]) -> Any:
        """
        Render a template for an event payload.

        The context is the payload with the request metadata added under
        the ``meta`` key.
        """
        document = self.load(template_path)
        context = dict(payload)
        context["meta"] = meta
        return self.render(document, context)

    def _render_value(self, value: Any, context: Dict[str, Any]) -> Any:
        if isinstance(value, str):
            return self._render_string(value, context)

        if isinstance(value, list):
            rendered_items = []
            for item in value:
                rendered = self._render_value(item, context)
                if rendered is not MISSING:
                    rendered_items.append(rendered)
            return rendered_items

        if isinstance(value, dict):
            rendered_object = {}
            for key, item in value.items():
                rendered = self._render_value(item, context)
                if rendered is not MISSING:
                    rendered_object[key] = rendered
            return rendered_object

        return value

    def _render_string(self, text: str, context: Dict[str, Any]) -> Any:
        if not TOKEN_PATTERN.search(text):
            return text

        missing = False

        def replace_token(match: re.Match) -> str:
            nonlocal missing
            resolved = self._resolve_expression(match.group(1).strip(), context)
            if resolved is MISSING:
                missing = True
                return ""
            return to_template_string(resolved)

        rendered = TOKEN_PATTERN.sub(replace_token, text)
        return MISSING if missing else rendered

    def _resolve_expression(self, expression: str, context: Dict[str, Any]) -> Any:
        path, fallback = parse_expression(expression)

        value = resolve(path, context)
        if value is not NOT_FOUND:
            return value

        if fallback is None:
            return MISSING

        fallback_value = self._resolve_fallback(fallback, context)
        return MISSING if fallback_value is NOT_FOUND else fallback_value

    def _resolve_fallback(self, fallback: str, context: Dict[str, Any]) -> Any:
        if _is_quoted(fallback):
            return fallback[1:-1]
        if fallback == "null":
            return None
        if fallback == "true":
            return True
        if fallback == "false":
            return False
        if NUMBER_PATTERN.match(fallback):
            return float(fallback) if "." in fallback else int(fallback)
        return resolve(fallback, context)

    def _check_tokens(self, document: Any, template_path: str) -> None:
        if isinstance(document, str):
            for match in TOKEN_PATTERN.finditer(document):
                _, fallback = parse_expression(match.group(1).strip())
                if fallback is not None and not _is_quoted(fallback) and FALLBACK_SEPARATOR in fallback:
                    raise TemplateLoadError(
                        template_path,
                        f"chained fallbacks are not supported in token {match.group(0)}",
                    )
        elif isinstance(document, list):
            for item in document:
                self._check_tokens(item, template_path)
        elif isinstance(document, dict):
            for item in document.values():
                self._check_tokens(item, template_path)
