"""
Gateway templates package.

This package contains the dotted path resolver and the JSON template
engine used to transform event payloads.
"""

from .engine import MISSING, TemplateEngine, parse_expression, to_template_string
from .resolver import NOT_FOUND, resolve

__all__ = [
    "MISSING",
    "NOT_FOUND",
    "TemplateEngine",
    "parse_expression",
    "resolve",
    "to_template_string",
]
