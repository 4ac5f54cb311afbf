"""
Gateway routing package.

This package contains the wildcard matcher and the priority ordered
route table for the event gateway.
"""

from .table import RouteTable, sort_routes_by_priority
from .wildcard import compile_pattern, matches

__all__ = [
    "RouteTable",
    "sort_routes_by_priority",
    "compile_pattern",
    "matches"
]
