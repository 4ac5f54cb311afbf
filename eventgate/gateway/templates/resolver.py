"""
Dotted path lookup inside JSON-like values.

``events.0.params.value`` walks objects by key and arrays by numeric
index. A lookup that cannot be completed returns ``NOT_FOUND``, which is
distinct from a present ``None``, ``False``, ``0`` or ``""``.
"""

from typing import Any


class _NotFound:
    """Sentinel type for a failed lookup."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = _NotFound()


def resolve(path: str, context: Any) -> Any:
    """
    Resolve a dotted path against a context.

    Args:
        path: Dot separated segments, digits index into arrays
        context: Nested dicts/lists to traverse

    Returns:
        The value at the path, or NOT_FOUND
    """
    current = context

    for segment in path.split("."):
        if isinstance(current, list):
            if not (segment.isascii() and segment.isdigit()):
                return NOT_FOUND
            index = int(segment)
            if index >= len(current):
                return NOT_FOUND
            current = current[index]
        elif isinstance(current, dict):
            if segment not in current:
                return NOT_FOUND
            current = current[segment]
        else:
            return NOT_FOUND

    return current
