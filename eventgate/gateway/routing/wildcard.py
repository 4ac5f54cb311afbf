"""
Wildcard matching for event names.

Supports exact names, the catch-all ``*`` and glob-like patterns such as
``purchase.*`` where each ``*`` matches zero or more characters.
"""

import re
from functools import lru_cache
from typing import Pattern


MATCH_ALL = "*"


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> Pattern:
    """
    Compile a wildcard pattern to a regex for full-string matching.

    Every regex metacharacter is escaped except ``*``, which becomes
    ``.*``.
    """
    escaped = re.escape(pattern).replace(r"\*", ".*")
    return re.compile(escaped, re.DOTALL)


def matches(pattern: str, value: str) -> bool:
    """
    Test an event name against a pattern.

    Examples:
        matches("*", "anything") -> True
        matches("purchase", "purchase") -> True
        matches("purchase.*", "purchase.refund") -> True
        matches("purchase.*", "purchase") -> False
    """
    if pattern == MATCH_ALL:
        return True

    if "*" not in pattern:
        return pattern == value

    return compile_pattern(pattern).fullmatch(value) is not None
