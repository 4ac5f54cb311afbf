"""
Route table for the event gateway.

The table is built once from the validated route list: the fallback
route is set aside and the regular routes are sorted by priority. It is
never mutated afterwards and is shared by all requests.
"""

import math
from typing import Any, Dict, List, Optional, Sequence

from eventgate.config.logging import get_logger
from eventgate.gateway.routing.wildcard import matches
from eventgate.models.route import Route

logger = get_logger(__name__)


def sort_routes_by_priority(routes: Sequence[Route]) -> List[Route]:
    """
    Sort routes by ascending priority.

    Routes without a priority sort last; ties keep their declaration
    order because ``sorted`` is stable.
    """
    return sorted(
        routes,
        key=lambda route: route.priority if route.priority is not None else math.inf
    )


class RouteTable:
    """
    Immutable, priority ordered set of routes plus an optional fallback.
    """

    def __init__(self, routes: Sequence[Route]):
        """
        Build the table.

        Args:
            routes: Validated routes in declaration order; at most one of
                them may be flagged as fallback
        """
        fallbacks = [route for route in routes if route.fallback]
        if len(fallbacks) > 1:
            raise ValueError("Only one fallback route is allowed")

        self._declared: List[Route] = list(routes)
        self._fallback: Optional[Route] = fallbacks[0] if fallbacks else None
        self._routes: List[Route] = sort_routes_by_priority(
            [route for route in routes if not route.fallback]
        )

        logger.info(
            f"Route table built",
            extra={
                "routes_count": len(self._routes),
                "has_fallback": self._fallback is not None
            }
        )

    @property
    def fallback(self) -> Optional[Route]:
        return self._fallback

    @property
    def all_routes(self) -> List[Route]:
        """Regular routes in match order followed by the fallback, if any."""
        routes = list(self._routes)
        if self._fallback is not None:
            routes.append(self._fallback)
        return routes

    def allowed_methods(self) -> List[str]:
        """Union of the methods declared by any route, in declaration order."""
        methods: List[str] = []
        for route in self._declared:
            for method in route.methods:
                if method not in methods:
                    methods.append(method)
        return methods

    def is_method_allowed(self, method: str) -> bool:
        return any(route.allows_method(method) for route in self._declared)

    def find_matches(self, event_name: str, method: str) -> List[Route]:
        """
        Find the routes that should handle an event.

        Routes are scanned in priority order. A qualifying route is added
        to the result; if it is not a multi route, scanning stops there.

        Args:
            event_name: Name of the event, i.e. ``events[0].name``
            method: HTTP method of the inbound request

        Returns:
            Ordered list of matching routes (possibly empty)
        """
        matching: List[Route] = []

        for route in self._routes:
            if not route.allows_method(method) or not matches(route.event_match, event_name):
                continue

            matching.append(route)
            if not route.multi:
                break

        logger.debug(
            f"Route matching finished",
            extra={
                "event_name": event_name,
                "method": method,
                "matched_routes": [route.name for route in matching]
            }
        )
        return matching

    def describe(self) -> Dict[str, Any]:
        """Summary of the table for startup logs and diagnostics."""
        return {
            "total_routes": len(self._declared),
            "regular_routes": [
                {
                    "name": route.name,
                    "event_match": route.event_match,
                    "priority": route.priority,
                    "multi": route.multi,
                    "methods": list(route.methods),
                    "passthrough": route.is_passthrough
                }
                for route in self._routes
            ],
            "fallback": self._fallback.name if self._fallback else None,
            "allowed_methods": self.allowed_methods()
        }
