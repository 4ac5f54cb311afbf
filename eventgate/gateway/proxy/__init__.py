"""
Gateway proxy package.

This package contains the outbound HTTP transport used to forward
events to route targets.
"""

from .http_client import EventForwarder, ForwardResult, build_headers

__all__ = [
    "EventForwarder",
    "ForwardResult",
    "build_headers"
]
