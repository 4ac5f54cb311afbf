"""
Core middleware exports.

This module provides centralized access to all middleware components.
"""

from .request_context import RequestContextMiddleware

__all__ = ["RequestContextMiddleware"]
