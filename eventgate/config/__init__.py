from eventgate.config.logging import StructuredLogger, get_logger, setup_logging
from eventgate.config.routes import load_routes, parse_route
from eventgate.config.settings import ConfigLoader, Settings, load_settings

__all__ = [
    "ConfigLoader",
    "Settings",
    "StructuredLogger",
    "get_logger",
    "load_routes",
    "load_settings",
    "parse_route",
    "setup_logging",
]
