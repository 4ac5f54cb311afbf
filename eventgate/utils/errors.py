"""
Exception hierarchy for the event gateway.

Startup problems surface as ``ConfigurationError`` and abort the process;
template problems found while serving a request only fail the route that
references the template.
"""


class EventGatewayError(Exception):
    """Base class for all gateway errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(EventGatewayError):
    """Raised when settings or the route document cannot be loaded or validated."""


class TemplateLoadError(ConfigurationError):
    """Raised when a template file is missing, malformed, or uses unsupported syntax."""

    def __init__(self, template_path: str, reason: str):
        super().__init__(f"Failed to load template {template_path}: {reason}")
        self.template_path = template_path
        self.reason = reason
