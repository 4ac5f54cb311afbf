"""
Route models for the event gateway.

This module defines the route configuration entity and the tagged union
of authentication strategies a route can carry.
"""

from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator


UNNAMED_ROUTE = "unnamed"


class AuthType(str, Enum):
    """Authentication strategy types."""
    APIKEY = "apikey"
    WHITELIST = "whitelist"
    IP_WHITELIST = "ip_whitelist"


class ApiKeyAuth(BaseModel):
    """Requires an ``x-api-key`` header equal to ``key``."""
    model_config = ConfigDict(frozen=True)

    type: Literal["apikey"] = "apikey"
    key: str = Field(..., min_length=1, description="Expected API key")


class OriginWhitelistAuth(BaseModel):
    """Requires an ``Origin`` header contained in ``origins``."""
    model_config = ConfigDict(frozen=True)

    type: Literal["whitelist"] = "whitelist"
    origins: List[str] = Field(..., min_length=1, description="Allowed Origin header values")


class IPWhitelistAuth(BaseModel):
    """Requires the resolved client IP to be contained in ``allowed_ips``."""
    model_config = ConfigDict(frozen=True)

    type: Literal["ip_whitelist"] = "ip_whitelist"
    allowed_ips: List[str] = Field(..., min_length=1, description="Allowed client IPs")


AuthConfig = Annotated[
    Union[ApiKeyAuth, OriginWhitelistAuth, IPWhitelistAuth],
    Field(discriminator="type"),
]


class Route(BaseModel):
    """Single routing rule, immutable once loaded."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(default=UNNAMED_ROUTE, description="Human readable label")
    event_match: str = Field(..., description="Exact name, '*' or wildcard pattern")
    target_url: str = Field(..., description="Destination URL")
    methods: List[str] = Field(default_factory=lambda: ["POST"], description="Accepted HTTP methods")
    template: Optional[str] = Field(default=None, description="Template path relative to the templates directory")
    auth: AuthConfig
    priority: Optional[StrictInt] = Field(default=None, description="Lower sorts earlier")
    multi: bool = Field(default=False, description="Keep matching after this route")
    fallback: bool = Field(default=False, description="Handles events no other route matched")
    headers: Dict[str, str] = Field(default_factory=dict, description="Extra outbound headers")

    @field_validator("name", mode="before")
    @classmethod
    def default_name(cls, value):
        return value or UNNAMED_ROUTE

    @field_validator("methods")
    @classmethod
    def normalize_methods(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("methods must not be empty")
        return [method.upper() for method in value]

    @field_validator("template")
    @classmethod
    def template_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("template must be a non-empty path")
        return value

    @property
    def is_passthrough(self) -> bool:
        return self.template is None

    def allows_method(self, method: str) -> bool:
        return method.upper() in self.methods
