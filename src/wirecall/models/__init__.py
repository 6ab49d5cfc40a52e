"""Configuration and response models."""

from .config import (
    AuthConfig,
    NetworkManagerConfig,
    RetryConfig,
    TransportConfig,
    UserAgentConfig,
)
from .responses import EmptyResponse, StatusCodeResponse

__all__ = [
    "AuthConfig",
    "EmptyResponse",
    "NetworkManagerConfig",
    "RetryConfig",
    "StatusCodeResponse",
    "TransportConfig",
    "UserAgentConfig",
]
