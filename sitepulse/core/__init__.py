"""Core module for SitePulse - configuration, Cloudflare client and errors."""

from sitepulse.core.client import CloudflareClient
from sitepulse.core.config import SitePulseConfig
from sitepulse.core.exceptions import (
    ApiReportedError,
    ConfigurationError,
    DeploymentNotFoundError,
    ParseError,
    ResolutionError,
    SitePulseError,
    TransportError,
    ValidationError,
)
from sitepulse.core.models import DeploymentInfo

__all__ = [
    "ApiReportedError",
    "CloudflareClient",
    "ConfigurationError",
    "DeploymentInfo",
    "DeploymentNotFoundError",
    "ParseError",
    "ResolutionError",
    "SitePulseConfig",
    "SitePulseError",
    "TransportError",
    "ValidationError",
]
