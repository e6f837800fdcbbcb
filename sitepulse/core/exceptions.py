"""Custom exceptions for SitePulse."""


class SitePulseError(Exception):
    """Base exception for all SitePulse errors."""


class ConfigurationError(SitePulseError):
    """Raised when configuration is invalid or incomplete."""


class ValidationError(SitePulseError):
    """Raised when input validation fails."""


class ResolutionError(SitePulseError):
    """Raised when a domain cannot be resolved to a Cloudflare zone."""

    def __init__(self, message: str, domain: str | None = None) -> None:
        super().__init__(message)
        self.domain = domain


class TransportError(SitePulseError):
    """Raised when the Cloudflare API cannot be reached or answers non-2xx."""

    def __init__(self, message: str, endpoint: str | None = None) -> None:
        super().__init__(message)
        self.endpoint = endpoint


class ParseError(SitePulseError):
    """Raised when a response body is not shaped as expected."""


class ApiReportedError(SitePulseError):
    """Raised when a GraphQL response carries a non-empty ``errors`` list."""

    def __init__(self, message: str, errors: list | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class DeploymentNotFoundError(SitePulseError):
    """Raised when no successful production Pages deployment exists."""
