"""
Service layer exceptions.

Every error carries an ``http_status`` hint so whatever sits in front of the
service can translate it without parsing messages.
"""

from typing import Any


class ServiceError(Exception):
    """Base exception for service layer errors."""

    http_status: int = 500

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        self.context: dict[str, Any] = {}
        super().__init__(message)


class InvalidInputError(ServiceError):
    """Caller supplied parameters the service cannot work with."""

    http_status = 400


class ConfigurationError(ServiceError):
    """A required setting is missing."""

    pass


class UpstreamTransportError(ServiceError):
    """Network failure, unusable payload or non-auth HTTP failure upstream."""

    http_status = 502


class UpstreamHTTPError(UpstreamTransportError):
    """Upstream answered with a non-2xx status."""

    def __init__(self, service_id: str, status_code: int, body: str = ""):
        self.status_code = status_code
        msg = f"HTTP {status_code} from service '{service_id}'"
        if body:
            msg += f": {body[:200]}"
        super().__init__(msg, service_id=service_id)

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401


class RequestTimeoutError(UpstreamTransportError):
    """Request timed out."""

    def __init__(self, service_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Request to service '{service_id}' timed out after {timeout}s",
            service_id=service_id,
        )


class AuthUnavailableError(ServiceError):
    """No usable credentials to authenticate with."""

    http_status = 502


class AuthRejectedError(ServiceError):
    """Upstream kept rejecting credentials after the refresh attempt."""

    http_status = 502


class DescriptionLookupError(ServiceError):
    """Description lookup failed. Absorbed by the cleaning pipeline."""

    pass
