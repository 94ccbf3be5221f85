"""Failure types raised by the HaloPSA integration."""

from __future__ import annotations

from typing import Any


class HaloError(RuntimeError):
    """Base class for every HaloPSA failure."""


class HaloConfigurationError(HaloError):
    """Raised when HaloPSA connection settings are incomplete."""


class AuthenticationError(HaloError):
    """Raised when the client credentials exchange fails."""


class APIError(HaloError):
    """Raised when HaloPSA responds with an error status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class RateLimitError(APIError):
    """Raised when HaloPSA throttles the caller (HTTP 429)."""

    def __init__(self, message: str, retry_after: int | None = None) -> None:
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class NotFoundError(APIError):
    """Raised when the requested resource does not exist (HTTP 404)."""

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        suffix = f" with ID {resource_id}" if resource_id is not None else ""
        super().__init__(f"{resource}{suffix} not found", status_code=404)
        self.resource = resource
        self.resource_id = resource_id


class ValidationError(HaloError):
    """Raised when a request is rejected before reaching HaloPSA.

    ``errors`` maps each offending field to the messages describing it.
    """

    def __init__(self, message: str, errors: dict[str, list[str]] | None = None) -> None:
        super().__init__(message)
        self.errors: dict[str, list[str]] = dict(errors or {})
