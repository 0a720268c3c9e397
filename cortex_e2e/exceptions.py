"""
Exceptions raised by the Cortex E2E client.

Transport failures, undecodable bodies, query API errors and unexpected
status codes each have their own class so that a test can tell a protocol
mismatch apart from a cluster that is simply not reachable.
"""

from typing import Optional


class CortexAPIError(Exception):
    """Base exception for Cortex client errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body
        self.operation = operation


class CortexTransportError(CortexAPIError):
    """Raised when no response was received."""
    pass


class CortexConnectionError(CortexTransportError):
    """Raised when connection to a Cortex endpoint fails."""
    pass


class CortexTimeoutError(CortexTransportError):
    """Raised when a request to a Cortex endpoint times out."""
    pass


class CortexDecodeError(CortexAPIError):
    """Raised when a response body does not match the expected format."""
    pass


class CortexQueryError(CortexAPIError):
    """Raised when the query API answers with an error envelope."""

    def __init__(
        self,
        message: str,
        error_type: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message, status_code, response_body, operation)
        self.error_type = error_type


class UnexpectedStatusError(CortexAPIError):
    """Raised when an endpoint answers with a status code the operation does not accept."""
    pass


class AlertmanagerNotConfiguredError(CortexAPIError):
    """Raised when an alertmanager operation is used without an alertmanager address."""
    pass


class ConfigValidationError(Exception):
    """Raised when client configuration validation fails."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []
