"""Exception taxonomy raised by the gateway and by local input checks.

Every remote call can fail for transport, authorization or validation reasons.
Components treat all of them as "operation failed" for control flow, but keep
the original message around so the UI can show something meaningful. The
helpers at the bottom turn an exception into that display string.
"""

from __future__ import annotations

from travel_client.schemas.error import ErrorType, OperationError

__all__ = [
    "AuthError",
    "GatewayError",
    "NotFoundError",
    "PartialDecodeError",
    "TransportError",
    "ValidationError",
    "describe_error",
    "to_operation_error",
]


class GatewayError(Exception):
    """Base class for every failure a component reports instead of raising."""

    error_type: ErrorType = ErrorType.TRANSPORT_ERROR

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TransportError(GatewayError):
    """No network, timeout, or a server-side failure."""

    error_type = ErrorType.TRANSPORT_ERROR


class AuthError(GatewayError):
    """Invalid credentials, duplicate registration, or an expired session."""

    error_type = ErrorType.AUTHENTICATION_ERROR


class ValidationError(GatewayError):
    """Input rejected locally before a call, or by the backend afterwards."""

    error_type = ErrorType.VALIDATION_ERROR


class NotFoundError(GatewayError):
    """Referenced attraction or review does not exist."""

    error_type = ErrorType.NOT_FOUND


class PartialDecodeError(GatewayError):
    """One row of a batch response could not be decoded."""

    error_type = ErrorType.PARTIAL_DECODE_ERROR

    def __init__(self, message: str, *, row: object | None = None) -> None:
        super().__init__(message)
        self.row = row


# Substrings reported by the identity provider mapped to friendlier text.
_KNOWN_MESSAGES: tuple[tuple[str, str], ...] = (
    ("Invalid login credentials", "Invalid email or password. Please try again."),
    ("User already registered", "This email is already registered. Please log in instead."),
    ("Email not confirmed", "Please confirm your email address before logging in."),
)


def describe_error(exc: GatewayError, prefix: str | None = None) -> str:
    """Return the string a component stores as its last error."""

    for needle, friendly in _KNOWN_MESSAGES:
        if needle.lower() in exc.message.lower():
            return friendly
    if isinstance(exc, ValidationError) or not prefix:
        return exc.message
    return f"{prefix}: {exc.message}"


def to_operation_error(
    exc: GatewayError, *, prefix: str | None = None, operation: str | None = None
) -> OperationError:
    return OperationError(
        error_type=exc.error_type,
        message=describe_error(exc, prefix),
        detail=exc.message,
        operation=operation,
        status_code=exc.status_code,
    )
