"""Tests for error translation into user-facing messages."""

from __future__ import annotations

import pytest

from travel_client.errors import (
    AuthError,
    GatewayError,
    NotFoundError,
    PartialDecodeError,
    TransportError,
    ValidationError,
    describe_error,
    to_operation_error,
)
from travel_client.schemas.error import ErrorType


@pytest.mark.parametrize(
    ("raw", "friendly"),
    [
        ("Invalid login credentials", "Invalid email or password. Please try again."),
        ("User already registered", "This email is already registered. Please log in instead."),
        ("Email not confirmed", "Please confirm your email address before logging in."),
    ],
)
def test_known_messages_are_replaced(raw: str, friendly: str) -> None:
    assert describe_error(AuthError(raw), "Login failed") == friendly


def test_unknown_message_gets_prefix() -> None:
    assert describe_error(TransportError("offline"), "Sign out failed") == "Sign out failed: offline"


def test_validation_errors_are_shown_verbatim() -> None:
    assert describe_error(ValidationError("Passwords do not match."), "Sign up failed") == (
        "Passwords do not match."
    )


def test_message_without_prefix() -> None:
    assert describe_error(NotFoundError("Review not found")) == "Review not found"


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (TransportError("x"), ErrorType.TRANSPORT_ERROR),
        (AuthError("x"), ErrorType.AUTHENTICATION_ERROR),
        (ValidationError("x"), ErrorType.VALIDATION_ERROR),
        (NotFoundError("x"), ErrorType.NOT_FOUND),
        (PartialDecodeError("x"), ErrorType.PARTIAL_DECODE_ERROR),
    ],
)
def test_error_types(error: GatewayError, expected: ErrorType) -> None:
    assert error.error_type is expected
    assert isinstance(error, GatewayError)


def test_to_operation_error_keeps_original_detail() -> None:
    result = to_operation_error(
        AuthError("Invalid login credentials", status_code=400),
        prefix="Login failed",
        operation="sign_in",
    )

    assert result.error_type is ErrorType.AUTHENTICATION_ERROR
    assert result.message == "Invalid email or password. Please try again."
    assert result.detail == "Invalid login credentials"
    assert result.operation == "sign_in"
    assert result.status_code == 400
    assert result.timestamp.tzinfo is not None
