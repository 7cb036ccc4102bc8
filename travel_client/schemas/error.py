"""Error state schemas shared by every client component."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class ErrorType(str, Enum):
    """Categories of failure a component can report."""

    TRANSPORT_ERROR = "transport_error"
    AUTHENTICATION_ERROR = "authentication_error"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    PARTIAL_DECODE_ERROR = "partial_decode_error"


class OperationError(BaseModel):
    """Last failure recorded by a component, kept for display and diagnostics."""

    error_type: ErrorType = Field(..., description="Category of error")
    message: str = Field(..., description="Human-readable error message shown to the user")
    detail: str | None = Field(None, description="Original message reported by the gateway")
    operation: str | None = Field(None, description="Name of the operation that failed")
    status_code: int | None = Field(None, description="HTTP status code when one was received")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="When the error occurred"
    )

    class Config:
        """Pydantic config."""

        json_schema_extra = {
            "example": {
                "error_type": "authentication_error",
                "message": "Invalid email or password. Please try again.",
                "detail": "Invalid login credentials",
                "operation": "sign_in",
                "status_code": 400,
                "timestamp": "2025-04-19T10:30:00Z",
            }
        }
