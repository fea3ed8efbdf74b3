"""
Error response schemas for API documentation and consistent error formatting.
Provides standardized error response models for OpenAPI documentation.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class ErrorDetail(BaseModel):
    """Schema for individual error detail."""

    field: Optional[str] = Field(
        None,
        description="Field name that caused the error",
        examples=["check_in"]
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["check_in must be before check_out"]
    )

    type: Optional[str] = Field(
        None,
        description="Error type identifier",
        examples=["value_error"]
    )

    input: Optional[Any] = Field(
        None,
        description="Input value that caused the error"
    )


class ErrorResponse(BaseModel):
    """Schema for standardized error responses."""

    code: str = Field(..., description="Error code identifier", examples=["VALIDATION_ERROR"])
    message: str = Field(..., description="Human-readable error message")
    timestamp: str = Field(..., description="Error timestamp in ISO format")
    request_id: Optional[str] = Field(None, description="Unique request identifier for tracking")
    details: Optional[List[ErrorDetail]] = Field(
        None,
        description="Detailed error information for validation errors"
    )


class APIErrorResponse(BaseModel):
    """Schema for API error response wrapper."""

    error: ErrorResponse = Field(..., description="Error information")


_ERROR_EXAMPLES = {
    400: ("Bad Request", "BAD_REQUEST", "Payment signature verification failed"),
    401: ("Unauthorized", "UNAUTHORIZED", "Authentication required"),
    403: ("Forbidden", "FORBIDDEN", "Insufficient permissions to perform booking.cancel"),
    404: ("Not Found", "NOT_FOUND", "Booking not found with ID: 123e4567-e89b-12d3-a456-426614174000"),
    409: ("Conflict", "CONFLICT", "Booking cannot move from 'cancelled' to 'confirmed'"),
    422: ("Validation error", "VALIDATION_ERROR", "check_in must be before check_out"),
    500: ("Internal Server Error", "PERSISTENCE_ERROR", "Failed to create booking"),
    502: ("Bad Gateway", "EXTERNAL_SERVICE_ERROR", "Razorpay error: gateway timed out"),
}


def error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """
    OpenAPI ``responses`` entries for the given status codes.

    Usage:
        @router.post("", responses=error_responses(401, 404, 422))
    """
    responses = {}
    for code in status_codes:
        summary, error_code, message = _ERROR_EXAMPLES[code]
        responses[code] = {
            "description": summary,
            "model": APIErrorResponse,
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": error_code,
                            "message": message,
                            "timestamp": "2026-01-01T00:00:00Z",
                            "request_id": "abc12345"
                        }
                    }
                }
            }
        }
    return responses


def get_common_error_responses() -> Dict[int, Dict[str, Any]]:
    """Errors any authenticated endpoint may return."""
    return error_responses(401, 403, 422, 500)
